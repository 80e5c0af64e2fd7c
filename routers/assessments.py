"""
Assessments router: trainers create assessments, students submit scores.
"""
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from middleware.auth import AuthenticatedUser, ensure_self_or_roles, get_current_user, require_roles
from middleware.validation import validated_body
from models.learning import AssessmentCreate, AssessmentSubmit
from routers.dependencies import get_assessment_service, get_audit_logger
from services.assessment_service import AssessmentService
from services.audit_logger import AuditAction, AuditLogger

router = APIRouter(tags=["assessments"])
logger = logging.getLogger(__name__)

STAFF_ROLES = ("admin", "trainer")


@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_assessment(
    background_tasks: BackgroundTasks,
    current_user: AuthenticatedUser = Depends(require_roles(*STAFF_ROLES)),
    data: AssessmentCreate = Depends(validated_body("createAssessment", AssessmentCreate)),
    assessment_service: AssessmentService = Depends(get_assessment_service),
    audit_logger: AuditLogger = Depends(get_audit_logger),
):
    assessment = await assessment_service.create_assessment(data, created_by=current_user.id)
    audit_logger.schedule(
        background_tasks,
        current_user.id,
        AuditAction.ASSESSMENT_CREATED,
        f"assessment:{assessment.get('id')}",
        details={"courseId": data.course_id, "type": data.type.value},
    )
    return {
        "message": "Assessment created successfully",
        "assessmentId": assessment.get("id"),
        "assessment": assessment,
    }


@router.post("/submit", status_code=status.HTTP_201_CREATED)
async def submit_assessment(
    background_tasks: BackgroundTasks,
    current_user: AuthenticatedUser = Depends(get_current_user),
    data: AssessmentSubmit = Depends(validated_body("submitAssessment", AssessmentSubmit)),
    assessment_service: AssessmentService = Depends(get_assessment_service),
    audit_logger: AuditLogger = Depends(get_audit_logger),
):
    """Score and store the current user's submission."""
    submission = await assessment_service.submit(current_user.id, data)
    audit_logger.schedule(
        background_tasks,
        current_user.id,
        AuditAction.ASSESSMENT_SUBMITTED,
        f"assessment:{data.assessment_id}",
        details={"percentage": submission.get("percentage"), "passed": submission.get("passed")},
    )
    return {
        "message": "Assessment submitted successfully",
        "submissionId": submission.get("id"),
        "submission": submission,
    }


@router.get("/course/{course_id}")
async def get_course_assessments(
    course_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    assessment_service: AssessmentService = Depends(get_assessment_service),
):
    assessments = await assessment_service.list_course_assessments(course_id)
    return {
        "courseId": course_id,
        "totalAssessments": len(assessments),
        "assessments": assessments,
    }


@router.get("/user/{user_id}/submissions")
async def get_user_submissions(
    user_id: str,
    course_id: Optional[str] = Query(None, alias="courseId"),
    assessment_id: Optional[str] = Query(None, alias="assessmentId"),
    current_user: AuthenticatedUser = Depends(get_current_user),
    assessment_service: AssessmentService = Depends(get_assessment_service),
):
    """A user's submissions with pass/fail statistics, optionally filtered."""
    ensure_self_or_roles(current_user, user_id, *STAFF_ROLES)
    return await assessment_service.user_submissions(user_id, course_id=course_id, assessment_id=assessment_id)


@router.get("/{assessment_id}/analytics")
async def get_assessment_analytics(
    assessment_id: str,
    current_user: AuthenticatedUser = Depends(require_roles(*STAFF_ROLES)),
    assessment_service: AssessmentService = Depends(get_assessment_service),
):
    return await assessment_service.analytics(assessment_id)


@router.get("/{assessment_id}")
async def get_assessment(
    assessment_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    assessment_service: AssessmentService = Depends(get_assessment_service),
):
    return await assessment_service.get_assessment(assessment_id)
