"""
Assessment service for business logic operations.
Creation, scoring of submissions and per-assessment analytics.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from config import settings
from models.learning import AssessmentCreate, AssessmentSubmit
from repositories.assessment_repository import AssessmentRepository
from utils.exceptions import NotFoundError
from utils.scoring import mean_percentage, round_half_up, score_percentage

logger = logging.getLogger(__name__)


class AssessmentService:
    """Service for assessment business logic."""

    def __init__(self, assessment_repository: AssessmentRepository, default_passing_score: Optional[float] = None):
        self.assessment_repository = assessment_repository
        self.default_passing_score = (
            default_passing_score if default_passing_score is not None else settings.default_passing_score
        )

    async def create_assessment(self, data: AssessmentCreate, created_by: Optional[str] = None) -> Dict[str, Any]:
        now = datetime.now(timezone.utc).isoformat()
        row = {
            "course_id": data.course_id,
            "title": data.title,
            "type": data.type.value,
            "total_questions": data.total_questions if data.total_questions is not None else 0,
            "passing_score": data.passing_score if data.passing_score is not None else self.default_passing_score,
            "created_by": created_by,
            "created_at": now,
            "updated_at": now,
        }
        assessment = await self.assessment_repository.create_assessment(row)
        logger.info(f"✅ [ASSESSMENT] Created {data.type.value} '{data.title}' ({assessment.get('id')})")
        return assessment

    async def get_assessment(self, assessment_id: str) -> Dict[str, Any]:
        assessment = await self.assessment_repository.get_assessment(assessment_id)
        if assessment is None:
            raise NotFoundError("Assessment not found", resource_id=assessment_id, resource_type="assessment")
        return assessment

    async def list_course_assessments(self, course_id: str) -> List[Dict[str, Any]]:
        return await self.assessment_repository.list_course_assessments(course_id)

    async def submit(self, user_id: str, data: AssessmentSubmit) -> Dict[str, Any]:
        """Score a submission against its assessment's passing score and store it."""
        assessment = await self.get_assessment(data.assessment_id)

        percentage = score_percentage(data.score, data.total_score)
        passing_score = assessment.get("passing_score")
        if passing_score is None:
            passing_score = self.default_passing_score
        passed = percentage >= passing_score

        row = {
            "user_id": user_id,
            "assessment_id": data.assessment_id,
            "course_id": assessment.get("course_id"),
            "score": data.score,
            "total_score": data.total_score,
            "percentage": percentage,
            "passed": passed,
            "answers": data.answers or [],
            "time_taken": data.time_taken or 0,
            "submitted_at": datetime.now(timezone.utc).isoformat(),
        }
        submission = await self.assessment_repository.create_submission(row)
        logger.info(
            f"✅ [ASSESSMENT] User {user_id} scored {percentage}% on {data.assessment_id} "
            f"({'passed' if passed else 'failed'})"
        )
        return submission

    async def user_submissions(
        self,
        user_id: str,
        course_id: Optional[str] = None,
        assessment_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        submissions = await self.assessment_repository.list_submissions(
            user_id=user_id, course_id=course_id, assessment_id=assessment_id
        )
        passed = sum(1 for s in submissions if s.get("passed"))
        return {
            "userId": user_id,
            "submissions": submissions,
            "statistics": {
                "totalSubmissions": len(submissions),
                "averageScore": mean_percentage(s.get("percentage", 0) for s in submissions),
                "passedCount": passed,
                "failedCount": len(submissions) - passed,
            },
        }

    async def analytics(self, assessment_id: str) -> Dict[str, Any]:
        """Score distribution, pass rate and median for one assessment."""
        assessment = await self.get_assessment(assessment_id)
        submissions = await self.assessment_repository.list_submissions(assessment_id=assessment_id)

        if not submissions:
            return {
                "assessmentId": assessment_id,
                "assessmentTitle": assessment.get("title"),
                "totalSubmissions": 0,
                "averageScore": 0,
                "passRate": 0,
                "scoreDistribution": {},
            }

        percentages = sorted(s.get("percentage", 0) for s in submissions)
        passed = sum(1 for s in submissions if s.get("passed"))
        return {
            "assessmentId": assessment_id,
            "assessmentTitle": assessment.get("title"),
            "totalSubmissions": len(submissions),
            "averageScore": mean_percentage(percentages),
            "passRate": round_half_up(passed / len(submissions) * 100),
            "scoreDistribution": {
                "excellent": sum(1 for p in percentages if p >= 90),
                "good": sum(1 for p in percentages if 75 <= p < 90),
                "average": sum(1 for p in percentages if 50 <= p < 75),
                "poor": sum(1 for p in percentages if p < 50),
            },
            "medianScore": round_half_up(percentages[len(percentages) // 2]),
        }
