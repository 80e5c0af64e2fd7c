"""
Progress router: students report course progress.
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends

from middleware.auth import AuthenticatedUser, ensure_self_or_roles, get_current_user
from middleware.validation import validated_body
from models.learning import ProgressUpdate
from routers.dependencies import get_audit_logger, get_progress_service
from services.audit_logger import AuditAction, AuditLogger
from services.progress_service import ProgressService

router = APIRouter(tags=["progress"])
logger = logging.getLogger(__name__)


@router.post("/update")
async def update_progress(
    background_tasks: BackgroundTasks,
    current_user: AuthenticatedUser = Depends(get_current_user),
    update: ProgressUpdate = Depends(validated_body("updateProgress", ProgressUpdate)),
    progress_service: ProgressService = Depends(get_progress_service),
    audit_logger: AuditLogger = Depends(get_audit_logger),
) -> Dict[str, Any]:
    """Record the current user's progress in a course."""
    progress = await progress_service.update_progress(current_user.id, update)
    audit_logger.schedule(
        background_tasks,
        current_user.id,
        AuditAction.PROGRESS_UPDATED,
        f"course:{update.course_id}",
        details={"percentage": update.percentage},
    )
    return {"message": "Progress updated", "progress": progress}


@router.get("/{user_id}")
async def get_progress(
    user_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    progress_service: ProgressService = Depends(get_progress_service),
):
    ensure_self_or_roles(current_user, user_id, "admin", "trainer")
    return await progress_service.get_progress(user_id)
