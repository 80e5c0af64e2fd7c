"""
Progress service for business logic operations.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from models.learning import ProgressUpdate
from repositories.progress_repository import ProgressRepository

logger = logging.getLogger(__name__)


class ProgressService:
    """Service for course progress tracking."""

    def __init__(self, progress_repository: ProgressRepository):
        self.progress_repository = progress_repository

    async def update_progress(self, user_id: str, update: ProgressUpdate) -> Dict[str, Any]:
        """Record the user's latest progress in a course."""
        row = {
            "user_id": user_id,
            "course_id": update.course_id,
            "completed_percentage": update.percentage,
            "lesson_id": update.lesson_id,
            "time_spent": update.time_spent or 0,
            "completed": update.completed if update.completed is not None else update.percentage >= 100,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        saved = await self.progress_repository.upsert_progress(row)
        logger.info(f"✅ [PROGRESS] User {user_id} at {update.percentage}% in course {update.course_id}")
        return saved

    async def get_progress(self, user_id: str) -> List[Dict[str, Any]]:
        return await self.progress_repository.get_user_progress(user_id)
