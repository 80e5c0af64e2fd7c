"""
Assessment repository for database operations.
Covers assessments and the submissions made against them.
"""
import logging
from typing import Any, Dict, List, Optional

from supabase import Client

logger = logging.getLogger(__name__)


class AssessmentRepository:
    """Repository for assessment and submission data operations."""

    ASSESSMENTS = "assessments"
    SUBMISSIONS = "assessment_submissions"

    def __init__(self, supabase_client: Client):
        self.supabase = supabase_client

    async def create_assessment(self, row: Dict[str, Any]) -> Dict[str, Any]:
        logger.info(f"📝 [ASSESSMENT_REPO] Creating assessment '{row.get('title')}' for course {row.get('course_id')}")
        result = self.supabase.table(self.ASSESSMENTS).insert(row).execute()
        if not result.data:
            logger.error("❌ [ASSESSMENT_REPO] No data returned from insert")
            raise ValueError("Failed to create assessment - no data returned")
        return result.data[0]

    async def get_assessment(self, assessment_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table(self.ASSESSMENTS).select("*").eq("id", assessment_id).limit(1).execute()
        return result.data[0] if result.data else None

    async def list_course_assessments(self, course_id: str) -> List[Dict[str, Any]]:
        result = self.supabase.table(self.ASSESSMENTS).select("*").eq("course_id", course_id).execute()
        return result.data or []

    async def create_submission(self, row: Dict[str, Any]) -> Dict[str, Any]:
        logger.info(f"📝 [ASSESSMENT_REPO] Storing submission by {row.get('user_id')} for {row.get('assessment_id')}")
        result = self.supabase.table(self.SUBMISSIONS).insert(row).execute()
        if not result.data:
            logger.error("❌ [ASSESSMENT_REPO] No data returned from submission insert")
            raise ValueError("Failed to store submission - no data returned")
        return result.data[0]

    async def list_submissions(
        self,
        user_id: Optional[str] = None,
        course_id: Optional[str] = None,
        assessment_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Submissions matching every given filter, newest first."""
        query = self.supabase.table(self.SUBMISSIONS).select("*")
        if user_id is not None:
            query = query.eq("user_id", user_id)
        if course_id is not None:
            query = query.eq("course_id", course_id)
        if assessment_id is not None:
            query = query.eq("assessment_id", assessment_id)
        result = query.order("submitted_at", desc=True).execute()
        return result.data or []
