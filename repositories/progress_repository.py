"""
Progress repository for database operations.
Repository layer for data access.
"""
import logging
from typing import Any, Dict, List, Optional

from supabase import Client

logger = logging.getLogger(__name__)


class ProgressRepository:
    """Repository for course progress records, one row per user and course."""

    TABLE = "progress"

    def __init__(self, supabase_client: Client):
        self.supabase = supabase_client

    async def upsert_progress(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert or replace the progress row for (user_id, course_id)."""
        logger.info(f"📈 [PROGRESS_REPO] Upserting progress for user {row['user_id']} course {row['course_id']}")
        result = self.supabase.table(self.TABLE).upsert(row, on_conflict="user_id,course_id").execute()
        return result.data[0] if result.data else row

    async def get_user_progress(self, user_id: str) -> List[Dict[str, Any]]:
        result = self.supabase.table(self.TABLE).select("*").eq("user_id", user_id).execute()
        return result.data or []

    async def get_course_progress(self, user_id: str, course_id: str) -> Optional[Dict[str, Any]]:
        result = (
            self.supabase.table(self.TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("course_id", course_id)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None
