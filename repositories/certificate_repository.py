"""
Certificate repository for database operations.
Certificates, their audit trail in certificate_logs, and the course/user
lookups certificate issuance needs.
"""
import logging
from typing import Any, Dict, List, Optional

from supabase import Client

logger = logging.getLogger(__name__)


class CertificateRepository:
    """Repository for certificate data operations."""

    CERTIFICATES = "certificates"
    LOGS = "certificate_logs"

    def __init__(self, supabase_client: Client):
        self.supabase = supabase_client

    async def create_certificate(self, row: Dict[str, Any]) -> Dict[str, Any]:
        logger.info(f"🎓 [CERTIFICATE_REPO] Creating certificate {row['id']}")
        result = self.supabase.table(self.CERTIFICATES).insert(row).execute()
        if not result.data:
            logger.error("❌ [CERTIFICATE_REPO] No data returned from insert")
            raise ValueError("Failed to create certificate - no data returned")
        return result.data[0]

    async def get_certificate(self, certificate_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table(self.CERTIFICATES).select("*").eq("id", certificate_id).limit(1).execute()
        return result.data[0] if result.data else None

    async def find_certificate(self, user_id: str, course_id: str) -> Optional[Dict[str, Any]]:
        """Existing certificate for a user and course, if any."""
        result = (
            self.supabase.table(self.CERTIFICATES)
            .select("*")
            .eq("user_id", user_id)
            .eq("course_id", course_id)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    async def list_certificates(
        self,
        user_id: Optional[str] = None,
        course_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Certificates matching the given filters, newest first."""
        query = self.supabase.table(self.CERTIFICATES).select("*")
        if user_id is not None:
            query = query.eq("user_id", user_id)
        if course_id is not None:
            query = query.eq("course_id", course_id)
        result = query.order("issued_date", desc=True).execute()
        return result.data or []

    async def update_certificate(self, certificate_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        logger.info(f"🎓 [CERTIFICATE_REPO] Updating certificate {certificate_id}: {sorted(changes)}")
        result = self.supabase.table(self.CERTIFICATES).update(changes).eq("id", certificate_id).execute()
        return result.data[0] if result.data else None

    async def add_log(self, row: Dict[str, Any]) -> None:
        self.supabase.table(self.LOGS).insert(row).execute()

    async def get_course(self, course_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("courses").select("*").eq("id", course_id).limit(1).execute()
        return result.data[0] if result.data else None

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("users").select("*").eq("id", user_id).limit(1).execute()
        return result.data[0] if result.data else None
