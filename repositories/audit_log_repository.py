"""
Audit log repository: optional persistent sink for audit events.
"""
from typing import Any, Dict

from supabase import Client


class AuditLogRepository:
    """Appends audit events to the audit_logs table."""

    TABLE = "audit_logs"

    def __init__(self, supabase_client: Client):
        self.supabase = supabase_client

    async def insert(self, row: Dict[str, Any]) -> None:
        self.supabase.table(self.TABLE).insert(row).execute()
