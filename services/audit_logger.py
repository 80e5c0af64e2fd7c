"""
Audit logging for state-changing learning operations.

Events are written to the "saakra.audit" log stream and, when a sink is
configured, appended to the audit_logs table. Recording runs as a background
task after the response is sent; a failed write is logged and dropped so it
never affects the request that produced it.
"""
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Protocol

from fastapi import BackgroundTasks

logger = logging.getLogger(__name__)
audit_stream = logging.getLogger("saakra.audit")


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class AuditAction(str, Enum):
    """Audited actions."""
    PROGRESS_UPDATED = "PROGRESS_UPDATED"
    ASSESSMENT_CREATED = "ASSESSMENT_CREATED"
    ASSESSMENT_SUBMITTED = "ASSESSMENT_SUBMITTED"
    CERTIFICATE_GENERATED = "CERTIFICATE_GENERATED"
    CERTIFICATE_REVOKED = "CERTIFICATE_REVOKED"


@dataclass(frozen=True)
class AuditEvent:
    """Immutable record of who did what to which resource."""
    user_id: Optional[str]
    action: str
    resource: str
    status: str
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


class AuditSink(Protocol):
    async def insert(self, row: Dict[str, Any]) -> None:
        ...


class AuditLogger:
    """Records audit events to the log stream and an optional persistent sink."""

    def __init__(self, sink: Optional[AuditSink] = None):
        self.sink = sink

    async def record(
        self,
        user_id: Optional[str],
        action: str,
        resource: str,
        status: str = AuditStatus.SUCCESS.value,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditEvent]:
        """Write one audit event; returns it, or None when the write failed."""
        try:
            event = AuditEvent(
                user_id=user_id,
                action=str(getattr(action, "value", action)),
                resource=resource,
                status=str(getattr(status, "value", status)),
                details=dict(details or {}),
            )
            audit_stream.info(
                f"📋 [AUDIT] {event.action} {event.resource} by {event.user_id or 'anonymous'}: {event.status}",
                extra={"audit_event": event.to_dict(), "user_id": event.user_id},
            )
            if self.sink is not None:
                await self.sink.insert(event.to_dict())
            return event
        except Exception as e:
            logger.warning(f"⚠️ [AUDIT] Failed to record {action} on {resource}: {e}")
            return None

    def schedule(
        self,
        background_tasks: BackgroundTasks,
        user_id: Optional[str],
        action: str,
        resource: str,
        status: str = AuditStatus.SUCCESS.value,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Queue an event to be recorded after the response is sent."""
        background_tasks.add_task(self.record, user_id, action, resource, status, details)
