"""
Database interactions and Supabase queries.
Can import from: models, shared
Must NOT import from: services, routers
"""

from .assessment_repository import AssessmentRepository
from .audit_log_repository import AuditLogRepository
from .certificate_repository import CertificateRepository
from .progress_repository import ProgressRepository

__all__ = [
    "AssessmentRepository",
    "AuditLogRepository",
    "CertificateRepository",
    "ProgressRepository",
]
