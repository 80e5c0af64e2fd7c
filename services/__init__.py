"""
Business logic layer.
Can import from: repositories, models, shared
Must NOT import from: routers
"""

from .assessment_service import AssessmentService
from .audit_logger import AuditLogger
from .certificate_service import CertificateService
from .progress_service import ProgressService

__all__ = [
    "AssessmentService",
    "AuditLogger",
    "CertificateService",
    "ProgressService",
]
