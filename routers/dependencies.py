"""
Dependency providers wiring routers to services.
Tests replace these through app.dependency_overrides.
"""
from fastapi import Depends, Request
from supabase import Client

from database import get_supabase_client
from repositories.assessment_repository import AssessmentRepository
from repositories.certificate_repository import CertificateRepository
from repositories.progress_repository import ProgressRepository
from services.assessment_service import AssessmentService
from services.audit_logger import AuditLogger
from services.certificate_service import CertificateService
from services.progress_service import ProgressService


def get_progress_service(client: Client = Depends(get_supabase_client)) -> ProgressService:
    return ProgressService(ProgressRepository(client))


def get_assessment_service(client: Client = Depends(get_supabase_client)) -> AssessmentService:
    return AssessmentService(AssessmentRepository(client))


def get_certificate_service(client: Client = Depends(get_supabase_client)) -> CertificateService:
    return CertificateService(
        CertificateRepository(client),
        ProgressRepository(client),
        AssessmentRepository(client),
    )


def get_audit_logger(request: Request) -> AuditLogger:
    """The application's audit logger, created at startup."""
    return request.app.state.audit_logger
