"""
Certificates router: issuance, public verification and revocation.
"""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status

from middleware.auth import AuthenticatedUser, ensure_self_or_roles, get_current_user, require_roles
from middleware.validation import validated_body
from models.learning import (
    BulkEligibilityCheck,
    CertificateGenerate,
    CertificateRevoke,
    CertificateVerify,
)
from routers.dependencies import get_audit_logger, get_certificate_service
from services.audit_logger import AuditAction, AuditLogger
from services.certificate_service import CertificateService

router = APIRouter(tags=["certificates"])
logger = logging.getLogger(__name__)

ISSUER_ROLES = ("admin", "instructor")


@router.post("/generate", status_code=status.HTTP_201_CREATED)
async def generate_certificate(
    background_tasks: BackgroundTasks,
    current_user: AuthenticatedUser = Depends(require_roles(*ISSUER_ROLES)),
    data: CertificateGenerate = Depends(validated_body("generateCertificate", CertificateGenerate)),
    certificate_service: CertificateService = Depends(get_certificate_service),
    audit_logger: AuditLogger = Depends(get_audit_logger),
):
    certificate = await certificate_service.generate(data.user_id, data.course_id, issued_by=current_user.id)
    audit_logger.schedule(
        background_tasks,
        current_user.id,
        AuditAction.CERTIFICATE_GENERATED,
        f"certificate:{certificate.get('id')}",
        details={"userId": data.user_id, "courseId": data.course_id},
    )
    return {
        "message": "Certificate generated successfully",
        "certificateId": certificate.get("id"),
        "certificate": certificate,
    }


@router.post("/verify")
async def verify_certificate(
    data: CertificateVerify = Depends(validated_body("verifyCertificate", CertificateVerify)),
    certificate_service: CertificateService = Depends(get_certificate_service),
):
    """Public authenticity check."""
    verification = await certificate_service.verify(data.certificate_id)
    return verification.to_json()


@router.post("/revoke")
async def revoke_certificate(
    background_tasks: BackgroundTasks,
    current_user: AuthenticatedUser = Depends(require_roles("admin")),
    data: CertificateRevoke = Depends(validated_body("revokeCertificate", CertificateRevoke)),
    certificate_service: CertificateService = Depends(get_certificate_service),
    audit_logger: AuditLogger = Depends(get_audit_logger),
):
    result = await certificate_service.revoke(data.certificate_id, data.reason, revoked_by=current_user.id)
    audit_logger.schedule(
        background_tasks,
        current_user.id,
        AuditAction.CERTIFICATE_REVOKED,
        f"certificate:{data.certificate_id}",
        details={"reason": data.reason},
    )
    return result


@router.post("/bulk/check-eligibility")
async def bulk_check_eligibility(
    current_user: AuthenticatedUser = Depends(require_roles("admin")),
    data: BulkEligibilityCheck = Depends(validated_body("bulkCheckEligibility", BulkEligibilityCheck)),
    certificate_service: CertificateService = Depends(get_certificate_service),
):
    return await certificate_service.bulk_check_eligibility(data.course_id, data.user_ids)


@router.get("/statistics")
async def get_certificate_statistics(
    current_user: AuthenticatedUser = Depends(require_roles("admin")),
    certificate_service: CertificateService = Depends(get_certificate_service),
):
    return await certificate_service.statistics()


@router.get("/user/{user_id}")
async def get_user_certificates(
    user_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    certificate_service: CertificateService = Depends(get_certificate_service),
):
    ensure_self_or_roles(current_user, user_id, *ISSUER_ROLES)
    return await certificate_service.list_user_certificates(user_id)


@router.get("/course/{course_id}")
async def get_course_certificates(
    course_id: str,
    current_user: AuthenticatedUser = Depends(require_roles(*ISSUER_ROLES)),
    certificate_service: CertificateService = Depends(get_certificate_service),
):
    return await certificate_service.list_course_certificates(course_id)


@router.get("/{certificate_id}")
async def get_certificate(
    certificate_id: str,
    certificate_service: CertificateService = Depends(get_certificate_service),
):
    """Public lookup by certificate id."""
    return await certificate_service.get_certificate(certificate_id)
