"""
Certificate service for business logic operations.

A user earns a certificate for a course once their progress reaches 100% and
every assessment submission they made for that course passed. Certificates
are issued ACTIVE for a fixed validity period and may be revoked by an admin.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from config import settings
from models.learning import (
    CertificateAction,
    CertificateStatus,
    CertificateVerification,
    EligibilityResult,
)
from repositories.assessment_repository import AssessmentRepository
from repositories.certificate_repository import CertificateRepository
from repositories.progress_repository import ProgressRepository
from utils.exceptions import EligibilityError, ErrorCategory, NotFoundError, SaakraError
from utils.scoring import mean_percentage, round_half_up
from utils.validation import format_number

logger = logging.getLogger(__name__)

DEFAULT_REVOCATION_REASON = "No reason provided"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept datetimes or ISO-8601 strings as stored by the database; naive values are UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_certificate_id(course_id: str, user_id: str, issued_at: datetime) -> str:
    return f"CERT-{course_id}-{user_id}-{int(issued_at.timestamp() * 1000)}"


class CertificateService:
    """Service for certificate eligibility, issuance, verification and revocation."""

    def __init__(
        self,
        certificate_repository: CertificateRepository,
        progress_repository: ProgressRepository,
        assessment_repository: AssessmentRepository,
        validity_days: Optional[int] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.certificate_repository = certificate_repository
        self.progress_repository = progress_repository
        self.assessment_repository = assessment_repository
        self.validity_days = validity_days if validity_days is not None else settings.certificate_validity_days
        self.clock = clock

    async def check_eligibility(self, user_id: str, course_id: str) -> EligibilityResult:
        progress = await self.progress_repository.get_course_progress(user_id, course_id)
        if progress is None:
            return EligibilityResult(eligible=False, reason="No progress record found")

        completed = progress.get("completed_percentage") or 0
        if completed < 100:
            return EligibilityResult(
                eligible=False,
                reason=f"Course not completed. Current progress: {format_number(completed)}%",
                current_progress=completed,
            )

        submissions = await self.assessment_repository.list_submissions(user_id=user_id, course_id=course_id)
        if not submissions:
            return EligibilityResult(eligible=False, reason="No assessment submissions found")

        failed = [s for s in submissions if not s.get("passed")]
        if failed:
            return EligibilityResult(
                eligible=False,
                reason=f"Failed {len(failed)} assessment(s). All assessments must be passed.",
                failed_count=len(failed),
            )

        return EligibilityResult(
            eligible=True,
            reason="All eligibility criteria met",
            course_completion=completed,
            assessments_passed=len(submissions),
            final_score=mean_percentage(s.get("percentage", 0) for s in submissions),
            completion_date=parse_timestamp(progress.get("updated_at")),
        )

    async def generate(self, user_id: str, course_id: str, issued_by: Optional[str] = None) -> Dict[str, Any]:
        """Issue a certificate; raises when the user is ineligible or already certified."""
        eligibility = await self.check_eligibility(user_id, course_id)
        if not eligibility.eligible:
            raise EligibilityError(
                "Certificate eligibility criteria not met",
                details=eligibility.to_json(),
            )

        existing = await self.certificate_repository.find_certificate(user_id, course_id)
        if existing is not None:
            raise SaakraError(
                "Certificate already exists for this user and course",
                status_code=400,
                details={"certificateId": existing.get("id")},
                category=ErrorCategory.BUSINESS_LOGIC,
            )

        course = await self.certificate_repository.get_course(course_id)
        if course is None:
            raise NotFoundError("Course not found", resource_id=course_id, resource_type="course")

        user = await self.certificate_repository.get_user(user_id) or {}

        now = self.clock()
        certificate_id = build_certificate_id(course_id, user_id, now)
        row = {
            "id": certificate_id,
            "user_id": user_id,
            "course_id": course_id,
            "course_name": course.get("name") or course.get("title"),
            "user_name": user.get("name") or user.get("email"),
            "completion_date": now.isoformat(),
            "issued_date": now.isoformat(),
            "status": CertificateStatus.ACTIVE.value,
            "course_completion": eligibility.course_completion,
            "final_score": eligibility.final_score,
            "assessments_passed": eligibility.assessments_passed,
            "valid_until": (now + timedelta(days=self.validity_days)).isoformat(),
            "metadata": {
                "generated_by": "backend_system",
                "issued_by": issued_by,
                "version": "1.0",
                "course_completion_date": (
                    eligibility.completion_date.isoformat() if eligibility.completion_date else None
                ),
            },
        }

        certificate = await self.certificate_repository.create_certificate(row)
        await self.certificate_repository.add_log({
            "certificate_id": certificate_id,
            "user_id": user_id,
            "course_id": course_id,
            "action": CertificateAction.GENERATED.value,
            "timestamp": now.isoformat(),
        })
        logger.info(f"🎓 [CERTIFICATE] Issued {certificate_id}")
        return certificate

    async def get_certificate(self, certificate_id: str) -> Dict[str, Any]:
        certificate = await self.certificate_repository.get_certificate(certificate_id)
        if certificate is None:
            raise NotFoundError("Certificate not found", resource_id=certificate_id, resource_type="certificate")
        return certificate

    async def verify(self, certificate_id: str) -> CertificateVerification:
        """Public authenticity check; unknown ids are reported invalid, not missing."""
        certificate = await self.certificate_repository.get_certificate(certificate_id)
        if certificate is None:
            return CertificateVerification(valid=False, message="Certificate not found")

        valid_until = parse_timestamp(certificate.get("valid_until"))
        is_valid = (
            certificate.get("status") == CertificateStatus.ACTIVE.value
            and valid_until is not None
            and self.clock() <= valid_until
        )
        return CertificateVerification(
            valid=is_valid,
            message="Certificate is valid" if is_valid else "Certificate is expired or inactive",
            certificate_id=certificate_id,
            user_id=certificate.get("user_id"),
            course_id=certificate.get("course_id"),
            course_name=certificate.get("course_name"),
            user_name=certificate.get("user_name"),
            issued_date=parse_timestamp(certificate.get("issued_date")),
            valid_until=valid_until,
            status=certificate.get("status"),
        )

    async def revoke(
        self,
        certificate_id: str,
        reason: Optional[str] = None,
        revoked_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        certificate = await self.get_certificate(certificate_id)
        now = self.clock().isoformat()

        await self.certificate_repository.update_certificate(certificate_id, {
            "status": CertificateStatus.REVOKED.value,
            "revoked_at": now,
            "revocation_reason": reason or DEFAULT_REVOCATION_REASON,
        })
        await self.certificate_repository.add_log({
            "certificate_id": certificate_id,
            "user_id": certificate.get("user_id"),
            "course_id": certificate.get("course_id"),
            "action": CertificateAction.REVOKED.value,
            "reason": reason,
            "revoked_by": revoked_by,
            "timestamp": now,
        })
        logger.info(f"🎓 [CERTIFICATE] Revoked {certificate_id}")
        return {"message": "Certificate revoked successfully", "certificateId": certificate_id}

    async def bulk_check_eligibility(self, course_id: str, user_ids: List[Any]) -> Dict[str, Any]:
        user_ids = [str(user_id) for user_id in user_ids]
        checks = await asyncio.gather(*(self.check_eligibility(user_id, course_id) for user_id in user_ids))
        results = [{"userId": user_id, **check.to_json()} for user_id, check in zip(user_ids, checks)]
        eligible = sum(1 for check in checks if check.eligible)
        return {
            "courseId": course_id,
            "totalChecked": len(results),
            "eligibleCount": eligible,
            "ineligibleCount": len(results) - eligible,
            "results": results,
        }

    async def list_user_certificates(self, user_id: str) -> Dict[str, Any]:
        certificates = await self.certificate_repository.list_certificates(user_id=user_id)
        return {
            "userId": user_id,
            "totalCertificates": len(certificates),
            "certificates": certificates,
        }

    async def list_course_certificates(self, course_id: str) -> Dict[str, Any]:
        certificates = await self.certificate_repository.list_certificates(course_id=course_id)
        return {
            "courseId": course_id,
            "totalCertificates": len(certificates),
            "activeCertificates": sum(
                1 for c in certificates if c.get("status") == CertificateStatus.ACTIVE.value
            ),
            "certificates": certificates,
        }

    async def statistics(self) -> Dict[str, Any]:
        """Issuance totals and average final scores, overall and per course."""
        certificates = await self.certificate_repository.list_certificates()
        if not certificates:
            return {
                "totalCertificates": 0,
                "activeCertificates": 0,
                "revokedCertificates": 0,
                "expiredCertificates": 0,
                "averageFinalScore": 0,
                "byCourseName": {},
            }

        now = self.clock()
        active = [c for c in certificates if c.get("status") == CertificateStatus.ACTIVE.value]
        expired = [
            c for c in active
            if (parse_timestamp(c.get("valid_until")) or now) < now
        ]

        by_course: Dict[str, Dict[str, Any]] = {}
        for certificate in certificates:
            name = certificate.get("course_name") or certificate.get("course_id")
            bucket = by_course.setdefault(name, {"count": 0, "totalScore": 0})
            bucket["count"] += 1
            bucket["totalScore"] += certificate.get("final_score") or 0

        scores = [c.get("final_score") or 0 for c in certificates]
        return {
            "totalCertificates": len(certificates),
            "activeCertificates": len(active),
            "revokedCertificates": sum(
                1 for c in certificates if c.get("status") == CertificateStatus.REVOKED.value
            ),
            "expiredCertificates": len(expired),
            "averageFinalScore": sum(scores) / len(scores),
            "byCourseName": {
                name: {
                    "count": bucket["count"],
                    "averageScore": round_half_up(bucket["totalScore"] / bucket["count"]),
                }
                for name, bucket in by_course.items()
            },
        }
