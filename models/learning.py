"""
Request and result models for the learning API.

Request bodies arrive camelCase; models accept either the camelCase alias or
the snake_case field name and ignore unknown keys.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AssessmentType(str, Enum):
    """Assessment kinds trainers may create."""
    QUIZ = "quiz"
    TEST = "test"
    ASSIGNMENT = "assignment"
    PROJECT = "project"


class CertificateStatus(str, Enum):
    """Certificate lifecycle states."""
    ACTIVE = "ACTIVE"
    REVOKED = "REVOKED"


class CertificateAction(str, Enum):
    """Actions recorded in the certificate log."""
    GENERATED = "GENERATED"
    REVOKED = "REVOKED"


# Request bodies

class ProgressUpdate(CamelModel):
    course_id: str
    percentage: float = Field(..., ge=0, le=100)
    lesson_id: Optional[str] = None
    time_spent: Optional[float] = Field(None, ge=0)
    completed: Optional[bool] = None


class AssessmentCreate(CamelModel):
    course_id: str
    title: str = Field(..., min_length=3, max_length=100)
    type: AssessmentType
    total_questions: Optional[Union[int, float]] = None
    passing_score: Optional[float] = Field(None, ge=0, le=100)


class AssessmentSubmit(CamelModel):
    assessment_id: str
    score: float = Field(..., ge=0)
    total_score: float = Field(..., ge=0)
    answers: Optional[List[Any]] = None
    time_taken: Optional[float] = Field(None, ge=0)


class CertificateGenerate(CamelModel):
    user_id: str
    course_id: str


class CertificateVerify(CamelModel):
    certificate_id: str


class CertificateRevoke(CamelModel):
    certificate_id: str
    reason: Optional[str] = None


class BulkEligibilityCheck(CamelModel):
    course_id: str
    user_ids: List[Any] = Field(..., min_length=1)


# Results

class EligibilityResult(CamelModel):
    """Outcome of a certificate eligibility check."""
    eligible: bool
    reason: str
    current_progress: Optional[float] = None
    failed_count: Optional[int] = None
    course_completion: Optional[float] = None
    assessments_passed: Optional[int] = None
    final_score: Optional[int] = None
    completion_date: Optional[datetime] = None


class CertificateVerification(CamelModel):
    """Public verification view of a certificate."""
    valid: bool
    message: str
    certificate_id: Optional[str] = None
    user_id: Optional[str] = None
    course_id: Optional[str] = None
    course_name: Optional[str] = None
    user_name: Optional[str] = None
    issued_date: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    status: Optional[str] = None
