"""
Registry of request-body schemas keyed by operation name.

Schemas are defined once at import time and never mutated. An operation with
no registered schema is not validated.
"""
from types import MappingProxyType
from typing import Mapping, Optional

from models.validation import FieldRule, FieldType, Schema, define_schema

ASSESSMENT_TYPES = ("quiz", "test", "assignment", "project")


def _non_empty_list(value) -> bool:
    return isinstance(value, (list, tuple)) and len(value) > 0


VALIDATION_SCHEMAS: Mapping[str, Schema] = MappingProxyType({
    "updateProgress": define_schema(
        courseId=FieldRule(required=True, type=FieldType.STRING),
        percentage=FieldRule(required=True, type=FieldType.NUMBER, min=0, max=100),
        lessonId=FieldRule(type=FieldType.STRING),
        timeSpent=FieldRule(type=FieldType.NUMBER, min=0),
        completed=FieldRule(type=FieldType.BOOLEAN),
    ),
    "submitAssessment": define_schema(
        assessmentId=FieldRule(required=True, type=FieldType.STRING),
        score=FieldRule(required=True, type=FieldType.NUMBER, min=0),
        totalScore=FieldRule(required=True, type=FieldType.NUMBER, min=0),
        answers=FieldRule(type=FieldType.ARRAY),
        timeTaken=FieldRule(type=FieldType.NUMBER, min=0),
    ),
    "createAssessment": define_schema(
        courseId=FieldRule(required=True, type=FieldType.STRING),
        title=FieldRule(required=True, type=FieldType.STRING, min_length=3, max_length=100),
        type=FieldRule(required=True, type=FieldType.STRING, enum=ASSESSMENT_TYPES),
        totalQuestions=FieldRule(type=FieldType.NUMBER, min=0),
        passingScore=FieldRule(type=FieldType.NUMBER, min=0, max=100),
    ),
    "generateCertificate": define_schema(
        userId=FieldRule(required=True, type=FieldType.STRING),
        courseId=FieldRule(required=True, type=FieldType.STRING),
    ),
    "verifyCertificate": define_schema(
        certificateId=FieldRule(required=True, type=FieldType.STRING),
    ),
    "revokeCertificate": define_schema(
        certificateId=FieldRule(required=True, type=FieldType.STRING),
        reason=FieldRule(type=FieldType.STRING),
    ),
    "bulkCheckEligibility": define_schema(
        courseId=FieldRule(required=True, type=FieldType.STRING),
        userIds=FieldRule(
            required=True,
            type=FieldType.ARRAY,
            validate=_non_empty_list,
            validate_message="userIds must be a non-empty array",
        ),
    ),
})


def lookup(operation_name: str) -> Optional[Schema]:
    """Return the schema for an operation, or None when it is unvalidated."""
    return VALIDATION_SCHEMAS.get(operation_name)
