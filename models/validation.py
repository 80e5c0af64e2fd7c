"""
Field rule types for declarative request-body validation.
"""
import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Tuple


class FieldType(str, Enum):
    """Primitive kinds a request field may declare."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True)
class FieldRule:
    """Validation contract for a single request field."""
    required: bool = False
    type: Optional[FieldType] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min: Optional[float] = None
    max: Optional[float] = None
    enum: Optional[Tuple[Any, ...]] = None
    pattern: Optional[re.Pattern] = None
    validate: Optional[Callable[[Any], bool]] = None
    validate_message: Optional[str] = None


# Read-only, insertion-ordered field name -> rule mapping.
Schema = Mapping[str, FieldRule]


def define_schema(**fields: FieldRule) -> Schema:
    """Freeze a field table; keyword order is the evaluation order."""
    return MappingProxyType(dict(fields))
