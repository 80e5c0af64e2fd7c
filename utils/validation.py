"""
Declarative request-body validator.

Each field of a schema is checked by an ordered list of rule evaluators. Every
evaluator may produce a message; the last message produced for a field is the
one reported, so the custom predicate (evaluated last) wins any conflict.
"""
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from models.validation import FieldRule, FieldType, Schema

ValidationErrorSet = Dict[str, str]

# (rule name, evaluator(field, value, rule) -> message or None)
RuleEvaluator = Tuple[str, Callable[[str, Any, FieldRule], Optional[str]]]

_MISSING = object()


def runtime_type(value: Any) -> str:
    """Name the primitive kind of a decoded JSON value."""
    if isinstance(value, bool):
        return FieldType.BOOLEAN.value
    if isinstance(value, (int, float)):
        return FieldType.NUMBER.value
    if isinstance(value, str):
        return FieldType.STRING.value
    if isinstance(value, (list, tuple)):
        return FieldType.ARRAY.value
    if isinstance(value, dict):
        return FieldType.OBJECT.value
    return type(value).__name__


def format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_type(field: str, value: Any, rule: FieldRule) -> Optional[str]:
    if rule.type is None:
        return None
    if runtime_type(value) != rule.type.value:
        return f"{field} must be of type {rule.type.value}"
    return None


def _string_rules_apply(value: Any, rule: FieldRule) -> bool:
    return rule.type == FieldType.STRING and isinstance(value, str)


def _check_min_length(field: str, value: Any, rule: FieldRule) -> Optional[str]:
    if _string_rules_apply(value, rule) and rule.min_length and len(value) < rule.min_length:
        return f"{field} must be at least {rule.min_length} characters"
    return None


def _check_max_length(field: str, value: Any, rule: FieldRule) -> Optional[str]:
    if _string_rules_apply(value, rule) and rule.max_length and len(value) > rule.max_length:
        return f"{field} must not exceed {rule.max_length} characters"
    return None


def _check_pattern(field: str, value: Any, rule: FieldRule) -> Optional[str]:
    if _string_rules_apply(value, rule) and rule.pattern is not None and not rule.pattern.search(value):
        return f"{field} format is invalid"
    return None


def _number_rules_apply(value: Any, rule: FieldRule) -> bool:
    return rule.type == FieldType.NUMBER and _is_number(value)


def _check_min(field: str, value: Any, rule: FieldRule) -> Optional[str]:
    if _number_rules_apply(value, rule) and rule.min is not None and value < rule.min:
        return f"{field} must be at least {format_number(rule.min)}"
    return None


def _check_max(field: str, value: Any, rule: FieldRule) -> Optional[str]:
    if _number_rules_apply(value, rule) and rule.max is not None and value > rule.max:
        return f"{field} must not exceed {format_number(rule.max)}"
    return None


def _check_enum(field: str, value: Any, rule: FieldRule) -> Optional[str]:
    if rule.enum is None:
        return None
    # bool == int in Python; membership must not accept True for 1.
    if not any(runtime_type(value) == runtime_type(option) and value == option for option in rule.enum):
        return f"{field} must be one of: {', '.join(str(option) for option in rule.enum)}"
    return None


def _check_custom(field: str, value: Any, rule: FieldRule) -> Optional[str]:
    if rule.validate is not None and not rule.validate(value):
        return rule.validate_message or f"{field} validation failed"
    return None


RULE_EVALUATORS: List[RuleEvaluator] = [
    ("type", _check_type),
    ("min_length", _check_min_length),
    ("max_length", _check_max_length),
    ("pattern", _check_pattern),
    ("min", _check_min),
    ("max", _check_max),
    ("enum", _check_enum),
    ("validate", _check_custom),
]


def validate_field(field: str, value: Any, rule: FieldRule) -> Optional[str]:
    """Return the reported message for one field, or None when it passes."""
    if rule.required and (value is _MISSING or value is None or value == ""):
        return f"{field} is required"

    if value is _MISSING or value is None:
        return None

    message = None
    for _name, evaluator in RULE_EVALUATORS:
        outcome = evaluator(field, value, rule)
        if outcome:
            message = outcome
    return message


def validate(schema: Schema, record: Mapping[str, Any]) -> ValidationErrorSet:
    """
    Validate a decoded request body against a schema.

    Returns a mapping of field name to message for every failing field; an
    empty mapping means the record is acceptable. Keys outside the schema are
    ignored.
    """
    errors: ValidationErrorSet = {}
    if record is None:
        record = {}

    for field, rule in schema.items():
        message = validate_field(field, record.get(field, _MISSING), rule)
        if message:
            errors[field] = message

    return errors
