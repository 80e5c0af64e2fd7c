"""
Request-body sanitization applied before validation.

This is tag-break prevention only: angle brackets are removed from strings so
user text cannot open or close markup. It is NOT an HTML sanitizer and does
not escape quotes, entities or URLs.
"""
from typing import Any
import re

_ANGLE_BRACKETS = re.compile(r"[<>]")


def sanitize_string(value: str) -> str:
    """Strip angle brackets, then surrounding whitespace."""
    # Bracket removal runs first so a second pass never finds new edge whitespace.
    return _ANGLE_BRACKETS.sub("", value).strip()


def sanitize(value: Any) -> Any:
    """
    Recursively sanitize a decoded JSON value.

    Strings are cleaned, dicts are rebuilt key by key with sanitized values.
    Lists, numbers, booleans and None are returned as they are. List elements
    are not walked, so strings inside arrays keep their angle brackets.
    """
    if isinstance(value, str):
        return sanitize_string(value)
    if isinstance(value, dict):
        return {key: sanitize(item) for key, item in value.items()}
    return value
