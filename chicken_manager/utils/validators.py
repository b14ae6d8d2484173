"""
Input validation utilities
"""
import re
from typing import Any, Optional

# Canonical 36-character hyphenated UUID, versions 1-5, RFC 4122 variant
UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_valid_uuid(value: Any) -> bool:
    """Check whether a client-supplied id may be used as an upsert target"""
    return isinstance(value, str) and bool(UUID_PATTERN.match(value))


def clean_text(value: Optional[str]) -> Optional[str]:
    """Trim a free-text field, collapsing blanks to None"""
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_non_negative(value: float, field: str) -> float:
    if value < 0:
        raise ValueError(f"{field} cannot be negative")
    return value
