"""Input validation utilities."""

import re
from typing import List, Optional, Tuple


def validate_email(email: str) -> Tuple[bool, str]:
    """
    Validate email address format.

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email or len(email) > 255:
        return False, "Email address is required and must be less than 255 characters"

    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'

    if not re.match(pattern, email):
        return False, "Invalid email address format"

    return True, ""


def sanitize_input(text: str, max_length: int = 1000) -> str:
    """
    Sanitize user input by removing null bytes, trimming and capping length.

    Args:
        text: Input text to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    text = text.replace('\x00', '')

    if len(text) > max_length:
        text = text[:max_length]

    return text.strip()


def parse_csv_list(value: Optional[str]) -> List[str]:
    """
    Split a comma-separated form value into trimmed, non-empty items.

    >>> parse_csv_list(" a, b ,,c ")
    ['a', 'b', 'c']
    """
    if not value:
        return []

    return [item.strip() for item in value.split(",") if item.strip()]


def parse_optional_int(value: Optional[str]) -> Optional[int]:
    """Parse a numeric form value, returning None for blanks and non-numbers."""
    if value is None or not str(value).strip():
        return None

    try:
        number = float(value)
    except (TypeError, ValueError):
        return None

    if number != number or number in (float("inf"), float("-inf")):
        return None

    return int(round(number))
