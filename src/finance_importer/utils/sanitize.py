"""Sanitization utilities for safe spreadsheet output."""

from typing import Optional


# Characters that trigger formula execution in spreadsheet applications
# when they appear at the start of a cell value.
# Includes | for DDE (Dynamic Data Exchange) attack prevention
_FORMULA_CHARS = ("=", "+", "-", "@", "\t", "\r", "\n", "|")


def sanitize_for_csv(value: Optional[str]) -> Optional[str]:
    """Sanitize a string value for safe CSV/Excel output.

    Merchant names and SMS bodies come from untrusted text, so values that
    start with a formula-triggering character are prefixed with a single
    quote (the OWASP mitigation for CSV injection).

    Args:
        value: String value to sanitize, or None.

    Returns:
        Sanitized string, or None if input was None.
    """
    if value is None:
        return None

    if not value:
        return value

    if value.startswith(_FORMULA_CHARS):
        return "'" + value

    return value


def truncate(value: str, max_length: int) -> str:
    """Trim whitespace and cut a string to at most max_length characters.

    Args:
        value: String to shorten.
        max_length: Maximum length to keep.

    Returns:
        Trimmed, truncated string.
    """
    return value.strip()[:max_length]
