"""Date parsing and normalization utilities."""

import re
from datetime import date, datetime
from typing import Optional

# Common date format patterns for spreadsheet cells
#
# IMPORTANT - Date Format Ambiguity:
# Slash- and dash-separated dates are tried as US format (MM/DD/YYYY) first,
# then as day-first (DD/MM/YYYY) when the US reading is not a valid date.
# "03/04/2024" is therefore March 4th; "15/01/2024" is January 15th.
#
# Two-digit years use Python's strptime pivot:
# - Years 00-68 map to 2000-2068
# - Years 69-99 map to 1969-1999
#
DATE_PATTERNS = [
    # ISO format (most common, try first)
    (r"^(\d{4})-(\d{1,2})-(\d{1,2})$", "%Y-%m-%d"),
    (r"^(\d{4})/(\d{1,2})/(\d{1,2})$", "%Y/%m/%d"),
    # US formats (MM/DD/YYYY)
    (r"^(\d{1,2})/(\d{1,2})/(\d{4})$", "%m/%d/%Y"),
    (r"^(\d{1,2})/(\d{1,2})/(\d{2})$", "%m/%d/%y"),
    (r"^(\d{1,2})-(\d{1,2})-(\d{4})$", "%m-%d-%Y"),
    (r"^(\d{1,2})-(\d{1,2})-(\d{2})$", "%m-%d-%y"),
    # Day-first fallbacks for the same shapes
    (r"^(\d{1,2})/(\d{1,2})/(\d{4})$", "%d/%m/%Y"),
    (r"^(\d{1,2})/(\d{1,2})/(\d{2})$", "%d/%m/%y"),
    (r"^(\d{1,2})-(\d{1,2})-(\d{4})$", "%d-%m-%Y"),
    (r"^(\d{1,2})-(\d{1,2})-(\d{2})$", "%d-%m-%y"),
    # European formats (DD.MM.YYYY)
    (r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$", "%d.%m.%Y"),
    (r"^(\d{1,2})\.(\d{1,2})\.(\d{2})$", "%d.%m.%y"),
    # Text month formats
    (r"^(\d{1,2})-(\w{3})-(\d{4})$", "%d-%b-%Y"),
    (r"^(\d{1,2})-(\w{3})-(\d{2})$", "%d-%b-%y"),
    (r"^(\d{1,2})\s+(\w{3})\s+(\d{4})$", "%d %b %Y"),
    (r"^(\d{1,2})\s+(\w+)\s+(\d{4})$", "%d %B %Y"),
    (r"^(\w{3})\s+(\d{1,2}),?\s+(\d{4})$", "%b %d, %Y"),
    (r"^(\w+)\s+(\d{1,2}),?\s+(\d{4})$", "%B %d, %Y"),
    # Compact formats
    (r"^(\d{8})$", "%Y%m%d"),
]

# Compiled regex patterns for efficiency
COMPILED_PATTERNS = [(re.compile(pattern), fmt) for pattern, fmt in DATE_PATTERNS]

MONTH_ABBREVIATIONS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


def parse_date(raw_date: str) -> date:
    """Parse a raw date string into a date object.

    Handles various formats:
    - ISO: 2024-01-15, 2024-01-15T10:30:00
    - US: 01/15/2024, 1/15/24, 01-15-2024
    - Day-first: 15/01/2024, 15-01-24
    - European: 15.01.2024
    - Text: 15-Jan-2024, 15 Jan 2024, Jan 15, 2024, January 15, 2024
    - Compact: 20240115

    Args:
        raw_date: The raw date string to parse.

    Returns:
        Parsed date object.

    Raises:
        ValueError: If the date cannot be parsed.
    """
    if not raw_date:
        raise ValueError("Empty date string")

    date_str = str(raw_date).strip()
    if not date_str:
        raise ValueError("Empty date string after stripping whitespace")

    for pattern, fmt in COMPILED_PATTERNS:
        if pattern.match(date_str):
            try:
                return datetime.strptime(date_str, fmt).date()
            except ValueError:
                # Pattern matched but format didn't work, try next
                continue

    # ISO timestamps such as "2024-01-15 10:30:00"
    try:
        return datetime.fromisoformat(date_str).date()
    except ValueError:
        pass

    raise ValueError(f"Cannot parse date: '{raw_date}'")


def build_date(year: int, month: int, day: int) -> Optional[date]:
    """Construct a date, expanding two-digit years into the 2000s.

    Args:
        year: Two- or four-digit year.
        month: Month number.
        day: Day of month.

    Returns:
        The date, or None if the components are not a valid calendar date.
    """
    if year < 100:
        year += 2000
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_numeric_date(raw_date: str) -> Optional[date]:
    """Parse a numeric "D-M-Y" / "D/M/Y" date as written in bank alerts.

    Day-first is preferred; month-first is used only when the day-first
    reading is not a valid calendar date ("01/15/2025").

    Args:
        raw_date: Date text such as "15-01-2025" or "5/1/25".

    Returns:
        Parsed date or None.
    """
    parts = re.split(r"[-/]", raw_date.strip())
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return None

    first, second, year = (int(p) for p in parts)
    return build_date(year, second, first) or build_date(year, first, second)


def parse_month_name_date(raw_date: str) -> Optional[date]:
    """Parse a "15 Jan 2025" / "3 March 25" style date.

    Args:
        raw_date: Date text with a day, an English month name and a year.

    Returns:
        Parsed date or None.
    """
    match = re.match(r"^\s*(\d{1,2})\s+([A-Za-z]+)\s*(\d{2,4})\s*$", raw_date)
    if not match:
        return None

    month = MONTH_ABBREVIATIONS.get(match.group(2)[:3].lower())
    if month is None:
        return None
    return build_date(int(match.group(3)), month, int(match.group(1)))


def date_to_iso(d: date) -> str:
    """Convert a date to ISO 8601 format (YYYY-MM-DD).

    Args:
        d: Date to convert.

    Returns:
        ISO format date string.
    """
    return d.isoformat()


def safe_parse_date(raw_date: str | None, default: date | None = None) -> date | None:
    """Safely parse a date string, returning default on failure.

    Args:
        raw_date: The raw date string to parse.
        default: Default value if parsing fails.

    Returns:
        Parsed date or default.
    """
    if not raw_date:
        return default

    try:
        return parse_date(raw_date)
    except ValueError:
        return default


def parse_iso_date(raw_date: str) -> Optional[date]:
    """Parse a "YYYY-M-D" date without raising.

    Args:
        raw_date: Date text such as "2025-01-15".

    Returns:
        Parsed date or None.
    """
    parts = raw_date.strip().split("-")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return None
    year, month, day = (int(p) for p in parts)
    return build_date(year, month, day)
