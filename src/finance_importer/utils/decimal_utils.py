"""Decimal utilities for monetary parsing.

All amounts are carried as Decimal to avoid floating-point drift. Parsing
here is lenient by contract: malformed numbers degrade to a default rather
than raising, except for parse_amount which callers use inside regex
extraction where a failed conversion means "try the next pattern".
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

ZERO = Decimal("0")

# Leading signed number, the same prefix a float parser would accept
_LEADING_NUMBER = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+))")

# Everything that is not a digit, dot or minus sign
_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def parse_amount(raw_amount: str) -> Decimal:
    """Parse an amount captured from free text, e.g. "12,500.00".

    Thousands separators (commas) are removed before conversion.

    Args:
        raw_amount: Digits with optional commas and a decimal point.

    Returns:
        Parsed Decimal.

    Raises:
        ValueError: If nothing numeric remains after stripping commas.
    """
    if not raw_amount:
        raise ValueError("Empty amount string")

    cleaned = raw_amount.replace(",", "").strip()
    try:
        return Decimal(cleaned)
    except InvalidOperation as e:
        raise ValueError(f"Cannot parse amount '{raw_amount}': {e}") from e


def leading_decimal(raw: Optional[str], default: Decimal = ZERO) -> Decimal:
    """Parse the leading number of a string, ignoring trailing garbage.

    "12.5.3" parses as 12.5 and "5-3" as 5; strings without a leading
    number return the default.

    Args:
        raw: String to parse.
        default: Value returned when no leading number exists.

    Returns:
        Parsed Decimal or default.
    """
    if raw is None:
        return default
    match = _LEADING_NUMBER.match(str(raw))
    if not match:
        return default
    try:
        return Decimal(match.group(1))
    except InvalidOperation:
        return default


def parse_cell_amount(raw: Optional[object]) -> Decimal:
    """Parse a spreadsheet amount cell such as "₹ -1,250.50" or "$40".

    Every character other than digits, dots and minus signs is stripped
    before the leading number is read. Unparsable cells give 0.

    Args:
        raw: Raw cell value.

    Returns:
        Signed Decimal amount (0 when unparsable).
    """
    if raw is None:
        return ZERO
    return leading_decimal(_NON_NUMERIC.sub("", str(raw)))


def parse_grouped_number(value: Optional[object]) -> Decimal:
    """Parse a number written with comma digit grouping ("1,23,456.50").

    Handles both western and Indian lakh grouping since only the commas are
    removed.

    Args:
        value: Raw value (string, int, Decimal or None).

    Returns:
        Parsed Decimal, 0 when empty or unparsable.
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    return leading_decimal(str(value).replace(",", ""))


def format_currency(
    amount: Decimal,
    decimal_places: int = 2,
    include_sign: bool = True,
) -> str:
    """Format a Decimal amount for display.

    Args:
        amount: The amount to format.
        decimal_places: Number of decimal places (default 2).
        include_sign: Whether to include sign for negative amounts.

    Returns:
        Formatted string like "-1234.56" or "1234.56".
    """
    quantize_str = "0." + "0" * decimal_places
    rounded = amount.quantize(Decimal(quantize_str), rounding=ROUND_HALF_UP)

    if include_sign and rounded < 0:
        return str(rounded)
    return str(abs(rounded))


def safe_decimal(value: Optional[object], default: Decimal = ZERO) -> Decimal:
    """Safely convert a value to Decimal.

    Args:
        value: Value to convert (string, int, float, or None).
        default: Default value if conversion fails.

    Returns:
        Decimal value or default.
    """
    if value is None:
        return default

    try:
        if isinstance(value, Decimal):
            return value
        if isinstance(value, (int, str)):
            return Decimal(str(value).replace(",", "").strip())
        if isinstance(value, float):
            # Convert float to string first for precision
            return Decimal(str(value))
        return default
    except (InvalidOperation, ValueError):
        return default
