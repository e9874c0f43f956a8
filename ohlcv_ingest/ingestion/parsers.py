"""Cell parsers for dates, prices, and volumes.

Each parser trims the raw text and raises ``ValueError`` with a short,
report-ready message when the cell cannot be parsed.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime

# Tried in order; the first match wins (e.g. 03-04-2024 is 3 April).
DATE_FORMATS: tuple[tuple[str, str], ...] = (
    ("%Y-%m-%d", "YYYY-MM-DD"),
    ("%m/%d/%Y", "MM/DD/YYYY"),
    ("%d-%m-%Y", "DD-MM-YYYY"),
    ("%Y/%m/%d", "YYYY/MM/DD"),
    ("%m-%d-%Y", "MM-DD-YYYY"),
)

SUPPORTED_DATE_FORMATS: str = ", ".join(label for _, label in DATE_FORMATS)

# strptime accepts unpadded fields, so each layout is also matched digit for digit
_DATE_SHAPES: dict[str, re.Pattern[str]] = {
    label: re.compile(re.sub("[YMD]", "[0-9]", label)) for _, label in DATE_FORMATS
}

# Largest volume the warehouse BIGINT column can hold
MAX_INTEGER: int = 2**63 - 1


def parse_date(text: str) -> date:
    """Parse a calendar date using the supported formats in priority order.

    Args:
        text: Raw cell text.

    Returns:
        The parsed date.

    Raises:
        ValueError: If no supported format matches.
    """
    value = text.strip()
    for pattern, label in DATE_FORMATS:
        if not _DATE_SHAPES[label].fullmatch(value):
            continue
        try:
            return datetime.strptime(value, pattern).date()
        except ValueError:
            continue
    msg = f"invalid date format, supported formats: {SUPPORTED_DATE_FORMATS}"
    raise ValueError(msg)


def parse_decimal(text: str) -> float:
    """Parse a non-negative price, tolerating thousands commas and a leading ``$``.

    Args:
        text: Raw cell text, e.g. ``"$1,234.50"``.

    Returns:
        The parsed value.

    Raises:
        ValueError: If the cell is empty, not a finite number, or negative.
    """
    value = text.strip()
    if not value:
        raise ValueError("must be a valid number")

    value = value.replace(",", "").removeprefix("$")
    try:
        number = float(value)
    except ValueError:
        raise ValueError("must be a valid number") from None

    if "_" in value or not math.isfinite(number):
        raise ValueError("must be a valid number")
    if number < 0:
        raise ValueError("negative value not allowed")
    return number


def parse_integer(text: str) -> int:
    """Parse a non-negative whole number; a blank cell means zero.

    Args:
        text: Raw cell text, e.g. ``"1,200,000"``.

    Returns:
        The parsed value.

    Raises:
        ValueError: If the cell holds anything but ASCII digits and commas,
            or the value does not fit in a signed 64-bit column.
    """
    value = text.strip().replace(",", "")
    if not value:
        return 0

    if not (value.isascii() and value.isdigit()):
        raise ValueError("must be a valid non-negative integer")

    number = int(value)
    if number > MAX_INTEGER:
        raise ValueError("value out of range")
    return number
