"""Business-rule validation for decoded OHLCV rows."""

from __future__ import annotations

from datetime import date

from ohlcv_ingest.ingestion.models import Row, ValidationError


def validate_row(row: Row, *, today: date | None = None) -> ValidationError | None:
    """Check a decoded row against the OHLC business rules.

    Rules are applied in order and the first violation is returned:
    - low <= high
    - low <= open <= high
    - low <= close <= high
    - open, high, low, close > 0
    - date is not after today

    Args:
        row: A successfully decoded row.
        today: Reference date for the future-date rule. Defaults to the
            system date.

    Returns:
        The first violation found, or None if the row is valid.
    """
    if row.high < row.low:
        return ValidationError(
            "high",
            f"high price ({row.high:.2f}) must be greater than or equal to "
            f"low price ({row.low:.2f})",
        )

    if row.open < row.low or row.open > row.high:
        return ValidationError(
            "open",
            f"open price ({row.open:.2f}) must be between "
            f"low ({row.low:.2f}) and high ({row.high:.2f})",
        )

    if row.close < row.low or row.close > row.high:
        return ValidationError(
            "close",
            f"close price ({row.close:.2f}) must be between "
            f"low ({row.low:.2f}) and high ({row.high:.2f})",
        )

    if min(row.open, row.high, row.low, row.close) <= 0:
        return ValidationError(
            "prices",
            f"all prices must be positive (open={row.open:.2f}, "
            f"high={row.high:.2f}, low={row.low:.2f}, close={row.close:.2f})",
        )

    reference = today if today is not None else date.today()
    if row.date > reference:
        return ValidationError(
            "date",
            f"date ({row.date.isoformat()}) cannot be in the future",
        )

    return None
