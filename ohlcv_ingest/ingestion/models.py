"""Ingestion domain models: price rows, validation results, and upload reports."""

from __future__ import annotations

import enum
import json
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Protocol

# Columns every upload must carry, in decode order
REQUIRED_COLUMNS: tuple[str, ...] = (
    "symbol",
    "date",
    "open",
    "high",
    "low",
    "close",
    "volume",
)


class IngestorState(enum.Enum):
    """Lifecycle state of a single upload."""

    READING = "reading"
    FLUSHING = "flushing"
    DONE = "done"


@dataclass(frozen=True)
class Row:
    """One decoded daily OHLCV record.

    Attributes:
        symbol: Upper-cased, trimmed ticker symbol.
        date: Trading day.
        open: Opening price.
        high: Highest price.
        low: Lowest price.
        close: Closing price.
        volume: Traded volume (0 when the source cell was blank).
        line: Source line the row was decoded from (not part of equality).
    """

    symbol: str
    date: date
    open: float
    high: float
    low: float
    close: float
    volume: int = 0
    line: int = field(default=0, compare=False)

    @property
    def key(self) -> tuple[str, date]:
        """Natural key used for conflict resolution in the store."""
        return (self.symbol, self.date)


@dataclass
class ValidationError:
    """A business-rule violation for a decoded row.

    Attributes:
        field: The field (or field group) that violated the rule.
        message: Description of the violation, used verbatim in reports.
    """

    field: str
    message: str


@dataclass
class PersistedRecord:
    """A stored daily record as returned by the read queries.

    Attributes:
        id: Surrogate identifier assigned on first insert.
        symbol: Ticker symbol.
        date: Trading day.
        open: Opening price.
        high: Highest price.
        low: Lowest price.
        close: Closing price.
        volume: Traded volume.
        created_at: When the (symbol, date) key was first written (UTC).
        updated_at: When the record was last overwritten (UTC).
    """

    id: int
    symbol: str
    date: date
    open: float
    high: float
    low: float
    close: float
    volume: int
    created_at: datetime
    updated_at: datetime


@dataclass
class IngestionReport:
    """Outcome of one upload.

    Attributes:
        total_rows: Data records pulled from the file (decode attempted).
        success_count: Rows committed to the store.
        failed_count: Rows rejected by decoding, validation, or a failed batch.
        processed_bytes: Input size as reported by the caller.
        errors: Capped list of human-readable error entries.
        message: One-line summary.
    """

    total_rows: int = 0
    success_count: int = 0
    failed_count: int = 0
    processed_bytes: int = 0
    errors: list[str] = field(default_factory=list)
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the report as a plain dict suitable for serialization."""
        return asdict(self)

    def to_json(self) -> str:
        """Serialize the report to a JSON string.

        Returns:
            JSON string representation of the report.
        """
        return json.dumps(self.to_dict(), indent=2)

    def summary(self) -> str:
        """Generate a human-readable upload summary.

        Returns:
            Formatted summary string.
        """
        return (
            f"Ingestion Summary:\n"
            f"  Message:         {self.message}\n"
            f"  Total rows:      {self.total_rows}\n"
            f"  Succeeded:       {self.success_count}\n"
            f"  Failed:          {self.failed_count}\n"
            f"  Processed bytes: {self.processed_bytes}\n"
            f"  Errors reported: {len(self.errors)}"
        )


class UpsertPort(Protocol):
    """Storage capability the ingestor depends on.

    Implementations write ``rows`` keyed on ``(symbol, date)``, overwriting
    prices, volume, and the update timestamp on conflict. The call is
    atomic: it commits every row or raises ``BatchPersistError``.
    """

    def upsert(self, rows: Sequence[Row], batch_size: int) -> int:
        """Persist ``rows`` and return how many were written."""
        ...
