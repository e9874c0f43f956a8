"""DuckDB connection management and the batch upsert store."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path

import duckdb
import polars as pl

from ohlcv_ingest.ingestion.dedup import deduplicate_batch
from ohlcv_ingest.ingestion.errors import BatchPersistError
from ohlcv_ingest.ingestion.models import Row

DEFAULT_DB_PATH: str = "data/warehouse/prices.duckdb"

_HISTORICAL_DATA_SEQ_DDL: str = """
CREATE SEQUENCE IF NOT EXISTS historical_data_id_seq START 1;
"""

# Timestamps are stored as naive UTC
_HISTORICAL_DATA_DDL: str = """
CREATE TABLE IF NOT EXISTS historical_data (
    id          BIGINT PRIMARY KEY DEFAULT nextval('historical_data_id_seq'),
    symbol      VARCHAR NOT NULL,
    date        DATE NOT NULL,
    open        DOUBLE NOT NULL,
    high        DOUBLE NOT NULL,
    low         DOUBLE NOT NULL,
    close       DOUBLE NOT NULL,
    volume      BIGINT NOT NULL DEFAULT 0,
    created_at  TIMESTAMP NOT NULL,
    updated_at  TIMESTAMP NOT NULL,
    UNIQUE (symbol, date)
);
"""

_UPSERT_SQL: str = """
INSERT INTO historical_data (
    symbol, date, open, high, low, close, volume, created_at, updated_at
)
SELECT
    symbol, date, open, high, low, close, volume, created_at, updated_at
FROM _staged_prices
ON CONFLICT (symbol, date) DO UPDATE SET
    open = EXCLUDED.open,
    high = EXCLUDED.high,
    low = EXCLUDED.low,
    close = EXCLUDED.close,
    volume = EXCLUDED.volume,
    updated_at = EXCLUDED.updated_at
"""

STAGED_SCHEMA: dict[str, pl.DataType] = {
    "symbol": pl.Utf8,
    "date": pl.Date,
    "open": pl.Float64,
    "high": pl.Float64,
    "low": pl.Float64,
    "close": pl.Float64,
    "volume": pl.Int64,
}

logger = logging.getLogger("ingest_prices")


def utc_now() -> datetime:
    """Return the current UTC time as a naive datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


def connect(db_path: str | Path = DEFAULT_DB_PATH) -> duckdb.DuckDBPyConnection:
    """Create a DuckDB connection, ensuring the parent directory exists.

    Args:
        db_path: Path to the DuckDB database file.

    Returns:
        An open DuckDB connection.
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Connecting to DuckDB at %s", db_path)
    return duckdb.connect(str(db_path))


def create_tables(conn: duckdb.DuckDBPyConnection) -> None:
    """Create the historical_data table if it does not exist.

    Safe to call multiple times.

    Args:
        conn: An open DuckDB connection.
    """
    conn.execute(_HISTORICAL_DATA_SEQ_DDL)
    conn.execute(_HISTORICAL_DATA_DDL)
    logger.info("Warehouse tables ready")


def table_exists(conn: duckdb.DuckDBPyConnection, table_name: str) -> bool:
    """Check whether a table exists in the DuckDB database.

    Args:
        conn: An open DuckDB connection.
        table_name: Name of the table to check.

    Returns:
        True if the table exists, False otherwise.
    """
    result = conn.execute(
        """
        SELECT COUNT(*)
        FROM information_schema.tables
        WHERE table_name = ?
        """,
        [table_name],
    ).fetchone()
    return result is not None and result[0] > 0


def stage_rows(rows: Sequence[Row]) -> pl.DataFrame:
    """Convert decoded rows into a typed DataFrame for bulk loading.

    Args:
        rows: Validated rows in file order.

    Returns:
        DataFrame with the STAGED_SCHEMA columns.
    """
    return pl.DataFrame(
        {
            "symbol": [row.symbol for row in rows],
            "date": [row.date for row in rows],
            "open": [row.open for row in rows],
            "high": [row.high for row in rows],
            "low": [row.low for row in rows],
            "close": [row.close for row in rows],
            "volume": [row.volume for row in rows],
        },
        schema=STAGED_SCHEMA,
    )


def upsert_rows(
    conn: duckdb.DuckDBPyConnection,
    rows: Sequence[Row],
    *,
    batch_size: int,
    now: datetime | None = None,
) -> int:
    """Insert or update rows keyed on (symbol, date) in one transaction.

    Rows are written in chunks of ``batch_size``. On conflict the prices,
    volume, and updated_at are overwritten; id and created_at are kept.
    Any failure rolls the whole call back.

    Args:
        conn: An open DuckDB connection with tables created.
        rows: Validated rows to persist.
        batch_size: Maximum rows per INSERT statement.
        now: Timestamp to record as created_at/updated_at. Defaults to now.

    Returns:
        Number of input rows persisted.

    Raises:
        ValueError: If batch_size is not positive.
        BatchPersistError: If DuckDB rejects the write.
    """
    if batch_size <= 0:
        msg = f"batch_size must be positive, got {batch_size}"
        raise ValueError(msg)
    if not rows:
        return 0

    stamp = now if now is not None else utc_now()
    staged, _ = deduplicate_batch(stage_rows(rows))
    staged = staged.with_columns(
        pl.lit(stamp).cast(pl.Datetime("us")).alias("created_at"),
        pl.lit(stamp).cast(pl.Datetime("us")).alias("updated_at"),
    )

    try:
        conn.begin()
    except duckdb.Error as exc:
        msg = f"failed to start transaction for {len(rows)} rows: {exc}"
        raise BatchPersistError(msg, row_count=len(rows)) from exc

    try:
        for offset in range(0, len(staged), batch_size):
            chunk = staged.slice(offset, batch_size)
            conn.register("_staged_prices", chunk.to_arrow())
            try:
                conn.execute(_UPSERT_SQL)
            finally:
                conn.unregister("_staged_prices")
        conn.commit()
    except duckdb.Error as exc:
        conn.rollback()
        msg = f"failed to upsert {len(rows)} rows: {exc}"
        raise BatchPersistError(msg, row_count=len(rows)) from exc

    logger.info("Upserted %d records into historical_data", len(rows))
    return len(rows)


class DuckDBPriceStore:
    """Upsert store backed by a DuckDB connection.

    The connection is owned by the caller; the store never closes it.
    """

    def __init__(
        self,
        conn: duckdb.DuckDBPyConnection,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Bind the store to a connection.

        Args:
            conn: An open DuckDB connection with tables created.
            clock: Source of created_at/updated_at timestamps (naive UTC).
        """
        self.conn = conn
        self.clock = clock

    def upsert(self, rows: Sequence[Row], batch_size: int) -> int:
        """Persist a batch atomically; see ``upsert_rows``."""
        return upsert_rows(self.conn, rows, batch_size=batch_size, now=self.clock())
