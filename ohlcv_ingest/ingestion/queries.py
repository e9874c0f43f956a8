"""Read-side lookups over the historical_data table.

Kept apart from the upsert store: the ingestion pipeline never reads back
what it writes.
"""

from __future__ import annotations

from datetime import date
from typing import Any

import duckdb

from ohlcv_ingest.ingestion.models import PersistedRecord

_SELECT_COLUMNS: str = (
    "id, symbol, date, open, high, low, close, volume, created_at, updated_at"
)


def _build_filters(
    *,
    symbol: str | None,
    start_date: date | None,
    end_date: date | None,
) -> tuple[str, list[Any]]:
    """Build a WHERE clause and its parameters from optional filters."""
    clauses: list[str] = []
    params: list[Any] = []
    if symbol:
        clauses.append("symbol = ?")
        params.append(symbol.strip().upper())
    if start_date is not None:
        clauses.append("date >= ?")
        params.append(start_date)
    if end_date is not None:
        clauses.append("date <= ?")
        params.append(end_date)

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


def _to_record(row: tuple[Any, ...]) -> PersistedRecord:
    return PersistedRecord(*row)


def find_by_id(
    conn: duckdb.DuckDBPyConnection,
    record_id: int,
) -> PersistedRecord | None:
    """Fetch a single record by its surrogate id.

    Args:
        conn: An open DuckDB connection with tables created.
        record_id: The record's id.

    Returns:
        The record, or None if no record has that id.
    """
    row = conn.execute(
        f"SELECT {_SELECT_COLUMNS} FROM historical_data WHERE id = ?",
        [record_id],
    ).fetchone()
    return _to_record(row) if row is not None else None


def find_by_symbol(
    conn: duckdb.DuckDBPyConnection,
    symbol: str,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[PersistedRecord]:
    """Fetch every record for a symbol, optionally bounded by date, oldest first.

    Args:
        conn: An open DuckDB connection with tables created.
        symbol: Ticker symbol (case-insensitive).
        start_date: Inclusive lower bound.
        end_date: Inclusive upper bound.

    Returns:
        Matching records ordered by date ascending.
    """
    where, params = _build_filters(
        symbol=symbol, start_date=start_date, end_date=end_date,
    )
    rows = conn.execute(
        f"SELECT {_SELECT_COLUMNS} FROM historical_data {where} ORDER BY date ASC",
        params,
    ).fetchall()
    return [_to_record(row) for row in rows]


def count(
    conn: duckdb.DuckDBPyConnection,
    *,
    symbol: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> int:
    """Count records matching the optional filters."""
    where, params = _build_filters(
        symbol=symbol, start_date=start_date, end_date=end_date,
    )
    result = conn.execute(
        f"SELECT COUNT(*) FROM historical_data {where}",
        params,
    ).fetchone()
    return int(result[0]) if result is not None else 0


def find_all(
    conn: duckdb.DuckDBPyConnection,
    *,
    symbol: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[PersistedRecord], int]:
    """Fetch one page of records, newest first, with the total match count.

    Args:
        conn: An open DuckDB connection with tables created.
        symbol: Optional ticker filter.
        start_date: Optional inclusive lower date bound.
        end_date: Optional inclusive upper date bound.
        limit: Maximum records to return.
        offset: Records to skip before the page starts.

    Returns:
        Tuple of (records on this page, total matching records).

    Raises:
        ValueError: If limit is not positive or offset is negative.
    """
    if limit <= 0:
        msg = f"limit must be positive, got {limit}"
        raise ValueError(msg)
    if offset < 0:
        msg = f"offset must be >= 0, got {offset}"
        raise ValueError(msg)

    where, params = _build_filters(
        symbol=symbol, start_date=start_date, end_date=end_date,
    )
    total = count(conn, symbol=symbol, start_date=start_date, end_date=end_date)
    rows = conn.execute(
        f"SELECT {_SELECT_COLUMNS} FROM historical_data {where} "
        "ORDER BY date DESC, symbol ASC LIMIT ? OFFSET ?",
        [*params, limit, offset],
    ).fetchall()
    return [_to_record(row) for row in rows], total
