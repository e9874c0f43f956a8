"""Shared test fixtures for the OHLCV ingestion pipeline."""

from __future__ import annotations

import io
import logging
from collections.abc import Callable, Iterator
from datetime import date
from pathlib import Path

import duckdb
import pytest

from ohlcv_ingest.ingestion.loader import create_tables
from ohlcv_ingest.lib.logging_config import LOGGER_NAME

SAMPLE_HEADER: str = "symbol,date,open,high,low,close,volume"

SAMPLE_ROWS: list[str] = [
    "AAPL,2024-01-02,187.15,188.44,183.89,185.64,82488700",
    "AAPL,2024-01-03,184.22,185.88,183.43,184.25,58414500",
    "MSFT,2024-01-02,373.86,375.90,366.77,370.87,25258600",
    "MSFT,2024-01-03,369.01,373.26,368.51,370.60,23083500",
    "GOOG,2024-01-02,139.60,140.61,137.74,139.56,20071900",
]


@pytest.fixture
def reference_today() -> date:
    """Provide a fixed 'today' so future-date checks are deterministic."""
    return date(2024, 6, 28)


@pytest.fixture
def sample_csv_text() -> str:
    """Provide a small valid CSV document with five price rows."""
    return "\n".join([SAMPLE_HEADER, *SAMPLE_ROWS]) + "\n"


@pytest.fixture
def csv_stream() -> Callable[[str], io.BytesIO]:
    """Provide a factory that turns CSV text into a binary stream."""

    def _make(text: str) -> io.BytesIO:
        return io.BytesIO(text.encode("utf-8"))

    return _make


@pytest.fixture
def tmp_source_dir(tmp_path: Path) -> Path:
    """Provide a temporary source directory for CSV files.

    Args:
        tmp_path: Pytest built-in temporary directory fixture.

    Returns:
        Path to a temporary source directory.
    """
    source_dir = tmp_path / "data" / "raw"
    source_dir.mkdir(parents=True)
    return source_dir


@pytest.fixture
def sample_csv_file(tmp_source_dir: Path, sample_csv_text: str) -> Path:
    """Write the sample CSV document and return its path."""
    csv_path = tmp_source_dir / "prices_20240103.csv"
    csv_path.write_text(sample_csv_text, encoding="utf-8")
    return csv_path


@pytest.fixture
def tmp_db_path(tmp_path: Path) -> Path:
    """Provide a temporary DuckDB database file path.

    Args:
        tmp_path: Pytest built-in temporary directory fixture.

    Returns:
        Path to a temporary DuckDB database file.
    """
    db_dir = tmp_path / "warehouse"
    db_dir.mkdir(parents=True)
    return db_dir / "test.duckdb"


@pytest.fixture
def duckdb_conn(tmp_db_path: Path) -> duckdb.DuckDBPyConnection:
    """Provide a temporary DuckDB connection that auto-closes after test.

    Args:
        tmp_db_path: Path to the temporary DuckDB database.

    Yields:
        A DuckDB connection.
    """
    conn = duckdb.connect(str(tmp_db_path))
    yield conn
    conn.close()


@pytest.fixture
def warehouse_conn(duckdb_conn: duckdb.DuckDBPyConnection) -> duckdb.DuckDBPyConnection:
    """Provide a DuckDB connection with the warehouse tables created."""
    create_tables(duckdb_conn)
    return duckdb_conn


@pytest.fixture(autouse=True)
def reset_pipeline_logger() -> Iterator[None]:
    """Undo setup_logging() between tests so caplog keeps seeing records."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
