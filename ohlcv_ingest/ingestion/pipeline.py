"""Ingestion pipeline orchestrator.

Coordinates one upload end to end: tokenize the CSV stream, decode and
validate each record, buffer valid rows into fixed-size batches, upsert each
batch, and assemble the final report.

Row-level and batch-level failures are recorded and skipped. Only a bad
header or a failing input stream aborts an upload.
"""

from __future__ import annotations

import logging
import time
from datetime import date
from pathlib import Path
from typing import BinaryIO

from ohlcv_ingest.ingestion.decoder import iter_rows
from ohlcv_ingest.ingestion.errors import BatchPersistError, RowError
from ohlcv_ingest.ingestion.loader import (
    DEFAULT_DB_PATH,
    DuckDBPriceStore,
    connect,
    create_tables,
)
from ohlcv_ingest.ingestion.models import (
    IngestionReport,
    IngestorState,
    Row,
    UpsertPort,
)
from ohlcv_ingest.ingestion.tokenizer import RowTokenizer
from ohlcv_ingest.ingestion.validator import validate_row

DEFAULT_BATCH_SIZE: int = 1000
DEFAULT_MAX_ERRORS: int = 100

logger = logging.getLogger("ingest_prices")


class BatchIngestor:
    """Stream one CSV upload into an upsert store in fixed-size batches.

    An instance handles exactly one upload.

    Attributes:
        store: Destination implementing ``upsert(rows, batch_size)``.
        batch_size: Rows per flush.
        max_errors: Error entries kept in the report before truncation.
        today: Reference date for the future-date rule (None = system date).
        state: Current lifecycle state.
        report: Report being accumulated.
    """

    def __init__(
        self,
        store: UpsertPort,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_errors: int = DEFAULT_MAX_ERRORS,
        today: date | None = None,
    ) -> None:
        """Configure the ingestor.

        Args:
            store: Destination implementing ``upsert(rows, batch_size)``.
            batch_size: Rows per flush. Must be positive.
            max_errors: Error entries to keep. Must be positive.
            today: Reference date for validation. Defaults to the system date
                at validation time.

        Raises:
            ValueError: If batch_size or max_errors is not positive.
        """
        if batch_size <= 0:
            msg = f"batch_size must be positive, got {batch_size}"
            raise ValueError(msg)
        if max_errors <= 0:
            msg = f"max_errors must be positive, got {max_errors}"
            raise ValueError(msg)

        self.store = store
        self.batch_size = batch_size
        self.max_errors = max_errors
        self.today = today
        self.state = IngestorState.READING
        self.report = IngestionReport()
        self._pending: list[Row] = []
        self._truncated_errors = 0
        self._started = False

    def ingest(self, stream: BinaryIO, processed_bytes: int = 0) -> IngestionReport:
        """Run the upload and return its report.

        The stream is closed when this method returns or raises.

        Args:
            stream: Binary CSV stream, header first.
            processed_bytes: Input size as reported by the caller; echoed
                in the report.

        Returns:
            The completed report, even if every row failed.

        Raises:
            HeaderError: If the header is unreadable or incomplete.
            StreamError: If the input stream fails before a clean end.
            RuntimeError: If this instance has already been used.
        """
        if self._started:
            stream.close()
            raise RuntimeError("BatchIngestor handles a single upload per instance")
        self._started = True

        try:
            with RowTokenizer(stream) as tokenizer:
                tokenizer.read_header()
                for item in iter_rows(tokenizer):
                    self._consume(item)
                    if len(self._pending) >= self.batch_size:
                        self._flush(final=False)

                if self._pending:
                    self._flush(final=True)
        finally:
            self.state = IngestorState.DONE

        return self._finish(processed_bytes)

    def _consume(self, item: Row | RowError) -> None:
        """Account for one record pulled from the tokenizer."""
        self.report.total_rows += 1

        if isinstance(item, RowError):
            self._record_failure(str(item))
            return

        violation = validate_row(item, today=self.today)
        if violation is not None:
            self._record_failure(f"line {item.line}: {violation.message}")
            return

        self._pending.append(item)

    def _flush(self, *, final: bool) -> None:
        """Upsert the pending batch and account for the outcome."""
        self.state = IngestorState.FLUSHING
        batch = self._pending
        self._pending = []

        try:
            written = self.store.upsert(batch, self.batch_size)
        except BatchPersistError as exc:
            label = "final batch insert error" if final else "batch insert error"
            logger.warning("%s (%d rows): %s", label, len(batch), exc)
            self._record_error(f"{label}: {exc}")
            self.report.failed_count += len(batch)
        else:
            logger.debug("Flushed %d row(s), %d written", len(batch), written)
            self.report.success_count += len(batch)
        finally:
            self.state = IngestorState.READING

    def _record_failure(self, entry: str) -> None:
        self._record_error(entry)
        self.report.failed_count += 1

    def _record_error(self, entry: str) -> None:
        if len(self.report.errors) < self.max_errors:
            self.report.errors.append(entry)
        else:
            self._truncated_errors += 1

    def _finish(self, processed_bytes: int) -> IngestionReport:
        """Cap the error list and compose the summary message."""
        report = self.report
        report.processed_bytes = processed_bytes

        if self._truncated_errors:
            report.errors.append(f"... and {self._truncated_errors} more errors")

        if report.failed_count == 0:
            report.message = "CSV file processed successfully"
        else:
            report.message = f"CSV file processed with {report.failed_count} errors"

        logger.info(
            "Ingestion finished: total=%d success=%d failed=%d",
            report.total_rows,
            report.success_count,
            report.failed_count,
        )
        return report


def ingest_file(
    file_path: str | Path,
    *,
    db_path: str | Path = DEFAULT_DB_PATH,
    batch_size: int = DEFAULT_BATCH_SIZE,
    max_errors: int = DEFAULT_MAX_ERRORS,
) -> IngestionReport:
    """Ingest a CSV file from disk into the DuckDB warehouse.

    Opens its own connection, ensures the tables exist, and closes the
    connection when done.

    Args:
        file_path: Path to the CSV file.
        db_path: Path to the DuckDB database file.
        batch_size: Rows per upsert batch.
        max_errors: Error entries kept in the report.

    Returns:
        The upload report.

    Raises:
        FileNotFoundError: If the CSV file does not exist.
        HeaderError: If the header is unreadable or incomplete.
        StreamError: If reading the file fails part-way.
    """
    file_path = Path(file_path)
    processed_bytes = file_path.stat().st_size
    start_time = time.monotonic()
    logger.info("Ingesting %s (%d bytes)", file_path.name, processed_bytes)

    conn = connect(db_path)
    try:
        create_tables(conn)
        ingestor = BatchIngestor(
            DuckDBPriceStore(conn),
            batch_size=batch_size,
            max_errors=max_errors,
        )
        report = ingestor.ingest(file_path.open("rb"), processed_bytes)
    finally:
        conn.close()

    logger.info(
        "Finished %s in %.2fs: %s",
        file_path.name,
        time.monotonic() - start_time,
        report.message,
    )
    return report
