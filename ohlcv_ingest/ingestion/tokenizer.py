"""Streaming CSV tokenizer for OHLCV uploads.

Reads one record at a time from a binary stream, so memory use stays flat
regardless of file size. The tokenizer owns the stream it is given and
closes it in ``close()``.
"""

from __future__ import annotations

import csv
import io
import logging
from typing import BinaryIO

from ohlcv_ingest.ingestion.errors import HeaderError, MalformedRowError, StreamError
from ohlcv_ingest.ingestion.models import REQUIRED_COLUMNS

logger = logging.getLogger("ingest_prices")


class RowTokenizer:
    """Pull-based reader over a comma-separated byte stream.

    Call ``read_header()`` once, then ``read_row()`` until it returns None.

    Attributes:
        header_index: Normalized column name -> field position.
        line_number: 1-based number of the last record read (header is 1).
    """

    def __init__(self, stream: BinaryIO) -> None:
        """Wrap a binary stream for CSV tokenization.

        Args:
            stream: Readable binary stream positioned at the header line.
        """
        self._stream = stream
        # undecodable bytes survive as surrogates and fail only their own row
        self._text = io.TextIOWrapper(
            stream, encoding="utf-8-sig", errors="surrogateescape", newline=""
        )
        self._reader = csv.reader(self._text, skipinitialspace=True, strict=True)
        self.header_index: dict[str, int] = {}
        self.line_number = 0
        self._field_count = 0
        self._closed = False

    def __enter__(self) -> RowTokenizer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def read_header(self) -> dict[str, int]:
        """Read and validate the header line.

        Column names are trimmed and lower-cased; order does not matter and
        unknown columns are ignored.

        Returns:
            Mapping of normalized column name to field position.

        Raises:
            HeaderError: If the stream is empty, the header cannot be parsed,
                or a required column is missing.
            StreamError: If the underlying stream fails.
        """
        try:
            header = self._next_record()
        except csv.Error as exc:
            msg = f"failed to read header: {exc}"
            raise HeaderError(msg) from exc

        if header is None:
            raise HeaderError("failed to read header: input is empty")

        self.line_number += 1
        self._field_count = len(header)
        self.header_index = {
            name.strip().lower(): position for position, name in enumerate(header)
        }

        for required in REQUIRED_COLUMNS:
            if required not in self.header_index:
                msg = f"missing required header: {required}"
                raise HeaderError(msg, missing_column=required)

        logger.debug("Header accepted with %d column(s)", self._field_count)
        return self.header_index

    def read_row(self) -> list[str] | None:
        """Read the next record's raw fields.

        Returns:
            Field values in header order, or None at end of stream.

        Raises:
            MalformedRowError: If the record has the wrong number of fields
                or broken quoting. The stream stays usable.
            StreamError: If the underlying stream fails.
        """
        try:
            record = self._next_record()
        except csv.Error as exc:
            self.line_number += 1
            raise MalformedRowError(self.line_number, f"malformed record: {exc}") from exc

        if record is None:
            return None

        self.line_number += 1
        if len(record) != self._field_count:
            msg = (
                f"wrong number of fields: expected {self._field_count}, "
                f"got {len(record)}"
            )
            raise MalformedRowError(self.line_number, msg)
        return record

    def close(self) -> None:
        """Release the underlying stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self._text.close()
        except OSError:
            logger.warning("Failed to close input stream cleanly", exc_info=True)

    def _next_record(self) -> list[str] | None:
        """Return the next non-blank record, or None at end of stream."""
        try:
            for record in self._reader:
                if record:
                    return record
        except OSError as exc:
            msg = f"failed to read input stream: {exc}"
            raise StreamError(msg) from exc
        return None
