"""Exception hierarchy for the OHLCV ingestion pipeline.

Fatal errors (``HeaderError``, ``StreamError``, ``ConfigError``) abort an
upload. Row-level errors (``RowError`` and subclasses) and
``BatchPersistError`` are recoverable: the ingestor records them in the
report and keeps going.
"""

from __future__ import annotations

from typing import Any


class IngestionError(Exception):
    """Base class for all ingestion errors.

    Attributes:
        message: Human-readable error description.
        error_code: Stable machine-readable code.
        details: Extra context for logs.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "INGESTION_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ConfigError(IngestionError, ValueError):
    """Raised when configuration values are missing or out of range."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "CONFIG_ERROR")


class HeaderError(IngestionError):
    """Raised when the header line is unreadable or lacks a required column."""

    def __init__(self, message: str, missing_column: str | None = None) -> None:
        details = {"missing_column": missing_column} if missing_column else None
        super().__init__(message, "HEADER_ERROR", details)
        self.missing_column = missing_column


class StreamError(IngestionError):
    """Raised when the underlying byte stream fails before a clean end."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "STREAM_ERROR")


class RowError(IngestionError):
    """A recoverable failure tied to one source line."""

    def __init__(
        self,
        line: int,
        message: str,
        error_code: str = "ROW_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)
        self.line = line

    def __str__(self) -> str:
        return f"line {self.line}: {self.message}"


class MalformedRowError(RowError):
    """Raised when a record's structure cannot be mapped onto the header."""

    def __init__(self, line: int, message: str) -> None:
        super().__init__(line, message, "MALFORMED_ROW")


class ParseError(RowError):
    """Raised when a single field of a record cannot be parsed.

    Attributes:
        line: 1-based source line (the header is line 1).
        field: Column that failed.
        raw_value: Raw cell text that caused the failure.
    """

    def __init__(self, line: int, field: str, raw_value: str, message: str) -> None:
        super().__init__(
            line,
            message,
            "PARSE_ERROR",
            {"field": field, "raw_value": raw_value},
        )
        self.field = field
        self.raw_value = raw_value

    def __str__(self) -> str:
        return (
            f"line {self.line}, field '{self.field}', "
            f"value '{self.raw_value}': {self.message}"
        )


class BatchPersistError(IngestionError):
    """Raised by an upsert store when a whole batch could not be written."""

    def __init__(self, message: str, row_count: int = 0) -> None:
        super().__init__(message, "BATCH_PERSIST_ERROR", {"row_count": row_count})
        self.row_count = row_count
