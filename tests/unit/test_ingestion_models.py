"""Unit tests for ingestion data models."""

from __future__ import annotations

import json
from datetime import date

from ohlcv_ingest.ingestion.models import (
    REQUIRED_COLUMNS,
    IngestionReport,
    IngestorState,
    Row,
    ValidationError,
)


class TestRow:
    """Tests for the decoded row value type."""

    def test_equality_ignores_source_line(self) -> None:
        first = Row("AAPL", date(2024, 1, 2), 1.0, 2.0, 0.5, 1.5, 100, line=2)
        second = Row("AAPL", date(2024, 1, 2), 1.0, 2.0, 0.5, 1.5, 100, line=9)

        assert first == second

    def test_key_is_symbol_and_date(self) -> None:
        row = Row("MSFT", date(2024, 1, 3), 1.0, 2.0, 0.5, 1.5)

        assert row.key == ("MSFT", date(2024, 1, 3))

    def test_volume_defaults_to_zero(self) -> None:
        row = Row("MSFT", date(2024, 1, 3), 1.0, 2.0, 0.5, 1.5)

        assert row.volume == 0

    def test_required_columns_in_decode_order(self) -> None:
        assert REQUIRED_COLUMNS == (
            "symbol", "date", "open", "high", "low", "close", "volume",
        )


class TestValidationError:
    """Tests for the validation result type."""

    def test_fields(self) -> None:
        err = ValidationError(field="close", message="close out of range")

        assert err.field == "close"
        assert err.message == "close out of range"


class TestIngestorState:
    """Tests for the ingestor lifecycle states."""

    def test_states(self) -> None:
        assert {state.value for state in IngestorState} == {"reading", "flushing", "done"}


class TestIngestionReport:
    """Tests for the upload report."""

    def _report(self) -> IngestionReport:
        return IngestionReport(
            total_rows=10,
            success_count=8,
            failed_count=2,
            processed_bytes=512,
            errors=["line 3: bad", "line 7: bad"],
            message="CSV file processed with 2 errors",
        )

    def test_defaults(self) -> None:
        report = IngestionReport()

        assert report.total_rows == 0
        assert report.errors == []
        assert report.message == ""

    def test_errors_not_shared_between_instances(self) -> None:
        first = IngestionReport()
        second = IngestionReport()
        first.errors.append("line 2: bad")

        assert second.errors == []

    def test_to_dict(self) -> None:
        data = self._report().to_dict()

        assert data == {
            "total_rows": 10,
            "success_count": 8,
            "failed_count": 2,
            "processed_bytes": 512,
            "errors": ["line 3: bad", "line 7: bad"],
            "message": "CSV file processed with 2 errors",
        }

    def test_to_json_round_trips(self) -> None:
        report = self._report()

        assert json.loads(report.to_json()) == report.to_dict()

    def test_summary_mentions_counts(self) -> None:
        summary = self._report().summary()

        assert "CSV file processed with 2 errors" in summary
        assert "Total rows:      10" in summary
        assert "Succeeded:       8" in summary
        assert "Failed:          2" in summary
        assert "Errors reported: 2" in summary
