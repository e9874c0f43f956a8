"""Integration test: CSV files on disk flow through to the DuckDB warehouse."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import duckdb
import pytest

from ohlcv_ingest.ingestion.errors import HeaderError
from ohlcv_ingest.ingestion.pipeline import ingest_file
from ohlcv_ingest.ingestion.queries import count, find_by_symbol


def _query(db_path: Path, sql: str) -> list[tuple]:
    conn = duckdb.connect(str(db_path), read_only=True)
    try:
        return conn.execute(sql).fetchall()
    finally:
        conn.close()


@pytest.mark.integration
class TestIngestFile:
    """End-to-end ingestion against a real DuckDB file."""

    def test_loads_sample_file(self, sample_csv_file: Path, tmp_db_path: Path) -> None:
        report = ingest_file(sample_csv_file, db_path=tmp_db_path)

        assert report.total_rows == 5
        assert report.success_count == 5
        assert report.processed_bytes == sample_csv_file.stat().st_size
        assert _query(tmp_db_path, "SELECT COUNT(*) FROM historical_data") == [(5,)]

        conn = duckdb.connect(str(tmp_db_path), read_only=True)
        try:
            aapl = find_by_symbol(conn, "AAPL")
        finally:
            conn.close()
        assert [r.date for r in aapl] == [date(2024, 1, 2), date(2024, 1, 3)]
        assert aapl[0].volume == 82488700

    def test_reingest_updates_in_place(
        self, sample_csv_file: Path, tmp_source_dir: Path, tmp_db_path: Path
    ) -> None:
        ingest_file(sample_csv_file, db_path=tmp_db_path)
        ids_before = dict(
            _query(tmp_db_path, "SELECT symbol || '/' || CAST(date AS VARCHAR), id FROM historical_data")
        )

        correction = tmp_source_dir / "prices_correction.csv"
        correction.write_text(
            "Date,Symbol,Open,High,Low,Close,Volume\n"
            "01/02/2024,aapl,\"$187.15\",\"$188.44\",\"$183.89\",\"$186.00\",\"82,500,000\"\n"
        )
        report = ingest_file(correction, db_path=tmp_db_path)

        assert report.success_count == 1
        rows = _query(
            tmp_db_path,
            "SELECT id, close, volume, created_at <= updated_at FROM historical_data "
            "WHERE symbol = 'AAPL' AND date = DATE '2024-01-02'",
        )
        assert len(rows) == 1
        record_id, close, volume, ordered = rows[0]
        assert record_id == ids_before["AAPL/2024-01-02"]
        assert close == 186.00
        assert volume == 82500000
        assert ordered is True
        assert _query(tmp_db_path, "SELECT COUNT(*) FROM historical_data") == [(5,)]

    def test_partial_success(self, tmp_source_dir: Path, tmp_db_path: Path) -> None:
        path = tmp_source_dir / "mixed.csv"
        path.write_text(
            "symbol,date,open,high,low,close,volume\n"
            "AAPL,2024-01-02,187.15,188.44,183.89,185.64,82488700\n"
            "AAPL,2024-01-03,100,90,80,85,1\n"
            ",2024-01-04,1,2,0.5,1.5,1\n"
            "MSFT,2099-01-01,1,2,0.5,1.5,1\n"
            "MSFT,2024-01-02,373.86,375.90,366.77,370.87,\n"
        )

        report = ingest_file(path, db_path=tmp_db_path, batch_size=1)

        assert report.total_rows == 5
        assert report.success_count == 2
        assert report.failed_count == 3
        assert report.message == "CSV file processed with 3 errors"
        assert _query(
            tmp_db_path, "SELECT symbol, volume FROM historical_data ORDER BY symbol"
        ) == [("AAPL", 82488700), ("MSFT", 0)]

    def test_many_rows_across_batches(self, tmp_source_dir: Path, tmp_db_path: Path) -> None:
        path = tmp_source_dir / "bulk.csv"
        lines = ["symbol,date,open,high,low,close,volume"]
        for i in range(2500):
            day = date.fromordinal(date(2015, 1, 1).toordinal() + i)
            lines.append(f"SPY,{day.isoformat()},200,201,199,200.5,{i}")
        path.write_text("\n".join(lines) + "\n")

        report = ingest_file(path, db_path=tmp_db_path, batch_size=1000)

        assert report.success_count == 2500
        assert _query(tmp_db_path, "SELECT COUNT(*) FROM historical_data") == [(2500,)]

    def test_header_error_leaves_warehouse_untouched(
        self, sample_csv_file: Path, tmp_source_dir: Path, tmp_db_path: Path
    ) -> None:
        ingest_file(sample_csv_file, db_path=tmp_db_path)
        bad = tmp_source_dir / "bad.csv"
        bad.write_text("symbol,date,open,high,low,close\nAAPL,2024-01-02,1,2,1,2\n")

        with pytest.raises(HeaderError):
            ingest_file(bad, db_path=tmp_db_path)

        conn = duckdb.connect(str(tmp_db_path), read_only=True)
        try:
            assert count(conn) == 5
        finally:
            conn.close()

    def test_missing_file(self, tmp_path: Path, tmp_db_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            ingest_file(tmp_path / "nope.csv", db_path=tmp_db_path)
