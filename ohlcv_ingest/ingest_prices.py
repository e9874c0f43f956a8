# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "polars",
#     "duckdb",
#     "pyarrow",
#     "pyyaml",
# ]
# ///
"""Ingest daily OHLCV price CSV files into a local DuckDB warehouse.

Each file is streamed row by row, validated, and upserted in batches keyed
on (symbol, date). One JSON report per file is printed to stdout; logs go
to stderr.

Usage:
    uv run ohlcv_ingest/ingest_prices.py FILE [FILE ...] [OPTIONS]

Examples:
    uv run ohlcv_ingest/ingest_prices.py data/raw/prices.csv
    uv run ohlcv_ingest/ingest_prices.py data/raw/*.csv \\
        --db-path data/warehouse/prices.duckdb --batch-size 5000
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

# Ensure project root is in sys.path for uv run script invocation
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from ohlcv_ingest.ingestion.errors import ConfigError, IngestionError  # noqa: E402
from ohlcv_ingest.ingestion.pipeline import ingest_file  # noqa: E402
from ohlcv_ingest.lib.config_loader import (  # noqa: E402
    Settings,
    default_settings,
    load_config,
    validate_settings,
)
from ohlcv_ingest.lib.logging_config import setup_logging  # noqa: E402


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the ingestion CLI.

    Args:
        argv: Command-line arguments. Defaults to sys.argv[1:].

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Ingest daily OHLCV price CSV files into DuckDB.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  uv run ohlcv_ingest/ingest_prices.py data/raw/prices.csv\n"
            "  uv run ohlcv_ingest/ingest_prices.py a.csv b.csv --batch-size 5000\n"
            "  uv run ohlcv_ingest/ingest_prices.py prices.csv --config config/ingest.yaml\n"
        ),
    )
    parser.add_argument(
        "files",
        nargs="+",
        type=Path,
        help="CSV files to ingest, processed in the order given",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML settings file (default: built-in settings + environment)",
    )
    parser.add_argument(
        "--db-path",
        type=str,
        default=None,
        help="Path to DuckDB database file (overrides config)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Rows per upsert batch (overrides config)",
    )
    parser.add_argument(
        "--max-errors",
        type=int,
        default=None,
        help="Error entries kept per report (overrides config)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level, e.g. DEBUG or INFO (overrides config)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Log line format (overrides config)",
    )
    return parser.parse_args(argv)


def resolve_settings(args: argparse.Namespace) -> Settings:
    """Combine config file, environment, and command-line overrides.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Effective settings.

    Raises:
        FileNotFoundError: If --config points to a missing file.
        ConfigError: If a resulting value is invalid.
    """
    settings = load_config(args.config) if args.config else default_settings()

    overrides = {
        "db_path": args.db_path,
        "batch_size": args.batch_size,
        "max_errors": args.max_errors,
        "log_level": args.log_level.upper() if args.log_level else None,
        "log_format": args.log_format,
    }
    settings = replace(
        settings, **{key: value for key, value in overrides.items() if value is not None}
    )
    validate_settings(settings)
    return settings


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the ingestion CLI.

    Args:
        argv: Command-line arguments. Defaults to sys.argv[1:].

    Returns:
        Exit code: 0 if every file produced a report, 1 otherwise.
    """
    args = parse_args(argv)
    logger = setup_logging()

    try:
        settings = resolve_settings(args)
    except (ConfigError, FileNotFoundError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    logger = setup_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
    )
    logger.info(
        "Starting ingestion: files=%d, db=%s, batch_size=%d",
        len(args.files),
        settings.db_path,
        settings.batch_size,
    )

    exit_code = 0
    for file_path in args.files:
        try:
            report = ingest_file(
                file_path,
                db_path=settings.db_path,
                batch_size=settings.batch_size,
                max_errors=settings.max_errors,
            )
        except (IngestionError, OSError) as exc:
            logger.error("Failed to ingest %s: %s", file_path, exc)
            exit_code = 1
            continue

        print(json.dumps({"file": str(file_path), **report.to_dict()}))

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
