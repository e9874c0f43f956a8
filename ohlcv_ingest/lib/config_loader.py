"""YAML settings loader with environment overrides.

Recognised environment variables: OHLCV_DB_PATH, OHLCV_BATCH_SIZE,
OHLCV_MAX_ERRORS, LOG_LEVEL, LOG_FORMAT. Numeric overrides that are not
integers are ignored.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

from ohlcv_ingest.ingestion.errors import ConfigError
from ohlcv_ingest.ingestion.loader import DEFAULT_DB_PATH
from ohlcv_ingest.ingestion.pipeline import DEFAULT_BATCH_SIZE, DEFAULT_MAX_ERRORS

logger = logging.getLogger("ingest_prices")

MAX_BATCH_SIZE: int = 100_000
VALID_LOG_LEVELS: set[str] = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
VALID_LOG_FORMATS: set[str] = {"text", "json"}


@dataclass(frozen=True)
class Settings:
    """Validated runtime settings.

    Attributes:
        db_path: DuckDB warehouse file.
        batch_size: Rows per upsert batch.
        max_errors: Error entries kept per report.
        log_level: Logging level name.
        log_format: "text" or "json".
    """

    db_path: str = DEFAULT_DB_PATH
    batch_size: int = DEFAULT_BATCH_SIZE
    max_errors: int = DEFAULT_MAX_ERRORS
    log_level: str = "INFO"
    log_format: str = "text"


def default_settings() -> Settings:
    """Return the built-in defaults with environment overrides applied."""
    settings = apply_env_overrides(Settings())
    validate_settings(settings)
    return settings


def load_config(config_path: Path) -> Settings:
    """Load and validate settings from a YAML file.

    Missing sections and keys fall back to the defaults.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Validated settings, with environment overrides applied.

    Raises:
        FileNotFoundError: If config file does not exist.
        ConfigError: If the file is malformed or a value is out of range.
    """
    if not config_path.exists():
        msg = f"Config file not found: {config_path}"
        raise FileNotFoundError(msg)

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, Mapping):
        msg = f"Config file must contain a mapping: {config_path}"
        raise ConfigError(msg)

    settings = apply_env_overrides(_from_mapping(raw))
    validate_settings(settings)
    logger.info("Loaded settings from %s", config_path)
    return settings


def apply_env_overrides(
    settings: Settings,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Return a copy of settings with environment variables applied.

    Args:
        settings: Base settings.
        environ: Environment mapping. Defaults to os.environ.

    Returns:
        Settings with any recognised overrides applied.
    """
    env = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}

    if env.get("OHLCV_DB_PATH"):
        overrides["db_path"] = env["OHLCV_DB_PATH"]
    if env.get("LOG_LEVEL"):
        overrides["log_level"] = env["LOG_LEVEL"].upper()
    if env.get("LOG_FORMAT"):
        overrides["log_format"] = env["LOG_FORMAT"].lower()

    for env_key, attr in (
        ("OHLCV_BATCH_SIZE", "batch_size"),
        ("OHLCV_MAX_ERRORS", "max_errors"),
    ):
        value = env.get(env_key)
        if not value:
            continue
        try:
            overrides[attr] = int(value)
        except ValueError:
            logger.warning("Ignoring non-integer %s=%r", env_key, value)

    return replace(settings, **overrides)


def _from_mapping(raw: Mapping[str, Any]) -> Settings:
    """Build settings from the parsed YAML document."""
    ingestion = _section(raw, "ingestion")
    warehouse = _section(raw, "warehouse")
    logging_section = _section(raw, "logging")
    defaults = Settings()

    return Settings(
        db_path=str(warehouse.get("db_path", defaults.db_path)),
        batch_size=ingestion.get("batch_size", defaults.batch_size),
        max_errors=ingestion.get("max_errors", defaults.max_errors),
        log_level=str(logging_section.get("level", defaults.log_level)).upper(),
        log_format=str(logging_section.get("format", defaults.log_format)).lower(),
    )


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        msg = f"Config section '{name}' must be a mapping"
        raise ConfigError(msg)
    return section


def validate_settings(settings: Settings) -> None:
    """Validate setting values.

    Args:
        settings: Settings to validate.

    Raises:
        ConfigError: If any value is invalid.
    """
    batch_size = settings.batch_size
    if (
        not isinstance(batch_size, int)
        or isinstance(batch_size, bool)
        or batch_size < 1
        or batch_size > MAX_BATCH_SIZE
    ):
        msg = f"Batch size must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}"
        raise ConfigError(msg)

    max_errors = settings.max_errors
    if not isinstance(max_errors, int) or isinstance(max_errors, bool) or max_errors < 1:
        msg = f"Max errors must be >= 1, got {max_errors}"
        raise ConfigError(msg)

    if not settings.db_path:
        raise ConfigError("Database path must not be empty")

    if settings.log_level not in VALID_LOG_LEVELS:
        msg = (
            f"Invalid log level '{settings.log_level}', "
            f"must be one of: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )
        raise ConfigError(msg)

    if settings.log_format not in VALID_LOG_FORMATS:
        msg = (
            f"Invalid log format '{settings.log_format}', "
            f"must be one of: {', '.join(sorted(VALID_LOG_FORMATS))}"
        )
        raise ConfigError(msg)
