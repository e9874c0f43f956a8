"""Within-batch deduplication on the (symbol, date) natural key.

DuckDB rejects an ``ON CONFLICT DO UPDATE`` statement that touches the same
key twice, so repeated keys in one batch are collapsed before the upsert.
The last occurrence wins, which matches applying the rows in file order.
"""

from __future__ import annotations

import logging

import polars as pl

logger = logging.getLogger("ingest_prices")

NATURAL_KEY: list[str] = ["symbol", "date"]


def deduplicate_batch(df: pl.DataFrame) -> tuple[pl.DataFrame, int]:
    """Keep only the last row per (symbol, date) in a staged batch.

    Args:
        df: Staged batch with at least the symbol and date columns.

    Returns:
        Tuple of (deduplicated DataFrame, number of rows collapsed).
    """
    original_count = len(df)
    deduped = df.unique(subset=NATURAL_KEY, keep="last", maintain_order=True)
    collapsed = original_count - len(deduped)

    if collapsed > 0:
        logger.info(
            "Batch dedup: collapsed %d repeated (symbol, date) key(s) from %d rows",
            collapsed,
            original_count,
        )

    return deduped, collapsed
