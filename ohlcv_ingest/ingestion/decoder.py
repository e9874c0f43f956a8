"""Decode raw CSV fields into typed price rows."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from typing import Any

from ohlcv_ingest.ingestion.errors import ParseError, RowError
from ohlcv_ingest.ingestion.models import Row
from ohlcv_ingest.ingestion.parsers import parse_date, parse_decimal, parse_integer
from ohlcv_ingest.ingestion.tokenizer import RowTokenizer

# Field -> parser, in the order fields are decoded
_FIELD_PARSERS: tuple[tuple[str, Callable[[str], Any]], ...] = (
    ("date", parse_date),
    ("open", parse_decimal),
    ("high", parse_decimal),
    ("low", parse_decimal),
    ("close", parse_decimal),
    ("volume", parse_integer),
)


def _has_undecodable_bytes(raw: str) -> bool:
    return any("\udc80" <= ch <= "\udcff" for ch in raw)


def _invalid_utf8(line: int, field: str, raw: str) -> ParseError:
    printable = raw.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
    return ParseError(line, field, printable, "invalid UTF-8")


def decode_row(
    fields: Sequence[str],
    header_index: Mapping[str, int],
    line: int,
) -> Row:
    """Map one record's raw fields onto a Row.

    Fields are decoded as symbol, date, open, high, low, close, volume and
    decoding stops at the first failure. A cell holding bytes that were not
    valid UTF-8 fails with "invalid UTF-8".

    Args:
        fields: Raw field values in header order.
        header_index: Normalized column name -> field position.
        line: Source line of the record, used for error attribution.

    Returns:
        The decoded row.

    Raises:
        ParseError: Naming the first column that failed and its raw text.
    """
    raw_symbol = fields[header_index["symbol"]]
    if _has_undecodable_bytes(raw_symbol):
        raise _invalid_utf8(line, "symbol", raw_symbol)
    symbol = raw_symbol.strip().upper()
    if not symbol:
        raise ParseError(line, "symbol", raw_symbol, "symbol cannot be empty")

    values: dict[str, Any] = {}
    for name, parser in _FIELD_PARSERS:
        raw = fields[header_index[name]]
        if _has_undecodable_bytes(raw):
            raise _invalid_utf8(line, name, raw)
        try:
            values[name] = parser(raw)
        except ValueError as exc:
            raise ParseError(line, name, raw, str(exc)) from exc

    return Row(symbol=symbol, line=line, **values)


def iter_rows(tokenizer: RowTokenizer) -> Iterator[Row | RowError]:
    """Lazily decode every data record of an opened tokenizer.

    The header must already have been read. Row-level failures are yielded
    rather than raised so the caller can record them and continue; fatal
    stream errors propagate.

    Args:
        tokenizer: Tokenizer whose header has been read.

    Yields:
        A decoded Row, or the RowError explaining why the record was skipped.
    """
    while True:
        try:
            fields = tokenizer.read_row()
        except RowError as exc:
            yield exc
            continue

        if fields is None:
            return

        try:
            yield decode_row(fields, tokenizer.header_index, tokenizer.line_number)
        except ParseError as exc:
            yield exc
