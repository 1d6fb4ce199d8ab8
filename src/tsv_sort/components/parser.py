"""Delimited-line parser.

Splits one raw line into column spans according to a column specification.
"""

from __future__ import annotations

import re

from ..core.errors import BadTsvLineError, ConfigurationError
from ..core.types import Span, Timestamp

ROWKEY_COLUMN_SPEC = "HBASE_ROW_KEY"
TIMESTAMPKEY_COLUMN_SPEC = "HBASE_TS_KEY"
ATTRIBUTES_COLUMN_SPEC = "HBASE_ATTRIBUTES_KEY"
CELL_VISIBILITY_COLUMN_SPEC = "HBASE_CELL_VISIBILITY"

ATTRIBUTES_SEPARATOR = ","
ATTRIBUTE_KV_SEPARATOR = "=>"

MIN_TIMESTAMP = -(1 << 63)
MAX_TIMESTAMP = (1 << 63) - 1

_TIMESTAMP_RE = re.compile(rb"[+-]?[0-9]+")


class TsvParser:
    """Parser for single-byte-separated lines.

    Args:
        columns_spec: Comma-separated column names. Reserved names mark the
            row key, timestamp, attributes and visibility columns; any other
            entry is ``family`` or ``family:qualifier``.
        separator: Field separator, exactly one byte

    Reserved column indices are -1 when the column is not configured.
    """

    def __init__(self, columns_spec: str, separator: str):
        sep = separator.encode("utf-8")
        if len(sep) != 1:
            raise ConfigurationError(
                f"TsvParser only supports single-byte separators, got {separator!r}"
            )
        self.separator: int = sep[0]

        self.row_key_column_index = -1
        self.timestamp_key_column_index = -1
        self.attributes_key_column_index = -1
        self.cell_visibility_column_index = -1

        columns = [c.strip() for c in columns_spec.split(",")] if columns_spec else []
        self.families: list[bytes] = []
        self.qualifiers: list[bytes] = []

        for i, column in enumerate(columns):
            family, qualifier = b"", b""
            if column == ROWKEY_COLUMN_SPEC:
                self.row_key_column_index = i
            elif column == TIMESTAMPKEY_COLUMN_SPEC:
                self.timestamp_key_column_index = i
            elif column == ATTRIBUTES_COLUMN_SPEC:
                self.attributes_key_column_index = i
            elif column == CELL_VISIBILITY_COLUMN_SPEC:
                self.cell_visibility_column_index = i
            else:
                family, _, qualifier = (p.encode("utf-8") for p in column.partition(":"))
            self.families.append(family)
            self.qualifiers.append(qualifier)

        self.max_column_count = len(columns)

    @property
    def reserved_indices(self) -> frozenset[int]:
        return frozenset(
            (
                self.row_key_column_index,
                self.timestamp_key_column_index,
                self.attributes_key_column_index,
                self.cell_visibility_column_index,
            )
        )

    def family(self, idx: int) -> bytes:
        return self.families[idx]

    def qualifier(self, idx: int) -> bytes:
        return self.qualifiers[idx]

    def parse(self, line: bytes, length: int | None = None) -> ParsedLine:
        """Split ``line[:length]`` into column spans.

        Raises:
            BadTsvLineError: If the line does not fit the column layout
        """
        if length is None:
            length = len(line)

        tab_offsets: list[int] = []
        pos = line.find(self.separator, 0, length)
        while pos != -1:
            tab_offsets.append(pos)
            pos = line.find(self.separator, pos + 1, length)
        if not tab_offsets:
            raise BadTsvLineError("No delimiter")
        tab_offsets.append(length)

        if len(tab_offsets) > self.max_column_count:
            raise BadTsvLineError("Excessive columns")
        if len(tab_offsets) <= self.row_key_column_index:
            raise BadTsvLineError("No row key")
        if len(tab_offsets) <= self.timestamp_key_column_index:
            raise BadTsvLineError("No timestamp")
        if len(tab_offsets) <= self.attributes_key_column_index:
            raise BadTsvLineError("No attributes specified")
        if len(tab_offsets) <= self.cell_visibility_column_index:
            raise BadTsvLineError("No cell visibility specified")

        return ParsedLine(self, line, tab_offsets)


class ParsedLine:
    """Column spans of one parsed line. Holds a reference to the raw bytes."""

    def __init__(self, parser: TsvParser, line: bytes, tab_offsets: list[int]):
        self._parser = parser
        self.line = line
        self._tab_offsets = tab_offsets

    @property
    def column_count(self) -> int:
        return len(self._tab_offsets)

    def column_offset(self, idx: int) -> int:
        return self._tab_offsets[idx - 1] + 1 if idx > 0 else 0

    def column_length(self, idx: int) -> int:
        return self._tab_offsets[idx] - self.column_offset(idx)

    def column_span(self, idx: int) -> Span:
        return self.column_offset(idx), self.column_length(idx)

    def column_bytes(self, idx: int) -> bytes:
        offset = self.column_offset(idx)
        return self.line[offset : offset + self.column_length(idx)]

    @property
    def row_key_span(self) -> Span:
        return self.column_span(self._parser.row_key_column_index)

    @property
    def row_key(self) -> bytes:
        return self.column_bytes(self._parser.row_key_column_index)

    def eligible_columns(self) -> list[int]:
        """Indices that produce cells: everything but reserved columns."""
        reserved = self._parser.reserved_indices
        return [i for i in range(self.column_count) if i not in reserved]

    def timestamp(self, default: Timestamp) -> Timestamp:
        """Return this line's own timestamp, or ``default`` when it has none.

        A line has none when no timestamp column is configured or the column
        is empty.

        Raises:
            BadTsvLineError: If the timestamp column is not an integer
        """
        idx = self._parser.timestamp_key_column_index
        if idx == -1:
            return default
        raw = self.column_bytes(idx)
        if not raw:
            return default
        if _TIMESTAMP_RE.fullmatch(raw) is None:
            raise BadTsvLineError(f"Invalid timestamp {raw!r}")
        ts = int(raw)
        if not MIN_TIMESTAMP <= ts <= MAX_TIMESTAMP:
            raise BadTsvLineError(f"Invalid timestamp {raw!r}")
        return ts

    def cell_visibility(self) -> str | None:
        """Return the visibility expression, or None when not configured or empty."""
        idx = self._parser.cell_visibility_column_index
        if idx == -1:
            return None
        raw = self.column_bytes(idx)
        if not raw:
            return None
        return raw.decode("utf-8", errors="replace")

    def attributes(self) -> dict[str, str]:
        """Return ``key=>value`` attributes, or an empty dict when not configured.

        Raises:
            BadTsvLineError: If an attribute is not of the form key=>value
        """
        idx = self._parser.attributes_key_column_index
        if idx == -1:
            return {}
        raw = self.column_bytes(idx).decode("utf-8", errors="replace")
        if not raw:
            return {}
        attrs: dict[str, str] = {}
        for pair in raw.split(ATTRIBUTES_SEPARATOR):
            key, sep, value = pair.partition(ATTRIBUTE_KV_SEPARATOR)
            if not sep or not key:
                raise BadTsvLineError(f"Invalid attribute {pair!r}")
            attrs[key] = value
        return attrs
