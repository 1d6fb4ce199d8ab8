"""Structured table cells.

A cell is one (row, family, qualifier, timestamp, type, value) unit with
optional visibility tags. Cells are ordered by ``sort_key``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING

from ..core.errors import CellFormatError

if TYPE_CHECKING:
    from ..core.types import Timestamp
    from .parser import ParsedLine

MAX_ROW_LENGTH = 32767
MAX_FAMILY_LENGTH = 127

# Heap estimate constants (64-bit JVM-style object layout)
FIXED_OVERHEAD = 56
ARRAY_OVERHEAD = 16
TAG_OVERHEAD = 3  # tag length (2B) + tag type (1B)


def align(n: int) -> int:
    """Round up to the next multiple of 8."""
    return (n + 7) & ~7


class CellType(IntEnum):
    """Operation type of a cell. Higher codes sort first on key ties."""

    PUT = 4


@dataclass(frozen=True, slots=True)
class Tag:
    """Typed metadata attached to a cell."""

    type: int
    value: bytes


@dataclass(frozen=True, slots=True)
class CellVisibility:
    """Visibility expression and its encoded label tags."""

    expression: str
    tags: tuple[Tag, ...]


@dataclass(frozen=True, slots=True)
class Cell:
    """Immutable table cell.

    A cell with ``visibility`` set is a labeled cell, otherwise it is a
    plain cell. Both variants share the same ordering.
    """

    row: bytes
    family: bytes
    qualifier: bytes
    timestamp: Timestamp
    value: bytes
    type: CellType = CellType.PUT
    visibility: CellVisibility | None = None

    def __post_init__(self) -> None:
        if not self.row:
            raise CellFormatError("Row key is empty")
        if len(self.row) > MAX_ROW_LENGTH:
            raise CellFormatError(f"Row > {MAX_ROW_LENGTH}")
        if len(self.family) > MAX_FAMILY_LENGTH:
            raise CellFormatError(f"Family > {MAX_FAMILY_LENGTH}")

    @property
    def is_labeled(self) -> bool:
        return self.visibility is not None

    @property
    def tags(self) -> tuple[Tag, ...]:
        return self.visibility.tags if self.visibility is not None else ()

    def sort_key(self) -> tuple[bytes, bytes, bytes, int, int]:
        """Row, family, qualifier ascending; timestamp and type descending."""
        return (self.row, self.family, self.qualifier, -self.timestamp, -self.type)

    def serialized_length(self) -> int:
        # key_len + value_len + row_len + row + fam_len + fam + qual + ts + type + value
        length = 4 + 4 + 2 + len(self.row) + 1 + len(self.family) + len(self.qualifier)
        length += 8 + 1 + len(self.value)
        if self.tags:
            length += 2 + sum(TAG_OVERHEAD + len(t.value) for t in self.tags)
        return length

    def heap_size(self) -> int:
        """Return approximate memory footprint in bytes."""
        return FIXED_OVERHEAD + align(ARRAY_OVERHEAD) + align(self.serialized_length())


def build_plain_cell(
    parsed: ParsedLine,
    family: bytes,
    qualifier: bytes,
    column: int,
    ts: Timestamp,
) -> Cell:
    """Build a put cell for one column of a parsed line."""
    return Cell(
        row=parsed.row_key,
        family=family,
        qualifier=qualifier,
        timestamp=ts,
        value=parsed.column_bytes(column),
    )
