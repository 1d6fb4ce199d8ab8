"""Common type definitions for the sort-and-batch engine.

Defines fundamental types shared by all components.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, TypedDict

if TYPE_CHECKING:
    from ..components.cell import Cell

# Core primitive types
GroupKey = bytes
RawRecord = bytes
Timestamp = int
Span = tuple[int, int]  # (offset, length)


class BoundaryMarker:
    """Marker telling the sink that sort continuity ends here.

    The batch that follows for the same group is not ordered relative to
    the batch written before the marker.
    """

    _instance: BoundaryMarker | None = None

    def __new__(cls) -> BoundaryMarker:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "BOUNDARY"


BOUNDARY = BoundaryMarker()


@dataclass(frozen=True, slots=True)
class CellRecord:
    """A cell written downstream under its group key."""

    row_key: GroupKey
    cell: Cell


Emission = CellRecord | BoundaryMarker


class ReduceOutcome(Enum):
    """Terminal state of one reduce invocation."""

    EMITTED = "emitted"
    SKIPPED = "skipped"


@dataclass
class ReduceResult:
    """Summary of one reduce invocation."""

    outcome: ReduceOutcome
    batches: int = 0
    cells: int = 0
    boundaries: int = 0
    timestamp: Timestamp = 0


class SegmentMeta(TypedDict):
    """Typed metadata describing a sorted segment on disk."""
    data_path: str
    meta_path: str
    family: str
    min_row: str | None
    max_row: str | None
    min_ts: Timestamp | None
    max_ts: Timestamp | None
    count: int
    data_size: int
