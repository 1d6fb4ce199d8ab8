"""In-memory sorted cell batch.

Uses sortedcontainers.SortedDict keyed by the cell sort key, so cells that
compare equal collapse into one entry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sortedcontainers import SortedDict

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .cell import Cell


class CellBatch:
    """Sorted, de-duplicated set of cells for one group with a size estimate.

    Invariants:
        - Cells are always iterated in ascending sort-key order
        - At most one cell per sort key; which duplicate survives is unspecified
        - Size counts every added cell, including collapsed duplicates
    """

    def __init__(self):
        """Initialize empty batch."""
        self._cells: SortedDict = SortedDict()
        self._size_bytes: int = 0

    def add(self, cell: Cell) -> None:
        """Insert a cell and account for its heap footprint."""
        self._cells[cell.sort_key()] = cell
        self._size_bytes += cell.heap_size()

    def size_bytes(self) -> int:
        """Return running estimate of memory usage in bytes."""
        return self._size_bytes

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[Cell]:
        """Iterate cells in ascending sort-key order."""
        return iter(self._cells.values())

    def __repr__(self) -> str:
        return f"CellBatch(cells={len(self._cells)}, size_bytes={self._size_bytes})"
