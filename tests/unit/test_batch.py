"""Unit tests for the sorted cell batch."""

import pytest

from tsv_sort.components.batch import CellBatch
from tsv_sort.components.cell import Cell


@pytest.fixture
def batch():
    """Create empty batch for tests."""
    return CellBatch()


def test_batch_iterates_in_sort_order(batch):
    """Test cells come out ascending regardless of insertion order."""
    cells = [
        Cell(b"r", b"d", b"c2", 1, b"v"),
        Cell(b"r", b"d", b"c1", 1, b"v"),
        Cell(b"r", b"d", b"c1", 3, b"v"),
        Cell(b"r", b"a", b"zz", 1, b"v"),
    ]
    for cell in cells:
        batch.add(cell)

    assert [(c.family, c.qualifier, c.timestamp) for c in batch] == [
        (b"a", b"zz", 1),
        (b"d", b"c1", 3),
        (b"d", b"c1", 1),
        (b"d", b"c2", 1),
    ]


def test_batch_collapses_equal_keys(batch):
    """Test cells equal under the comparator keep one entry."""
    batch.add(Cell(b"r", b"d", b"c", 1, b"first"))
    batch.add(Cell(b"r", b"d", b"c", 1, b"second"))

    assert len(batch) == 1
    assert next(iter(batch)).value in (b"first", b"second")


def test_batch_size_counts_every_insert(batch):
    """Test running size includes collapsed duplicates."""
    cell = Cell(b"r", b"d", b"c", 1, b"v")

    assert batch.size_bytes() == 0
    batch.add(cell)
    batch.add(cell)

    assert batch.size_bytes() == 2 * cell.heap_size()
    assert len(batch) == 1
