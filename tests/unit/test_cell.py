"""Unit tests for cells and cell construction."""

import pytest

from tsv_sort.components.cell import Cell, CellType, CellVisibility, Tag, align, build_plain_cell
from tsv_sort.components.parser import TsvParser
from tsv_sort.core.errors import CellFormatError


def test_sort_key_orders_timestamp_descending():
    """Test newer cells sort before older ones for the same column."""
    old = Cell(b"r", b"d", b"c", 1, b"v")
    new = Cell(b"r", b"d", b"c", 2, b"v")

    assert new.sort_key() < old.sort_key()


def test_sort_key_orders_row_family_qualifier():
    """Test row, family and qualifier sort ascending as unsigned bytes."""
    cells = [
        Cell(b"r2", b"a", b"a", 1, b""),
        Cell(b"r1", b"b", b"a", 1, b""),
        Cell(b"r1", b"a", b"\xff", 1, b""),
        Cell(b"r1", b"a", b"b", 1, b""),
    ]

    ordered = sorted(cells, key=Cell.sort_key)

    assert [(c.row, c.family, c.qualifier) for c in ordered] == [
        (b"r1", b"a", b"b"),
        (b"r1", b"a", b"\xff"),
        (b"r1", b"b", b"a"),
        (b"r2", b"a", b"a"),
    ]


def test_value_and_visibility_do_not_affect_sort_key():
    """Test plain and labeled cells with the same key compare equal."""
    plain = Cell(b"r", b"d", b"c", 5, b"x")
    labeled = Cell(b"r", b"d", b"c", 5, b"y", visibility=CellVisibility("a", ()))

    assert plain.sort_key() == labeled.sort_key()
    assert not plain.is_labeled
    assert labeled.is_labeled


def test_heap_size_estimate():
    """Test heap size of plain and tagged cells."""
    plain = Cell(b"r", b"d", b"c", 1, b"v")
    visibility = CellVisibility("a", (Tag(2, b"\0\0\0\1"),))
    tagged = Cell(b"r", b"d", b"c", 1, b"v", visibility=visibility)

    assert plain.serialized_length() == 24
    assert plain.heap_size() == 96
    assert tagged.serialized_length() == 33
    assert tagged.heap_size() == 112
    assert align(1) == 8
    assert align(16) == 16


def test_cell_is_immutable():
    """Test cells cannot be modified after construction."""
    cell = Cell(b"r", b"d", b"c", 1, b"v")

    with pytest.raises(AttributeError):
        cell.value = b"other"
    assert cell.type is CellType.PUT


@pytest.mark.parametrize(
    "row, family, message",
    [
        (b"", b"d", "Row key is empty"),
        (b"x" * 32768, b"d", "Row >"),
        (b"r", b"f" * 128, "Family >"),
    ],
)
def test_cell_format_limits(row, family, message):
    """Test invalid rows and families raise CellFormatError."""
    with pytest.raises(CellFormatError, match=message):
        Cell(row, family, b"c", 1, b"v")


def test_build_plain_cell_from_parsed_line():
    """Test a plain cell takes row and value from the parsed line."""
    parser = TsvParser("d:c1,HBASE_ROW_KEY", ",")
    parsed = parser.parse(b"value,row9")

    cell = build_plain_cell(parsed, b"d", b"c1", 0, 77)

    assert cell == Cell(b"row9", b"d", b"c1", 77, b"value")
