"""Unit tests for the delimited-line parser."""

import pytest

from tsv_sort.components.parser import TsvParser
from tsv_sort.core.errors import BadTsvLineError, ConfigurationError


@pytest.fixture
def parser():
    """Create parser with every reserved column configured."""
    return TsvParser(
        "HBASE_ROW_KEY,d:c1,HBASE_TS_KEY,d,HBASE_ATTRIBUTES_KEY,HBASE_CELL_VISIBILITY", "\t"
    )


def test_parser_reserved_indices(parser):
    """Test reserved column indices follow the column specification."""
    assert parser.row_key_column_index == 0
    assert parser.timestamp_key_column_index == 2
    assert parser.attributes_key_column_index == 4
    assert parser.cell_visibility_column_index == 5
    assert parser.family(1) == b"d"
    assert parser.qualifier(1) == b"c1"
    assert parser.family(3) == b"d"
    assert parser.qualifier(3) == b""


def test_parser_absent_reserved_columns_are_minus_one():
    """Test unconfigured reserved columns report -1."""
    parser = TsvParser("HBASE_ROW_KEY,d:c1", ",")

    assert parser.timestamp_key_column_index == -1
    assert parser.attributes_key_column_index == -1
    assert parser.cell_visibility_column_index == -1


def test_parse_column_spans(parser):
    """Test offsets and lengths of each column."""
    line = b"row1\tval\t123\t\tk=>v\tsecret"
    parsed = parser.parse(line)

    assert parsed.column_count == 6
    assert parsed.row_key_span == (0, 4)
    assert parsed.row_key == b"row1"
    assert parsed.column_span(1) == (5, 3)
    assert parsed.column_bytes(1) == b"val"
    assert parsed.column_bytes(3) == b""
    assert parsed.timestamp(7) == 123
    assert parsed.attributes() == {"k": "v"}
    assert parsed.cell_visibility() == "secret"
    assert parsed.eligible_columns() == [1, 3]


def test_parse_respects_length():
    """Test only the first ``length`` bytes of the buffer are parsed."""
    parser = TsvParser("HBASE_ROW_KEY,d:c1", ",")
    parsed = parser.parse(b"row1,abc,garbage", 8)

    assert parsed.column_count == 2
    assert parsed.column_bytes(1) == b"abc"


@pytest.mark.parametrize(
    "line, message",
    [
        (b"row1", "No delimiter"),
        (b"row1\ta\t1\tb\tk=>v\tsecret\textra", "Excessive columns"),
        (b"row1\ta", "No timestamp"),
        (b"row1\ta\t1\tb", "No attributes specified"),
        (b"row1\ta\t1\tb\tk=>v", "No cell visibility specified"),
    ],
)
def test_parse_bad_lines(parser, line, message):
    """Test structural errors raise BadTsvLineError with a reason."""
    with pytest.raises(BadTsvLineError, match=message):
        parser.parse(line)


def test_parse_no_row_key():
    """Test a row key column beyond the line raises."""
    parser = TsvParser("d:c1,d:c2,HBASE_ROW_KEY", ",")

    with pytest.raises(BadTsvLineError, match="No row key"):
        parser.parse(b"a,b")


def test_timestamp_default_and_invalid(parser):
    """Test empty timestamp keeps the default and garbage is rejected."""
    assert parser.parse(b"r\ta\t\tb\t\t").timestamp(99) == 99

    with pytest.raises(BadTsvLineError, match="Invalid timestamp"):
        parser.parse(b"r\ta\tabc\tb\t\t").timestamp(99)
    with pytest.raises(BadTsvLineError, match="Invalid timestamp"):
        parser.parse(b"r\ta\t99999999999999999999\tb\t\t").timestamp(99)


@pytest.mark.parametrize("raw", [b"1_0", b" 7 ", b"7 ", b"0x10", b"+", b"1.5", b"\xd9\xa3"])
def test_timestamp_rejects_non_decimal_text(parser, raw):
    """Test only optionally signed ASCII digits are timestamps."""
    with pytest.raises(BadTsvLineError, match="Invalid timestamp"):
        parser.parse(b"r\ta\t" + raw + b"\tb\t\t").timestamp(99)


@pytest.mark.parametrize(
    "raw, expected",
    [(b"+3", 3), (b"-3", -3), (b"007", 7), (b"9223372036854775807", (1 << 63) - 1)],
)
def test_timestamp_accepts_signed_decimal(parser, raw, expected):
    """Test signed decimal timestamps up to the 64-bit limit."""
    assert parser.parse(b"r\ta\t" + raw + b"\tb\t\t").timestamp(99) == expected


def test_empty_visibility_and_attributes(parser):
    """Test empty reserved columns mean no visibility and no attributes."""
    parsed = parser.parse(b"r\ta\t1\tb\t\t")

    assert parsed.cell_visibility() is None
    assert parsed.attributes() == {}


def test_invalid_attribute(parser):
    """Test attributes must be key=>value pairs."""
    parsed = parser.parse(b"r\ta\t1\tb\tk=>v,broken\t")

    with pytest.raises(BadTsvLineError, match="Invalid attribute"):
        parsed.attributes()


def test_multi_byte_separator_rejected():
    """Test separators must be exactly one byte."""
    with pytest.raises(ConfigurationError):
        TsvParser("HBASE_ROW_KEY,d:c1", "||")
