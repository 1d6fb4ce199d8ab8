"""Sorted segment files.

Local stand-in for the downstream sorted-file writer: one open segment per
column family, rolled to fresh segments whenever a batch boundary arrives.
"""

from __future__ import annotations

import json
import logging
import struct
from collections.abc import Iterator
from pathlib import Path

from ..core.errors import SegmentError
from ..core.types import BOUNDARY, CellRecord, Emission, SegmentMeta, Timestamp
from .cell import Cell, CellType, CellVisibility, Tag

logger = logging.getLogger(__name__)

# Record format:
# [row_len(4B)][row][fam_len(4B)][fam][qual_len(4B)][qual][ts(8B)][type(1B)]
# [value_len(4B)][value][flags(1B)] and, when labeled,
# [expr_len(4B)][expr][tag_count(2B)] then per tag [tag_type(1B)][tag_len(2B)][tag]
FLAG_LABELED = 0x01


def _pack_bytes(data: bytes) -> bytes:
    return struct.pack("<I", len(data)) + data


def encode_cell(cell: Cell) -> bytes:
    """Serialize a cell into the segment record format."""
    parts = [
        _pack_bytes(cell.row),
        _pack_bytes(cell.family),
        _pack_bytes(cell.qualifier),
        struct.pack("<qB", cell.timestamp, cell.type),
        _pack_bytes(cell.value),
    ]
    if cell.visibility is None:
        parts.append(struct.pack("<B", 0))
    else:
        parts.append(struct.pack("<B", FLAG_LABELED))
        parts.append(_pack_bytes(cell.visibility.expression.encode("utf-8")))
        parts.append(struct.pack("<H", len(cell.tags)))
        for tag in cell.tags:
            parts.append(struct.pack("<BH", tag.type, len(tag.value)))
            parts.append(tag.value)
    return b"".join(parts)


class SortedSegmentWriter:
    """Write cells of one family to an immutable sorted segment.

    Args:
        data_path: Path for .data file
        meta_path: Path for .meta file
        family: Column family this segment holds

    Invariants:
        - Cells must be added in strictly ascending sort-key order
        - Metadata is written on finalize
    """

    def __init__(self, data_path: str | Path, meta_path: str | Path, family: bytes):
        self.data_path = Path(data_path)
        self.meta_path = Path(meta_path)
        self.family = family

        self.data_path.parent.mkdir(parents=True, exist_ok=True)
        self._fd = open(self.data_path, "wb")

        self._min_row: bytes | None = None
        self._max_row: bytes | None = None
        self._min_ts: Timestamp | None = None
        self._max_ts: Timestamp | None = None
        self._count = 0
        self._last_key: tuple | None = None

    def add(self, cell: Cell) -> None:
        """Append cell to the segment (must be added in sorted order)."""
        if self._fd is None:
            raise SegmentError("Writer already finalized")
        if cell.family != self.family:
            raise SegmentError(f"Cell family {cell.family!r} does not match {self.family!r}")

        key = cell.sort_key()
        if self._last_key is not None and key <= self._last_key:
            raise SegmentError(
                f"Cells must be added in sorted order: {self._last_key} >= {key}"
            )

        if self._min_row is None:
            self._min_row = cell.row
        self._max_row = cell.row

        if self._min_ts is None:
            self._min_ts = cell.timestamp
            self._max_ts = cell.timestamp
        else:
            self._min_ts = min(self._min_ts, cell.timestamp)
            self._max_ts = max(self._max_ts, cell.timestamp)

        self._fd.write(encode_cell(cell))
        self._count += 1
        self._last_key = key

    def finalize(self) -> SegmentMeta:
        """Close the data file and write metadata. Return metadata."""
        if self._fd is None:
            raise SegmentError("Writer already finalized")

        self._fd.close()
        self._fd = None

        meta: SegmentMeta = {
            "data_path": str(self.data_path),
            "meta_path": str(self.meta_path),
            "family": self.family.decode("utf-8", errors="replace"),
            "min_row": self._min_row.hex() if self._min_row is not None else None,
            "max_row": self._max_row.hex() if self._max_row is not None else None,
            "min_ts": self._min_ts,
            "max_ts": self._max_ts,
            "count": self._count,
            "data_size": self.data_path.stat().st_size,
        }

        with open(self.meta_path, "w", encoding="utf-8") as f:
            json.dump(meta, f, indent=2)

        logger.info(f"Finalized segment {self.data_path}: {self._count} cells")
        return meta


class SortedSegmentReader:
    """Iterate cells back from a segment data file."""

    def __init__(self, data_path: str | Path):
        self.data_path = Path(data_path)

    def _read(self, fd, size: int) -> bytes:
        data = fd.read(size)
        if len(data) < size:
            raise SegmentError(f"Truncated record in {self.data_path}")
        return data

    def _read_bytes(self, fd) -> bytes:
        (length,) = struct.unpack("<I", self._read(fd, 4))
        return self._read(fd, length)

    def __iter__(self) -> Iterator[Cell]:
        with open(self.data_path, "rb") as fd:
            while True:
                head = fd.read(4)
                if not head:
                    break  # EOF
                if len(head) < 4:
                    raise SegmentError(f"Truncated record in {self.data_path}")
                (row_len,) = struct.unpack("<I", head)
                row = self._read(fd, row_len)
                family = self._read_bytes(fd)
                qualifier = self._read_bytes(fd)
                ts, type_code = struct.unpack("<qB", self._read(fd, 9))
                value = self._read_bytes(fd)
                (flags,) = struct.unpack("<B", self._read(fd, 1))

                visibility = None
                if flags & FLAG_LABELED:
                    expression = self._read_bytes(fd).decode("utf-8")
                    (tag_count,) = struct.unpack("<H", self._read(fd, 2))
                    tags = []
                    for _ in range(tag_count):
                        tag_type, tag_len = struct.unpack("<BH", self._read(fd, 3))
                        tags.append(Tag(tag_type, self._read(fd, tag_len)))
                    visibility = CellVisibility(expression, tuple(tags))

                yield Cell(
                    row=row,
                    family=family,
                    qualifier=qualifier,
                    timestamp=ts,
                    value=value,
                    type=CellType(type_code),
                    visibility=visibility,
                )


class SegmentSink:
    """Sink writing per-family sorted segments under ``output_dir``.

    A BOUNDARY closes every open segment; the next cell of any family opens
    a new one.
    """

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._writers: dict[bytes, SortedSegmentWriter] = {}
        self._segment_counter = 0
        self.segments: list[SegmentMeta] = []
        self._closed = False

    def _writer_for(self, family: bytes) -> SortedSegmentWriter:
        writer = self._writers.get(family)
        if writer is None:
            self._segment_counter += 1
            family_dir = self.output_dir / family.decode("utf-8", errors="replace")
            stem = f"seg-{self._segment_counter:06d}"
            writer = SortedSegmentWriter(
                family_dir / f"{stem}.data", family_dir / f"{stem}.meta", family
            )
            self._writers[family] = writer
        return writer

    def write(self, message: Emission) -> None:
        if self._closed:
            raise SegmentError("Sink is closed")
        if message is BOUNDARY:
            self.roll()
        elif isinstance(message, CellRecord):
            self._writer_for(message.cell.family).add(message.cell)
        else:
            raise SegmentError(f"Unsupported message: {message!r}")

    def roll(self) -> None:
        """Finalize all open segments."""
        for writer in self._writers.values():
            self.segments.append(writer.finalize())
        self._writers.clear()

    def close(self) -> list[SegmentMeta]:
        """Finalize open segments and return metadata of all segments written."""
        if not self._closed:
            self.roll()
            self._closed = True
        return list(self.segments)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
