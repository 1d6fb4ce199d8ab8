"""Unit tests for the batch emitter, counters and status reporting."""

import logging
import threading

import pytest

from tsv_sort.components.batch import CellBatch
from tsv_sort.components.cell import Cell
from tsv_sort.components.emitter import BatchEmitter, CollectingSink
from tsv_sort.components.status import Counters, LoggingStatusReporter, human_readable_int
from tsv_sort.core.types import BOUNDARY, CellRecord


@pytest.fixture
def sink():
    """Create in-memory sink for tests."""
    return CollectingSink()


@pytest.fixture
def status():
    """Create status reporter for tests."""
    return LoggingStatusReporter()


def make_batch(n):
    batch = CellBatch()
    for i in range(n):
        batch.add(Cell(b"row", b"d", f"q{i:04d}".encode(), 1, b"v"))
    return batch


def test_emit_writes_cells_in_order(sink, status):
    """Test every cell is written once, ascending, under the group key."""
    batch = make_batch(5)
    emitter = BatchEmitter(sink, status)

    written = emitter.emit(b"row", batch)

    assert written == 5
    assert sink.messages == [CellRecord(b"row", cell) for cell in batch]


def test_emit_reports_progress_every_hundred(sink, status):
    """Test status cadence and the read summary."""
    batch = make_batch(250)
    emitter = BatchEmitter(sink, status)

    emitter.emit(b"row", batch)

    size = human_readable_int(batch.size_bytes())
    assert list(status.history) == [
        f"Read 250 entries of CellBatch({size})",
        "Wrote 100 key values.",
        "Wrote 200 key values.",
    ]


def test_emit_boundary(sink, status):
    """Test boundary writes the marker and nothing else."""
    BatchEmitter(sink, status).emit_boundary()

    assert sink.messages == [BOUNDARY]
    assert sink.segments() == [[], []]


def test_status_reporter_logs(caplog):
    """Test status messages go to the log."""
    reporter = LoggingStatusReporter()

    with caplog.at_level(logging.INFO):
        reporter.set_status("Wrote 100 key values.")

    assert reporter.status == "Wrote 100 key values."
    assert "Wrote 100 key values." in caplog.text


@pytest.mark.parametrize(
    "number, expected",
    [
        (0, "0"),
        (512, "512"),
        (1024, "1.0k"),
        (1536, "1.5k"),
        (2 * 1024**2, "2.0m"),
        (3 * 1024**3, "3.0g"),
    ],
)
def test_human_readable_int(number, expected):
    """Test binary-suffix formatting."""
    assert human_readable_int(number) == expected


def test_counters_concurrent_increments():
    """Test counters tolerate increments from several threads."""
    counters = Counters()

    def bump():
        for _ in range(1000):
            counters.increment("ImportTsv", "Bad Lines")

    threads = [threading.Thread(target=bump) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert counters.get("ImportTsv", "Bad Lines") == 4000
    assert counters.get("ImportTsv", "Other") == 0
    assert counters.as_dict() == {"ImportTsv": {"Bad Lines": 4000}}
