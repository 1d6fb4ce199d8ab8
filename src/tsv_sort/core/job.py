"""Local import job.

Runs the three phases of a bulk-load preparation job in one process:
map raw lines to (row key, line), shuffle by row key, and reduce each
row key into sorted segments.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from itertools import groupby
from operator import itemgetter
from pathlib import Path

from ..components.parser import TsvParser
from ..components.segment import SegmentSink
from ..components.status import BAD_LINES, COUNTER_GROUP, Counters, LoggingStatusReporter
from .config import SortConfig
from .errors import MalformedRecordError
from .reducer import TextSortReducer
from .types import GroupKey, RawRecord, ReduceOutcome, SegmentMeta

logger = logging.getLogger(__name__)


@dataclass
class JobResult:
    """Summary of a completed import job."""

    lines_read: int = 0
    groups: int = 0
    skipped_groups: int = 0
    cells: int = 0
    boundaries: int = 0
    segments: list[SegmentMeta] = field(default_factory=list)
    counters: dict[str, dict[str, int]] = field(default_factory=dict)

    @property
    def bad_lines(self) -> int:
        return self.counters.get(COUNTER_GROUP, {}).get(BAD_LINES, 0)


def read_lines(paths: Iterable[str | Path]) -> Iterator[RawRecord]:
    """Yield lines of each file without line terminators. Empty lines are dropped."""
    for path in paths:
        with open(path, "rb") as handle:
            for line in handle:
                line = line.rstrip(b"\n\r")
                if line:
                    yield line


def map_lines(
    parser: TsvParser,
    lines: Iterable[RawRecord],
    counters: Counters,
    skip_bad_lines: bool = True,
) -> Iterator[tuple[GroupKey, RawRecord]]:
    """Key each line by its row key.

    Lines without a usable row key are counted as bad lines and dropped, or
    raise when skipping is disabled.
    """
    for line in lines:
        try:
            row_key = parser.parse(line).row_key
            if not row_key:
                raise MalformedRecordError("Empty row key")
        except MalformedRecordError as e:
            if not skip_bad_lines:
                raise
            logger.warning(f"Bad line. {e}")
            counters.increment(COUNTER_GROUP, BAD_LINES, 1)
            continue
        yield row_key, line


def shuffle(
    pairs: Iterable[tuple[GroupKey, RawRecord]],
) -> Iterator[tuple[GroupKey, Iterator[RawRecord]]]:
    """Sort pairs by row key and group them. Within a group, input order is kept."""
    ordered = sorted(pairs, key=itemgetter(0))
    for row_key, group in groupby(ordered, key=itemgetter(0)):
        yield row_key, (line for _, line in group)


def run_job(
    config: SortConfig,
    input_paths: Iterable[str | Path],
    output_dir: str | Path,
) -> JobResult:
    """Run map, shuffle and reduce over input files into ``output_dir``."""
    start = time.perf_counter()
    counters = Counters()
    reducer = TextSortReducer(config, counters=counters)
    status = LoggingStatusReporter(level=logging.DEBUG)
    result = JobResult()

    def counted(lines: Iterable[RawRecord]) -> Iterator[RawRecord]:
        for line in lines:
            result.lines_read += 1
            yield line

    pairs = map_lines(
        reducer.parser, counted(read_lines(input_paths)), counters, config.skip_bad_lines
    )

    with SegmentSink(output_dir) as sink:
        for row_key, lines in shuffle(pairs):
            reduced = reducer.reduce(row_key, lines, sink, status)
            result.groups += 1
            result.cells += reduced.cells
            result.boundaries += reduced.boundaries
            if reduced.outcome is ReduceOutcome.SKIPPED:
                result.skipped_groups += 1
        result.segments = sink.close()

    result.counters = counters.as_dict()
    logger.info(
        f"Job done: {result.lines_read} lines, {result.groups} rows, {result.cells} cells, "
        f"{len(result.segments)} segments, {result.bad_lines} bad lines "
        f"in {time.perf_counter() - start:.2f}s"
    )
    return result
