"""Per-group sort-and-batch reducer.

Turns the raw lines of one row key into sorted cells, cutting the output
into memory-bounded batches and marking each cut with a boundary.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from ..components.batch import CellBatch
from ..components.cell import Cell, build_plain_cell
from ..components.emitter import BatchEmitter
from ..components.labels import LabelExpander
from ..components.parser import ParsedLine, TsvParser
from ..components.status import BAD_LINES, COUNTER_GROUP, Counters, LoggingStatusReporter
from .errors import ConfigurationError, MalformedRecordError
from .types import ReduceOutcome, ReduceResult

if TYPE_CHECKING:
    from ..interfaces.sink import Sink
    from ..interfaces.status import CounterSink, StatusReporter
    from .config import SortConfig
    from .types import GroupKey, RawRecord, Timestamp

logger = logging.getLogger(__name__)

_EMPTY = object()
_EXHAUSTED = object()


class _Lookahead:
    """Single-pass iterator that can tell whether another item remains.

    At most one item is pulled ahead, and only when ``has_next`` asks.
    """

    def __init__(self, items: Iterable[RawRecord]):
        self._it: Iterator[RawRecord] = iter(items)
        self._next: object = _EMPTY

    def has_next(self) -> bool:
        if self._next is _EMPTY:
            self._next = next(self._it, _EXHAUSTED)
        return self._next is not _EXHAUSTED

    def pop(self) -> RawRecord:
        if not self.has_next():
            raise StopIteration
        item, self._next = self._next, _EMPTY
        return item  # type: ignore[return-value]


class TextSortReducer:
    """Emits sorted cells for each row key, in memory-bounded batches.

    Args:
        config: Task configuration, read once here
        counters: Counter sink for the "Bad Lines" counter
        label_expander: Builds labeled cells; defaults to one built from
            ``config.visibility_labels``

    Raises:
        ConfigurationError: If no row key column is configured

    Invariants:
        - Each batch is written in ascending cell order
        - A batch is closed once its size estimate reaches the threshold,
          checked between records
        - A boundary follows a batch only if that group has input left
        - The running default timestamp persists across records and groups
    """

    def __init__(
        self,
        config: SortConfig,
        counters: CounterSink | None = None,
        label_expander: LabelExpander | None = None,
    ):
        self.parser = TsvParser(config.columns, config.resolved_separator())
        if self.parser.row_key_column_index == -1:
            raise ConfigurationError("No row key column specified")

        self.skip_bad_lines = config.skip_bad_lines
        self.threshold = config.threshold_bytes
        self.counters: CounterSink = counters if counters is not None else Counters()
        self.label_expander = (
            label_expander
            if label_expander is not None
            else LabelExpander(config.visibility_labels)
        )
        self._ts: Timestamp = (
            config.timestamp if config.timestamp is not None else int(time.time() * 1000)
        )

    @property
    def timestamp(self) -> Timestamp:
        """Current running default timestamp."""
        return self._ts

    @property
    def bad_line_count(self) -> int:
        return self.counters.get(COUNTER_GROUP, BAD_LINES)

    def build_cells(self, parsed: ParsedLine, ts: Timestamp) -> list[Cell]:
        """Build one cell per eligible column of a parsed line.

        Raises:
            BadTsvLineError: If the attributes column is malformed
        """
        attributes = parsed.attributes()
        if attributes:
            logger.debug(f"Row {parsed.row_key!r} carries attributes {sorted(attributes)}")
        expression = parsed.cell_visibility()
        cells = []
        for i in parsed.eligible_columns():
            family, qualifier = self.parser.family(i), self.parser.qualifier(i)
            if expression is None:
                cell = build_plain_cell(parsed, family, qualifier, i, ts)
            else:
                # Labeled cells need a visibility-aware consumer downstream
                cell = self.label_expander.build_labeled_cell(
                    parsed, family, qualifier, i, ts, expression
                )
            cells.append(cell)
        return cells

    def reduce(
        self,
        row_key: GroupKey,
        lines: Iterable[RawRecord],
        sink: Sink,
        status: StatusReporter | None = None,
    ) -> ReduceResult:
        """Sort and emit all lines of one row key.

        On a malformed line with skip-bad-lines enabled, the line is counted,
        cells from earlier lines of the current batch are emitted, and the
        rest of this call's input is abandoned.

        Raises:
            MalformedRecordError: On a malformed line when skipping is disabled
            LabelExpansionError: If a visibility expression cannot be expanded
        """
        emitter = BatchEmitter(sink, status if status is not None else LoggingStatusReporter())
        records = _Lookahead(lines)
        result = ReduceResult(outcome=ReduceOutcome.EMITTED, timestamp=self._ts)

        try:
            while records.has_next():
                batch = CellBatch()
                # stop at the end or the size threshold
                while records.has_next() and batch.size_bytes() < self.threshold:
                    line = records.pop()
                    try:
                        parsed = self.parser.parse(line)
                        result.timestamp = parsed.timestamp(result.timestamp)
                        cells = self.build_cells(parsed, result.timestamp)
                    except MalformedRecordError as e:
                        if not self.skip_bad_lines:
                            raise MalformedRecordError(
                                f"Bad line for row {row_key!r}: {e}"
                            ) from e
                        logger.warning(f"Bad line. {e}")
                        self.counters.increment(COUNTER_GROUP, BAD_LINES, 1)
                        if len(batch):
                            result.cells += emitter.emit(row_key, batch)
                            result.batches += 1
                        result.outcome = ReduceOutcome.SKIPPED
                        return result

                    for cell in cells:
                        batch.add(cell)

                result.cells += emitter.emit(row_key, batch)
                result.batches += 1

                if records.has_next():
                    # intra-row order is not guaranteed across the cut
                    logger.info(
                        f"Row {row_key!r} exceeded {self.threshold} bytes, "
                        f"cutting batch after {len(batch)} cells"
                    )
                    emitter.emit_boundary()
                    result.boundaries += 1
        finally:
            self._ts = result.timestamp

        return result
