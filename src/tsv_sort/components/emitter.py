"""Batch emitter.

Writes sorted batches downstream and signals batch boundaries.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..core.types import BOUNDARY, CellRecord
from .status import human_readable_int

if TYPE_CHECKING:
    from ..core.types import Emission, GroupKey
    from ..interfaces.sink import Sink
    from ..interfaces.status import StatusReporter
    from .batch import CellBatch

logger = logging.getLogger(__name__)

STATUS_INTERVAL = 100


class BatchEmitter:
    """Writes each batch to a sink in ascending cell order.

    Args:
        sink: Downstream consumer
        status: Progress reporter
        status_interval: Report progress every N cells written
    """

    def __init__(self, sink: Sink, status: StatusReporter, status_interval: int = STATUS_INTERVAL):
        self.sink = sink
        self.status = status
        self.status_interval = status_interval

    def emit(self, group_key: GroupKey, batch: CellBatch) -> int:
        """Write every cell of the batch once, in order. Returns cells written."""
        self.status.set_status(
            f"Read {len(batch)} entries of {type(batch).__name__}"
            f"({human_readable_int(batch.size_bytes())})"
        )
        index = 0
        for cell in batch:
            self.sink.write(CellRecord(group_key, cell))
            index += 1
            if index % self.status_interval == 0:
                self.status.set_status(f"Wrote {index} key values.")
        return index

    def emit_boundary(self) -> None:
        """Tell the sink the next batch is not ordered relative to the last one."""
        logger.debug("Emitting batch boundary")
        self.sink.write(BOUNDARY)


class CollectingSink:
    """Sink that keeps every message in memory, in arrival order."""

    def __init__(self):
        self.messages: list[Emission] = []

    def write(self, message: Emission) -> None:
        self.messages.append(message)

    def records(self) -> list[CellRecord]:
        return [m for m in self.messages if isinstance(m, CellRecord)]

    def segments(self) -> list[list[CellRecord]]:
        """Split collected cells at boundary markers."""
        result: list[list[CellRecord]] = [[]]
        for message in self.messages:
            if message is BOUNDARY:
                result.append([])
            else:
                result[-1].append(message)
        return result
