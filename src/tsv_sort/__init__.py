"""tsv-sort - bounded-memory per-row sort-and-batch of delimited text into table cells."""

from .components.cell import Cell, CellType, CellVisibility, Tag
from .core.config import SortConfig, load_config
from .core.errors import (
    TsvSortError,
    MalformedRecordError,
    BadTsvLineError,
    CellFormatError,
    ConfigurationError,
    LabelExpansionError,
    SegmentError,
)
from .core.job import JobResult, run_job
from .core.reducer import TextSortReducer
from .core.types import BOUNDARY, BoundaryMarker, CellRecord, ReduceOutcome, ReduceResult

__all__ = [
    "SortConfig",
    "load_config",
    "TsvSortError",
    "MalformedRecordError",
    "BadTsvLineError",
    "CellFormatError",
    "ConfigurationError",
    "LabelExpansionError",
    "SegmentError",
    "TextSortReducer",
    "run_job",
    "JobResult",
    "Cell",
    "CellType",
    "CellVisibility",
    "Tag",
    "BOUNDARY",
    "BoundaryMarker",
    "CellRecord",
    "ReduceOutcome",
    "ReduceResult",
]
