"""Exception hierarchy for tsv-sort.

Defines all custom exceptions used throughout the implementation.
"""

from __future__ import annotations


class TsvSortError(Exception):
    """Base exception for all tsv-sort errors."""
    pass


class MalformedRecordError(TsvSortError):
    """Raised when a raw record cannot be turned into cells.

    Recoverable: counted and skipped when skip-bad-lines is enabled.
    """
    pass


class BadTsvLineError(MalformedRecordError):
    """Raised when a delimited line does not match the column layout."""
    pass


class CellFormatError(MalformedRecordError):
    """Raised when a parsed value cannot form a valid cell."""
    pass


class ConfigurationError(TsvSortError):
    """Raised when required configuration is absent or invalid."""
    pass


class LabelExpansionError(TsvSortError):
    """Raised when a visibility expression cannot be expanded to labels."""
    pass


class SegmentError(TsvSortError):
    """Raised when sorted segment operations fail."""
    pass
