"""Protocol definitions for progress reporting and counters."""

from __future__ import annotations

from typing import Protocol


class StatusReporter(Protocol):
    """Receives human-readable progress strings."""

    def set_status(self, message: str) -> None:
        """Replace the current status message."""
        ...


class CounterSink(Protocol):
    """Named counters that tolerate concurrent increments."""

    def increment(self, group: str, name: str, amount: int = 1) -> None:
        """Add ``amount`` to counter ``group/name``."""
        ...

    def get(self, group: str, name: str) -> int:
        """Return current value of counter ``group/name``."""
        ...
