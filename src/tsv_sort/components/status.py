"""Counters and progress status reporting."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict, deque

logger = logging.getLogger(__name__)

COUNTER_GROUP = "ImportTsv"
BAD_LINES = "Bad Lines"

_UNITS = "kmgtpe"


def human_readable_int(number: int) -> str:
    """Format a byte count with a binary k/m/g/... suffix, e.g. ``1.5k``."""
    absolute = abs(number)
    if absolute < 1024:
        return str(number)
    value = float(number)
    for unit in _UNITS:
        value /= 1024
        if abs(value) < 1024 or unit == _UNITS[-1]:
            return f"{value:.1f}{unit}"
    raise AssertionError("unreachable")


class Counters:
    """Thread-safe named counters grouped by counter group."""

    def __init__(self):
        self._lock = threading.Lock()
        self._values: dict[tuple[str, str], int] = defaultdict(int)

    def increment(self, group: str, name: str, amount: int = 1) -> None:
        with self._lock:
            self._values[(group, name)] += amount

    def get(self, group: str, name: str) -> int:
        with self._lock:
            return self._values.get((group, name), 0)

    def as_dict(self) -> dict[str, dict[str, int]]:
        """Return a snapshot as {group: {name: value}}."""
        with self._lock:
            snapshot: dict[str, dict[str, int]] = {}
            for (group, name), value in self._values.items():
                snapshot.setdefault(group, {})[name] = value
            return snapshot


class LoggingStatusReporter:
    """Status reporter that logs each message and keeps the latest one."""

    def __init__(self, level: int = logging.INFO, history_size: int = 1000):
        self.level = level
        self.status: str | None = None
        self.history: deque[str] = deque(maxlen=history_size)

    def set_status(self, message: str) -> None:
        self.status = message
        self.history.append(message)
        logger.log(self.level, message)
