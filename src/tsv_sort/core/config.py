"""Configuration for the sort-and-batch engine.

Defines all tunable parameters and loads them from TOML files.
"""

from __future__ import annotations

import base64
import binascii
import tomllib  # Python 3.11+
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from .errors import ConfigurationError

DEFAULT_SEPARATOR = "\t"
DEFAULT_THRESHOLD_BYTES = 1 << 30  # 1 GB
CONFIG_SECTION = "tsv_sort"


@dataclass
class SortConfig:
    """Configuration parameters for one import task.

    Attributes:
        columns: Comma-separated column specification
        separator: Raw field separator (single byte)
        separator_b64: Base64-encoded separator, takes precedence when set
        timestamp: Default timestamp for cells without their own; None means
            the wall-clock time in milliseconds at task setup
        skip_bad_lines: Count and skip malformed lines instead of failing
        threshold_bytes: Estimated batch size at which a batch is cut
        visibility_labels: Label name -> ordinal table for visibility tags
    """

    columns: str = ""
    separator: str = DEFAULT_SEPARATOR
    separator_b64: str | None = None
    timestamp: int | None = None
    skip_bad_lines: bool = True
    threshold_bytes: int = DEFAULT_THRESHOLD_BYTES
    visibility_labels: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.threshold_bytes <= 0:
            raise ConfigurationError(
                f"threshold_bytes must be positive, got {self.threshold_bytes}"
            )

    def resolved_separator(self) -> str:
        """Return the separator, decoding the base64 form once if given."""
        if self.separator_b64 is None:
            return self.separator
        try:
            return base64.b64decode(self.separator_b64, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Invalid base64 separator: {self.separator_b64!r}") from e

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "SortConfig":
        known = {f.name for f in fields(SortConfig)}
        unknown = set(d) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        return SortConfig(**d)


def load_config(path: Path, **overrides: Any) -> SortConfig:
    """Load a TOML config file and apply non-None overrides on top."""
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid config file {path}: {e}") from e

    settings = dict(data.get(CONFIG_SECTION, data))
    settings.update({k: v for k, v in overrides.items() if v is not None})
    return SortConfig.from_dict(settings)
