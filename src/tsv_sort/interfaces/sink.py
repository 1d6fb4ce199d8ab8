"""Protocol definitions for output sinks."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..core.types import Emission


class Sink(Protocol):
    """Downstream consumer of sorted cells and boundary markers."""

    def write(self, message: Emission) -> None:
        """Accept a CellRecord or the BOUNDARY marker."""
        ...
