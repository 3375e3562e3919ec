"""Base emitter protocol."""

from __future__ import annotations

from typing import Protocol

from graph_formatter.layout.types import LayoutResult


class Emitter(Protocol):
    """Protocol that all result emitters must implement."""

    def emit(self, result: LayoutResult) -> str:
        """Serialise a layout result to an output string."""
        ...
