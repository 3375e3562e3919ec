"""Base parser protocol."""

from __future__ import annotations

from typing import Any, Protocol

from graph_formatter.ir.description import GraphDescription


class Parser(Protocol):
    """Protocol that all graph description parsers must implement."""

    def parse(self, src: str) -> GraphDescription:
        """Parse source text into a validated GraphDescription."""
        ...

    def parse_document(self, src: str) -> tuple[GraphDescription, dict[str, Any]]:
        """Parse source text into a description plus its embedded layout settings."""
        ...
