"""Parser registry — detect the input format and dispatch to the right parser."""

from __future__ import annotations

from typing import Any

from graph_formatter.ir.description import GraphDescription
from graph_formatter.parsers.base import Parser
from graph_formatter.parsers.json_graph import JsonGraphParser


def detect_type(src: str) -> str:
    """Detect the input format from source text. Returns 'json' etc."""
    stripped = src.lstrip()
    if not stripped or stripped.startswith("{"):
        return "json"
    raise ValueError("Unsupported input: expected a JSON graph description object")


_PARSERS: dict[str, type[Parser]] = {
    "json": JsonGraphParser,
}


def load(src: str) -> tuple[GraphDescription, dict[str, Any]]:
    """Parse a document into its graph description and embedded layout settings."""
    input_type = detect_type(src)
    parser_cls = _PARSERS.get(input_type)
    if parser_cls is None:
        raise ValueError(f"Unsupported input type: {input_type}")
    return parser_cls().parse_document(src)


def parse(src: str) -> GraphDescription:
    """Detect the input format and parse to a GraphDescription."""
    return load(src)[0]
