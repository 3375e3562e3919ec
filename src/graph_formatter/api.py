"""Top-level convenience functions for hosts and scripts."""

from __future__ import annotations

from typing import Any

from graph_formatter.config import LayoutConfig
from graph_formatter.emitters.base import Emitter
from graph_formatter.emitters.json_emitter import JsonEmitter
from graph_formatter.ir.description import GraphDescription
from graph_formatter.layout.engine import full_layout
from graph_formatter.layout.types import LayoutResult
from graph_formatter.parsers import load


def layout(desc: GraphDescription, config: LayoutConfig | None = None) -> LayoutResult:
    """Lay out a host description and return positions, bound and pin offsets.

    Args:
        desc: Nodes with sizes and pins, pin-to-pin edges and optional groups.
        config: Layout settings; defaults to ``LayoutConfig()``.

    Returns:
        The LayoutResult for every real node at every nesting level.

    Raises:
        ValueError: If the description is inconsistent.
        LayoutError: If groups are nested deeper than ``config.max_nesting_depth``.
    """
    return full_layout(desc, config)


def resolve_config(
    document: dict[str, Any],
    config: LayoutConfig | None = None,
    overrides: dict[str, Any] | None = None,
) -> LayoutConfig:
    """Settings precedence: ``overrides`` over the document's ``config`` block over ``config``."""
    resolved = LayoutConfig.from_mapping(document, base=config)
    if overrides:
        resolved = LayoutConfig.from_mapping(overrides, base=resolved)
    return resolved


def format_json(src: str, config: LayoutConfig | None = None, overrides: dict[str, Any] | None = None) -> str:
    """Parse a JSON graph description, lay it out and return the result as JSON text.

    Args:
        src: JSON document with ``nodes``, ``edges`` and an optional ``config`` block.
        config: Base settings the document's ``config`` block is applied on top of.
        overrides: Settings that win over the document, e.g. from command-line options.

    Raises:
        ValueError: If the input cannot be parsed or a setting is unknown.
    """
    desc, document = load(src)
    result = full_layout(desc, resolve_config(document, config, overrides))
    emitter: Emitter = JsonEmitter()
    return emitter.emit(result)
