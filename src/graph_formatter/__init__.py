"""graph-formatter: automatic layered layout for node-and-pin graphs."""

from graph_formatter.api import format_json, layout
from graph_formatter.config import LayoutConfig
from graph_formatter.ir.description import EdgeSpec, GraphDescription, NodeSpec, PinSpec
from graph_formatter.layout.sugiyama import LayoutError
from graph_formatter.layout.types import LayoutNode, LayoutResult
from graph_formatter.types import (
    CombineMethod,
    Direction,
    PinDirection,
    PositioningStrategy,
    RankingStrategy,
    RankSlot,
    Rect,
    Vector2,
)

__all__ = [
    "CombineMethod",
    "Direction",
    "EdgeSpec",
    "GraphDescription",
    "LayoutConfig",
    "LayoutError",
    "LayoutNode",
    "LayoutResult",
    "NodeSpec",
    "PinDirection",
    "PinSpec",
    "PositioningStrategy",
    "RankSlot",
    "RankingStrategy",
    "Rect",
    "Vector2",
    "format_json",
    "layout",
]
