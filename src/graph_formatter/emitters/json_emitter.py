"""JSON emitter — node positions, sizes, ranks and pin offsets for the host."""

from __future__ import annotations

import json
from typing import Any

from graph_formatter.layout.types import LayoutResult
from graph_formatter.types import Rect


def _number(value: float) -> float | int:
    rounded = round(value, 3)
    return int(rounded) if float(rounded).is_integer() else rounded


def _rect(rect: Rect) -> dict[str, float | int]:
    return {
        "left": _number(rect.left),
        "top": _number(rect.top),
        "right": _number(rect.right),
        "bottom": _number(rect.bottom),
    }


class JsonEmitter:
    """Emit a LayoutResult as a JSON document.

    Coordinates are rounded to three decimals and written as integers when
    they are whole, so results diff cleanly.
    """

    def __init__(self, indent: int | None = 2) -> None:
        self.indent = indent

    def to_dict(self, result: LayoutResult) -> dict[str, Any]:
        return {
            "direction": result.direction.value,
            "bound": _rect(result.bound),
            "nodes": [
                {
                    "id": node.id,
                    "x": _number(node.x),
                    "y": _number(node.y),
                    "width": _number(node.width),
                    "height": _number(node.height),
                    "rank": node.rank,
                    "order": node.order,
                    "parent": node.parent,
                }
                for node in result.nodes
            ],
            "pins": {pin_id: [_number(v.x), _number(v.y)] for pin_id, v in result.pin_offsets.items()},
        }

    def emit(self, result: LayoutResult) -> str:
        return json.dumps(self.to_dict(result), indent=self.indent) + "\n"
