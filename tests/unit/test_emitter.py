"""Tests for graph_formatter.emitters — JSON layout output."""

from __future__ import annotations

import json

from graph_formatter.emitters import JsonEmitter
from graph_formatter.layout.types import LayoutNode, LayoutResult
from graph_formatter.types import Direction, Rect, Vector2


def _result() -> LayoutResult:
    return LayoutResult(
        nodes=[
            LayoutNode(id="a", rank=0, order=0, x=0.0, y=12.5, width=100.0, height=50.0),
            LayoutNode(id="b", rank=1, order=0, x=180.0, y=1 / 3, width=100.0, height=50.0, parent="g"),
        ],
        bound=Rect(0.0, 0.0, 280.0, 62.5),
        pin_offsets={"a.out0": Vector2(100.0, 25.0)},
        direction=Direction.TD,
    )


class TestJsonEmitter:
    def test_document_shape(self):
        data = JsonEmitter().to_dict(_result())
        assert data["direction"] == "td"
        assert data["bound"] == {"left": 0, "top": 0, "right": 280, "bottom": 62.5}
        assert data["nodes"][0] == {
            "id": "a",
            "x": 0,
            "y": 12.5,
            "width": 100,
            "height": 50,
            "rank": 0,
            "order": 0,
            "parent": None,
        }
        assert data["pins"] == {"a.out0": [100, 25]}

    def test_rounds_to_three_decimals(self):
        data = JsonEmitter().to_dict(_result())
        assert data["nodes"][1]["y"] == 0.333
        assert data["nodes"][1]["parent"] == "g"

    def test_whole_numbers_written_as_int(self):
        text = JsonEmitter().emit(_result())
        assert '"x": 180,' in text
        assert '"x": 180.0' not in text

    def test_emit_is_valid_json_with_newline(self):
        text = JsonEmitter(indent=None).emit(_result())
        assert text.endswith("\n")
        assert "\n" not in text[:-1]
        assert json.loads(text)["nodes"][1]["id"] == "b"

    def test_empty_result(self):
        data = JsonEmitter().to_dict(LayoutResult())
        assert data == {
            "direction": "lr",
            "bound": {"left": 0, "top": 0, "right": 0, "bottom": 0},
            "nodes": [],
            "pins": {},
        }
