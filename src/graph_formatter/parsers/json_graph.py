"""JSON graph description parser.

Accepted document::

    {
      "nodes": [
        {"id": "a", "size": [120, 60],
         "pins": [{"id": "a.out", "direction": "out", "offset": [120, 30]}],
         "position": [0, 0], "children": [], "rank_slot": "none"},
        {"id": "b", "size": [120, 60], "inputs": 2, "outputs": 1}
      ],
      "edges": [{"tail": "a.out", "head": "b.in0", "weight": 1, "min_length": 1}],
      "config": {"ranking_strategy": "longest_path"}
    }

A node without ``pins`` gets ``inputs``/``outputs`` pins (default one each)
named ``<id>.in<i>`` / ``<id>.out<i>``, spread down its left and right edges.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from graph_formatter.ir.description import EdgeSpec, GraphDescription, NodeSpec, PinSpec
from graph_formatter.types import PinDirection, RankSlot, Vector2


def _vector(value: Any, what: str) -> Vector2:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"{what} must be a [x, y] pair")
    try:
        return Vector2(float(value[0]), float(value[1]))
    except (TypeError, ValueError):
        raise ValueError(f"{what} must contain numbers") from None


def _object(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be an object")
    return value


def _string(data: dict[str, Any], key: str, what: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"{what} needs a non-empty string '{key}'")
    return value


def _integer(data: dict[str, Any], key: str, default: int, what: str) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{what}: '{key}' must be an integer")
    return value


def _choice(enum_type: type[Enum], raw: Any, what: str) -> Any:
    try:
        return enum_type(str(raw).lower())
    except ValueError:
        choices = ", ".join(member.value for member in enum_type)
        raise ValueError(f"{what}: unknown value '{raw}'; use one of: {choices}") from None


class JsonGraphParser:
    """Parse the JSON graph description format."""

    def parse(self, src: str) -> GraphDescription:
        return self.parse_document(src)[0]

    def parse_document(self, src: str) -> tuple[GraphDescription, dict[str, Any]]:
        if not src.strip():
            return GraphDescription(), {}
        try:
            data = json.loads(src)
        except json.JSONDecodeError as e:
            raise ValueError(f"invalid JSON at line {e.lineno}, column {e.colno}: {e.msg}") from None
        data = _object(data, "document")

        raw_nodes = data.get("nodes", [])
        raw_edges = data.get("edges", [])
        if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
            raise ValueError("'nodes' and 'edges' must be lists")

        desc = GraphDescription(
            nodes=[self._node(_object(n, "node")) for n in raw_nodes],
            edges=[self._edge(_object(e, "edge")) for e in raw_edges],
        )
        desc.validate()
        return desc, dict(_object(data.get("config", {}), "config"))

    def _node(self, data: dict[str, Any]) -> NodeSpec:
        node_id = _string(data, "id", "node")
        what = f"node '{node_id}'"
        size = _vector(data.get("size"), f"{what} size")
        if "pins" in data:
            raw_pins = data["pins"]
            if not isinstance(raw_pins, list):
                raise ValueError(f"{what}: 'pins' must be a list")
            node = NodeSpec(id=node_id, size=size, pins=[self._pin(_object(p, f"{what} pin"), what) for p in raw_pins])
        else:
            inputs = _integer(data, "inputs", 1, what)
            outputs = _integer(data, "outputs", 1, what)
            if inputs < 0 or outputs < 0:
                raise ValueError(f"{what}: pin counts must be non-negative")
            node = NodeSpec.simple(node_id, size.x, size.y, inputs, outputs)

        if "position" in data:
            node.position = _vector(data["position"], f"{what} position")
        children = data.get("children", [])
        if not isinstance(children, list) or not all(isinstance(c, str) for c in children):
            raise ValueError(f"{what}: 'children' must be a list of node ids")
        node.children = list(children)
        if "rank_slot" in data:
            node.rank_slot = _choice(RankSlot, data["rank_slot"], f"{what} rank_slot")
        return node

    def _pin(self, data: dict[str, Any], owner: str) -> PinSpec:
        pin_id = _string(data, "id", f"{owner} pin")
        direction = _choice(PinDirection, data.get("direction"), f"pin '{pin_id}' direction")
        offset = _vector(data.get("offset", [0, 0]), f"pin '{pin_id}' offset")
        return PinSpec(id=pin_id, direction=direction, offset=offset)

    def _edge(self, data: dict[str, Any]) -> EdgeSpec:
        tail = _string(data, "tail", "edge")
        head = _string(data, "head", "edge")
        what = f"edge {tail} -> {head}"
        return EdgeSpec(
            tail=tail,
            head=head,
            weight=_integer(data, "weight", 1, what),
            min_length=_integer(data, "min_length", 1, what),
        )
