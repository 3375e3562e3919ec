"""Host-facing graph description.

These types are what a host editor hands to the formatter: sized nodes, their
pins, pin-to-pin connections and an optional grouping relation
(a group node lists the nodes it visually contains).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from graph_formatter.types import PinDirection, RankSlot, Vector2


@dataclass
class PinSpec:
    id: str
    direction: PinDirection
    offset: Vector2 = field(default_factory=Vector2)


@dataclass
class NodeSpec:
    id: str
    size: Vector2
    pins: list[PinSpec] = field(default_factory=list)
    position: Vector2 = field(default_factory=Vector2)
    children: list[str] = field(default_factory=list)
    rank_slot: RankSlot = RankSlot.NONE

    @classmethod
    def simple(cls, id: str, width: float = 100.0, height: float = 50.0, inputs: int = 1, outputs: int = 1) -> NodeSpec:
        """Create a node with ``inputs``/``outputs`` pins spread down its left and right edges."""
        pins: list[PinSpec] = []
        for i in range(inputs):
            pins.append(PinSpec(f"{id}.in{i}", PinDirection.IN, Vector2(0.0, height * (i + 1) / (inputs + 1))))
        for i in range(outputs):
            pins.append(PinSpec(f"{id}.out{i}", PinDirection.OUT, Vector2(width, height * (i + 1) / (outputs + 1))))
        return cls(id=id, size=Vector2(width, height), pins=pins)


@dataclass
class EdgeSpec:
    tail: str
    head: str
    weight: int = 1
    min_length: int = 1


@dataclass
class GraphDescription:
    nodes: list[NodeSpec] = field(default_factory=list)
    edges: list[EdgeSpec] = field(default_factory=list)

    def node_map(self) -> dict[str, NodeSpec]:
        return {n.id: n for n in self.nodes}

    def pin_owners(self) -> dict[str, str]:
        """Map every pin id to the id of the node declaring it."""
        return {p.id: n.id for n in self.nodes for p in n.pins}

    def parents(self) -> dict[str, str]:
        """Map every grouped node id to the id of the group containing it."""
        result: dict[str, str] = {}
        for node in self.nodes:
            for child in node.children:
                result[child] = node.id
        return result

    def validate(self) -> None:
        """Check ids and references; raises ValueError describing the first problem found."""
        node_ids: set[str] = set()
        pin_ids: set[str] = set()
        for node in self.nodes:
            if node.id in node_ids:
                raise ValueError(f"Duplicate node id '{node.id}'")
            node_ids.add(node.id)
            if node.size.x < 0 or node.size.y < 0:
                raise ValueError(f"Node '{node.id}' has a negative size")
            for pin in node.pins:
                if pin.id in pin_ids:
                    raise ValueError(f"Duplicate pin id '{pin.id}'")
                pin_ids.add(pin.id)

        owners = self.pin_owners()
        pairs: set[tuple[str, str]] = set()
        for edge in self.edges:
            for end in (edge.tail, edge.head):
                if end not in owners:
                    raise ValueError(f"Edge references unknown pin '{end}'")
            if (edge.tail, edge.head) in pairs:
                raise ValueError(f"Duplicate edge {edge.tail} -> {edge.head}")
            if (edge.head, edge.tail) in pairs:
                raise ValueError(f"Pins {edge.tail} and {edge.head} are connected in both directions")
            pairs.add((edge.tail, edge.head))
            if edge.weight < 0:
                raise ValueError(f"Edge {edge.tail} -> {edge.head} has a negative weight")
            if edge.min_length < 0:
                raise ValueError(f"Edge {edge.tail} -> {edge.head} has a negative min_length")

        claimed: dict[str, str] = {}
        for node in self.nodes:
            for child in node.children:
                if child not in node_ids:
                    raise ValueError(f"Group '{node.id}' contains unknown node '{child}'")
                if child == node.id:
                    raise ValueError(f"Group '{node.id}' contains itself")
                if child in claimed:
                    raise ValueError(f"Node '{child}' belongs to both '{claimed[child]}' and '{node.id}'")
                claimed[child] = node.id

        for start in claimed:
            seen = {start}
            current = claimed.get(start)
            while current is not None:
                if current in seen:
                    raise ValueError(f"Group containment cycle through '{current}'")
                seen.add(current)
                current = claimed.get(current)
