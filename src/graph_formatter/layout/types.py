"""Layout types shared by the pipeline, the API and the emitters."""

from __future__ import annotations

from dataclasses import dataclass, field

from graph_formatter.types import Direction, Rect, Vector2


@dataclass
class LayoutNode:
    """A positioned real node, in host coordinates."""

    id: str
    rank: int
    order: int
    x: float
    y: float
    width: float
    height: float
    parent: str | None = None

    @property
    def bound(self) -> Rect:
        return Rect(self.x, self.y, self.x + self.width, self.y + self.height)


@dataclass
class LayoutResult:
    """Self-contained layout output — everything a host needs to move its widgets."""

    nodes: list[LayoutNode] = field(default_factory=list)
    bound: Rect = field(default_factory=Rect)
    pin_offsets: dict[str, Vector2] = field(default_factory=dict)
    direction: Direction = Direction.LR

    def node(self, node_id: str) -> LayoutNode:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)

    def bound_map(self) -> dict[str, Rect]:
        """Map every laid-out node id to its final bounding rectangle."""
        return {n.id: n.bound for n in self.nodes}


# Prefix constants
DUMMY_PREFIX = "__dummy_"
