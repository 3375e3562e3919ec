"""Layout engine convenience functions."""

from __future__ import annotations

from graph_formatter.config import LayoutConfig
from graph_formatter.ir.description import GraphDescription
from graph_formatter.ir.graph import Graph
from graph_formatter.layout.sugiyama import SugiyamaLayout
from graph_formatter.layout.types import LayoutNode, LayoutResult
from graph_formatter.types import Direction, Vector2


def build_graph(description: GraphDescription, config: LayoutConfig) -> Graph:
    """Build the layout graph, transposed when ranks run top to bottom."""
    return Graph.from_description(description, transpose=config.direction is Direction.TD)


def full_layout(description: GraphDescription, config: LayoutConfig | None = None) -> LayoutResult:
    """Run the Sugiyama pipeline on a host description and collect host-facing results."""
    config = config or LayoutConfig()
    graph = SugiyamaLayout(config).layout(build_graph(description, config))
    return collect_result(graph, description, config.direction)


def collect_result(graph: Graph, description: GraphDescription, direction: Direction) -> LayoutResult:
    """Read positions, sizes and pin offsets of every real node back out of a laid-out graph."""
    transpose = direction is Direction.TD

    def orient(v: Vector2) -> Vector2:
        return v.transposed() if transpose else v

    owners = description.pin_owners()
    result = LayoutResult(direction=direction)
    for node, parent in graph.walk():
        if node.is_dummy:
            continue
        position = orient(node.position)
        size = orient(node.size)
        result.nodes.append(
            LayoutNode(
                id=node.id,
                rank=node.rank,
                order=int(node.order_value),
                x=position.x,
                y=position.y,
                width=size.x,
                height=size.y,
                parent=parent,
            )
        )
        for pin in node.pins():
            if owners.get(pin.id) == node.id:
                result.pin_offsets[pin.id] = orient(pin.offset)
    result.bound = graph.bound.transposed() if transpose else graph.bound
    return result
