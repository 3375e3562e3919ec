"""Sugiyama-style layered layout pipeline.

Phases:
  1. Nested groups, innermost first (a group becomes one sized node)
  2. Isolated component split
  3. Cycle removal (greedy edge inversion)
  4. Rank-slot normalisation and rank assignment
  5. Dummy node insertion
  6. Crossing minimization (barycenter)
  7. Coordinate assignment

Everything runs in the left-to-right frame; a top-down layout is handled by
transposing the graph before it gets here.
"""

from __future__ import annotations

import logging

from graph_formatter.config import LayoutConfig
from graph_formatter.ir.graph import Graph, Node
from graph_formatter.layout.acyclic import remove_cycles
from graph_formatter.layout.ordering import build_layers, insert_dummy_nodes, minimise_crossings
from graph_formatter.layout.positioning import position_nodes
from graph_formatter.layout.ranking import prepare_rank_slots, rank_nodes
from graph_formatter.types import Rect, Vector2

logger = logging.getLogger(__name__)


class LayoutError(RuntimeError):
    """Raised when a graph cannot be laid out, e.g. groups nested too deeply."""


class SugiyamaLayout:
    """Sugiyama layered layout engine."""

    def __init__(self, config: LayoutConfig | None = None) -> None:
        self.config = config or LayoutConfig()

    def layout(self, graph: Graph) -> Graph:
        """Lay out ``graph`` in place and return it.

        The result is translated so its bound starts at the origin, or with
        ``preserve_position`` so the first node stays where it was.
        """
        anchor: tuple[str, Vector2] | None = None
        if graph.nodes:
            first = next(iter(graph.nodes.values()))
            anchor = (first.id, first.position)

        self._layout(graph, depth=0)

        if anchor is not None and self.config.preserve_position:
            node_id, position = anchor
            graph.translate(position - graph.nodes[node_id].position)
        elif graph.nodes:
            graph.translate(Vector2() - graph.bound.top_left)
        return graph

    # ─── Recursion ───────────────────────────────────────────────────────

    def _layout(self, graph: Graph, depth: int) -> None:
        if depth > self.config.max_nesting_depth:
            raise LayoutError(f"Groups nested deeper than {self.config.max_nesting_depth} levels")
        if not graph.nodes:
            graph.layers = []
            graph.bound = Rect()
            return

        components = graph.connected_components()
        if len(components) > 1:
            self._layout_components(graph, components, depth)
        else:
            self._layout_connected(graph, depth)

    def _layout_group(self, node: Node, subgraph: Graph, depth: int) -> None:
        """Lay out a group's contents and size the group node around them."""
        self._layout(subgraph, depth + 1)
        border = self.config.group_border
        node.update_pins_offset(border)
        node.size = subgraph.bound.size + Vector2(2 * border, 2 * border)
        # Assigned directly: the subgraph is already where the group starts.
        node.position = subgraph.bound.top_left - Vector2(border, border)

    def _layout_connected(self, graph: Graph, depth: int) -> set[str]:
        """Run every phase on one connected graph; returns the ids of the edges left inverted."""
        for node in graph.nodes.values():
            if node.subgraph is not None:
                self._layout_group(node, node.subgraph, depth)

        remove_cycles(graph)
        prepare_rank_slots(graph)
        # Read after both passes: a rank slot can flip a cycle-removal inversion back.
        inverted = {e.id for e in graph.edges.values() if e.inverted}
        rank_nodes(graph, self.config.ranking_strategy, self.config.max_simplex_iterations)
        graph.dummy_chains = insert_dummy_nodes(graph)
        build_layers(graph)
        crossings = minimise_crossings(graph, self.config.max_ordering_iterations)
        position_nodes(graph, self.config)
        logger.debug(
            "laid out %d nodes at depth %d: %d ranks, %d inverted edges, %d crossings",
            len(graph.real_nodes()),
            depth,
            len(graph.layers),
            len(inverted),
            crossings,
        )
        return inverted

    def _layout_components(self, graph: Graph, components: list[list[str]], depth: int) -> None:
        """Lay out each isolated component on its own and stack them along the cross axis.

        Dummy nodes stay in the component graphs (``graph.isolated_graphs``);
        ``graph`` gets back positions, ranks and edge orientation only.
        """
        spacing = self.config.effective_component_spacing
        parts = [graph.subset(component) for component in components]
        inverted: set[str] = set()
        cursor = 0.0
        bound: Rect | None = None
        for part in parts:
            inverted |= self._layout_connected(part, depth)
            part.set_position(Vector2(0.0, cursor))
            cursor = part.bound.bottom + spacing
            bound = part.bound if bound is None else bound.expand(part.bound)

        rank_total = max(len(part.layers) for part in parts)
        graph.layers = [[] for _ in range(rank_total)]
        for part in parts:
            for rank, layer in enumerate(part.layers):
                graph.layers[rank].extend(graph.nodes[n.id] for n in layer if not n.is_dummy)
            for node_id, laid_out in part.nodes.items():
                if node_id in graph.nodes:
                    _copy_placement(laid_out, graph.nodes[node_id])
        _copy_orientation(graph, inverted)
        graph.dummy_chains = [chain for part in parts for chain in part.dummy_chains]
        graph.isolated_graphs = parts
        graph.bound = bound if bound is not None else Rect()
        logger.debug("stacked %d isolated components at depth %d", len(parts), depth)


def _copy_orientation(graph: Graph, inverted: set[str]) -> None:
    """Invert exactly the edges of ``graph`` whose ids were left inverted in its components."""
    for edge in list(graph.edges.values()):
        if not edge.is_self_loop and edge.inverted != (edge.id in inverted):
            graph.invert_edge(edge)


def _copy_placement(source: Node, target: Node) -> None:
    """Carry a laid-out clone's results back onto the node it was cloned from."""
    target.position = source.position
    target.size = source.size
    target.rank = source.rank
    target.order_value = source.order_value
    target.subgraph = source.subgraph
    pins = {pin.id: pin for pin in target.pins()}
    for pin in source.pins():
        pins[pin.id].offset = pin.offset
    target.in_pins = [pins[p.id] for p in source.in_pins]
    target.out_pins = [pins[p.id] for p in source.out_pins]
