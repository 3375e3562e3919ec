"""Graph model — nodes, pins and pin-to-pin edges for layered layout.

This module owns the canonical graph data structure used by every layout
phase. Back-references (pin → owning node, edge → endpoint nodes) are plain
node ids resolved through the owning ``Graph``, so a graph can be cloned by
remapping ids without chasing object cycles. A node may own a nested
``Graph`` (a collapsed group); the parent graph sees it as a single node
whose pins proxy the pins inside.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import networkx as nx

from graph_formatter.ir.description import GraphDescription, NodeSpec
from graph_formatter.types import PinDirection, RankSlot, Rect, Vector2

if TYPE_CHECKING:
    from graph_formatter.layout.ordering import DummyChain


class GraphStructureError(ValueError):
    """Raised when the graph model is used inconsistently (unknown pin, duplicate edge, ...)."""


@dataclass(eq=False)
class Pin:
    id: str
    direction: PinDirection
    node_id: str
    offset: Vector2 = field(default_factory=Vector2)


@dataclass(eq=False)
class Edge:
    """A directed pin-to-pin connection.

    ``tail``/``head`` reflect the current orientation; ``inverted`` records
    that cycle removal swapped them. ``id`` always names the original pair.
    """

    tail: Pin
    head: Pin
    weight: int = 1
    min_length: int = 1
    cut_value: int = 0
    inverted: bool = False

    @property
    def id(self) -> str:
        if self.inverted:
            return f"{self.head.id}->{self.tail.id}"
        return f"{self.tail.id}->{self.head.id}"

    @property
    def key(self) -> tuple[str, str]:
        return (self.tail.id, self.head.id)

    @property
    def tail_id(self) -> str:
        return self.tail.node_id

    @property
    def head_id(self) -> str:
        return self.head.node_id

    @property
    def is_self_loop(self) -> bool:
        return self.tail.node_id == self.head.node_id


@dataclass(eq=False)
class Node:
    id: str
    size: Vector2 = field(default_factory=lambda: Vector2(1.0, 1.0))
    position: Vector2 = field(default_factory=Vector2)
    in_pins: list[Pin] = field(default_factory=list)
    out_pins: list[Pin] = field(default_factory=list)
    in_edges: list[Edge] = field(default_factory=list)
    out_edges: list[Edge] = field(default_factory=list)
    subgraph: Graph | None = None
    rank: int = -1
    path_depth: int = 0
    order_value: float = 0.0
    priority: int = 0
    is_dummy: bool = False
    rank_slot: RankSlot = RankSlot.NONE

    @property
    def is_container(self) -> bool:
        return self.subgraph is not None

    @property
    def bound(self) -> Rect:
        return Rect.from_point_and_extent(self.position, self.size)

    def pins(self) -> list[Pin]:
        return self.in_pins + self.out_pins

    def add_pin(self, direction: PinDirection, pin_id: str | None = None, offset: Vector2 | None = None) -> Pin:
        side = self.in_pins if direction is PinDirection.IN else self.out_pins
        if pin_id is None:
            pin_id = f"{self.id}:{direction.value}{len(side)}"
        pin = Pin(id=pin_id, direction=direction, node_id=self.id, offset=offset or Vector2())
        side.append(pin)
        return pin

    def slot_count(self, side: PinDirection) -> int:
        """Number of pin slots on one side; at least one so edges always have a slot."""
        pins = self.in_pins if side is PinDirection.IN else self.out_pins
        return max(1, len(pins))

    def pin_slot(self, pin: Pin, side: PinDirection) -> int:
        """Index of ``pin`` among this node's pins on ``side``.

        An inverted edge leaves its pin on the "wrong" side of the node; such a
        pin keeps its own index, clamped to the slots available on ``side``.
        """
        pins = self.in_pins if side is PinDirection.IN else self.out_pins
        own = self.in_pins if pin.direction is PinDirection.IN else self.out_pins
        index = own.index(pin) if pin in own else 0
        if pin in pins:
            return index
        return min(index, self.slot_count(side) - 1)

    def edges_on(self, side: PinDirection) -> list[Edge]:
        return self.in_edges if side is PinDirection.IN else self.out_edges

    def successors(self) -> list[str]:
        seen: dict[str, None] = {}
        for edge in self.out_edges:
            if not edge.is_self_loop:
                seen[edge.head_id] = None
        return list(seen)

    def predecessors(self) -> list[str]:
        seen: dict[str, None] = {}
        for edge in self.in_edges:
            if not edge.is_self_loop:
                seen[edge.tail_id] = None
        return list(seen)

    def in_degree(self) -> int:
        return sum(1 for e in self.in_edges if not e.is_self_loop)

    def out_degree(self) -> int:
        return sum(1 for e in self.out_edges if not e.is_self_loop)

    def set_position(self, position: Vector2) -> None:
        """Move the node; an owned subgraph moves by the same offset."""
        offset = position - self.position
        self.position = position
        if self.subgraph is not None:
            self.subgraph.translate(offset)

    def attach_subgraph(self, subgraph: Graph) -> None:
        """Own ``subgraph`` and expose each of its pins as a proxy pin with the same id."""
        self.subgraph = subgraph
        for inner in subgraph.nodes.values():
            for pin in inner.pins():
                self.add_pin(pin.direction, pin.id, pin.offset)

    def update_pins_offset(self, border: float) -> None:
        """Recompute proxy pin offsets from the laid-out subgraph, then sort pins along the cross axis."""
        if self.subgraph is None:
            return
        origin = self.subgraph.bound.top_left - Vector2(border, border)
        positions = self.subgraph.pin_positions()
        for pin in self.pins():
            if pin.id in positions:
                pin.offset = positions[pin.id] - origin
        self.in_pins.sort(key=lambda p: p.offset.y)
        self.out_pins.sort(key=lambda p: p.offset.y)


@dataclass
class CloneMaps:
    """Original → clone object tables produced by ``Graph.clone_with_maps``."""

    nodes: dict[Node, Node] = field(default_factory=dict)
    pins: dict[Pin, Pin] = field(default_factory=dict)
    edges: dict[Edge, Edge] = field(default_factory=dict)

    @property
    def nodes_inv(self) -> dict[Node, Node]:
        return {v: k for k, v in self.nodes.items()}

    @property
    def pins_inv(self) -> dict[Pin, Pin]:
        return {v: k for k, v in self.pins.items()}

    @property
    def edges_inv(self) -> dict[Edge, Edge]:
        return {v: k for k, v in self.edges.items()}


class Graph:
    """A directed node-and-pin graph, optionally owning nested group subgraphs.

    Nodes keep insertion order; edges are keyed by their ``(tail pin, head pin)``
    ids. ``layers``, ``bound`` and ``dummy_chains`` are filled in by the layout
    pipeline. ``layers`` holds exactly this graph's own nodes by rank, so it
    includes dummy nodes only when they were inserted here: a graph split into
    isolated components keeps its dummies in ``isolated_graphs``.
    """

    def __init__(self) -> None:
        self.nodes: dict[str, Node] = {}
        self.edges: dict[tuple[str, str], Edge] = {}
        self.pins: dict[str, Pin] = {}
        self.layers: list[list[Node]] = []
        self.bound: Rect = Rect()
        self.isolated_graphs: list[Graph] = []
        self.dummy_chains: list[DummyChain] = []

    @classmethod
    def from_description(cls, desc: GraphDescription, transpose: bool = False) -> Graph:
        """Build a Graph (with nested group subgraphs) from a host description.

        With ``transpose`` every size, position and offset has its axes swapped,
        so a top-down layout can run through the same left-to-right pipeline.
        """
        desc.validate()
        specs = desc.node_map()
        parents = desc.parents()
        return _build_graph(desc, [n.id for n in desc.nodes], specs, parents, transpose)

    # ─── Queries ─────────────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self.nodes)

    def node(self, node_id: str) -> Node:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise GraphStructureError(f"Unknown node '{node_id}'") from None

    def node_count(self) -> int:
        return len(self.nodes)

    def edge_count(self) -> int:
        return len(self.edges)

    def real_nodes(self) -> list[Node]:
        return [n for n in self.nodes.values() if not n.is_dummy]

    def source_nodes(self) -> list[Node]:
        return [n for n in self.nodes.values() if n.in_degree() == 0]

    def sink_nodes(self) -> list[Node]:
        return [n for n in self.nodes.values() if n.out_degree() == 0]

    def length(self, edge: Edge) -> int:
        return self.nodes[edge.head_id].rank - self.nodes[edge.tail_id].rank

    def slack(self, edge: Edge) -> int:
        return self.length(edge) - edge.min_length

    def walk(self, parent_id: str | None = None) -> Iterator[tuple[Node, str | None]]:
        """Yield ``(node, containing group id)`` for every node at every nesting level."""
        for node in self.nodes.values():
            yield node, parent_id
            if node.subgraph is not None:
                yield from node.subgraph.walk(node.id)

    def pin_positions(self) -> dict[str, Vector2]:
        """Absolute position of every pin of every real node in this graph."""
        result: dict[str, Vector2] = {}
        for node in self.real_nodes():
            for pin in node.pins():
                result[pin.id] = node.position + pin.offset
        return result

    def to_networkx(self, include_self_loops: bool = True) -> nx.MultiDiGraph:
        digraph: nx.MultiDiGraph = nx.MultiDiGraph()
        for node_id, node in self.nodes.items():
            digraph.add_node(node_id, data=node)
        for edge in self.edges.values():
            if edge.is_self_loop and not include_self_loops:
                continue
            digraph.add_edge(edge.tail_id, edge.head_id, key=edge.id, data=edge)
        return digraph

    def is_acyclic(self) -> bool:
        """True when the graph has no directed cycle; self-loops are ignored."""
        return nx.is_directed_acyclic_graph(self.to_networkx(include_self_loops=False))

    # ─── Mutation ────────────────────────────────────────────────────────────

    def add_node(self, node: Node) -> Node:
        if node.id in self.nodes:
            raise GraphStructureError(f"Duplicate node id '{node.id}'")
        for pin in node.pins():
            if pin.id in self.pins:
                raise GraphStructureError(f"Duplicate pin id '{pin.id}'")
        self.nodes[node.id] = node
        for pin in node.pins():
            self.pins[pin.id] = pin
        return node

    def add_pin(self, node: Node, direction: PinDirection, pin_id: str | None = None) -> Pin:
        """Add a pin to a node already in this graph and index it."""
        pin = node.add_pin(direction, pin_id)
        if pin.id in self.pins:
            (node.in_pins if direction is PinDirection.IN else node.out_pins).remove(pin)
            raise GraphStructureError(f"Duplicate pin id '{pin.id}'")
        self.pins[pin.id] = pin
        return pin

    def remove_node(self, node: Node | str) -> None:
        """Remove a node, disconnecting every incident edge first."""
        target = self.node(node if isinstance(node, str) else node.id)
        for edge in list(target.in_edges) + list(target.out_edges):
            if edge.key in self.edges:
                self.remove_edge(edge)
        for pin in target.pins():
            self.pins.pop(pin.id, None)
        del self.nodes[target.id]
        for layer in self.layers:
            if target in layer:
                layer.remove(target)

    def _resolve_pin(self, pin: Pin | str) -> Pin:
        pin_id = pin if isinstance(pin, str) else pin.id
        resolved = self.pins.get(pin_id)
        if resolved is None or (not isinstance(pin, str) and resolved is not pin):
            raise GraphStructureError(f"Pin '{pin_id}' does not belong to this graph")
        return resolved

    def add_edge(self, tail: Pin | str, head: Pin | str, weight: int = 1, min_length: int = 1) -> Edge:
        tail_pin = self._resolve_pin(tail)
        head_pin = self._resolve_pin(head)
        key = (tail_pin.id, head_pin.id)
        if key in self.edges:
            raise GraphStructureError(f"Duplicate edge {key[0]} -> {key[1]}")
        edge = Edge(tail=tail_pin, head=head_pin, weight=weight, min_length=min_length)
        self._link(edge)
        return edge

    def _link(self, edge: Edge) -> None:
        self.edges[edge.key] = edge
        self.nodes[edge.tail_id].out_edges.append(edge)
        self.nodes[edge.head_id].in_edges.append(edge)

    def _unlink(self, edge: Edge) -> None:
        del self.edges[edge.key]
        self.nodes[edge.tail_id].out_edges.remove(edge)
        self.nodes[edge.head_id].in_edges.remove(edge)

    def remove_edge(self, edge: Edge | tuple[str, str]) -> None:
        key = edge if isinstance(edge, tuple) else edge.key
        target = self.edges.get(key)
        if target is None:
            raise GraphStructureError(f"Unknown edge {key[0]} -> {key[1]}")
        self._unlink(target)

    def invert_edge(self, edge: Edge) -> None:
        """Swap an edge's tail and head in place and flip its ``inverted`` flag."""
        if edge.is_self_loop:
            raise GraphStructureError(f"Cannot invert self-loop {edge.id}")
        if (edge.head.id, edge.tail.id) in self.edges:
            raise GraphStructureError(f"Inverting {edge.id} would duplicate an existing edge")
        self._unlink(edge)
        edge.tail, edge.head = edge.head, edge.tail
        edge.inverted = not edge.inverted
        self._link(edge)

    def merge_edges(self) -> int:
        """Fold parallel edges between the same ordered node pair into one.

        The first edge of each group survives with the summed weight and the
        largest ``min_length``. Returns the number of edges removed.
        """
        groups: dict[tuple[str, str], list[Edge]] = {}
        for edge in self.edges.values():
            if not edge.is_self_loop:
                groups.setdefault((edge.tail_id, edge.head_id), []).append(edge)
        removed = 0
        for edges in groups.values():
            keep, rest = edges[0], edges[1:]
            for extra in rest:
                keep.weight += extra.weight
                keep.min_length = max(keep.min_length, extra.min_length)
                self._unlink(extra)
                removed += 1
        return removed

    def set_node_in_rank_slot(self, node: Node | str, slot: RankSlot) -> None:
        self.node(node if isinstance(node, str) else node.id).rank_slot = slot

    def translate(self, offset: Vector2) -> None:
        for node in self.nodes.values():
            node.set_position(node.position + offset)
        for isolated in self.isolated_graphs:
            isolated.bound = isolated.bound.offset_by(offset)
        self.bound = self.bound.offset_by(offset)

    def set_position(self, top_left: Vector2) -> None:
        """Translate the whole graph so its bound starts at ``top_left``."""
        self.translate(top_left - self.bound.top_left)

    def calculate_bound(self) -> Rect:
        bound: Rect | None = None
        for node in self.nodes.values():
            bound = node.bound if bound is None else bound.expand(node.bound)
        self.bound = bound if bound is not None else Rect()
        return self.bound

    # ─── Cloning & decomposition ─────────────────────────────────────────────

    def clone(self) -> Graph:
        return self.clone_with_maps()[0]

    def clone_with_maps(self, node_ids: Iterable[str] | None = None) -> tuple[Graph, CloneMaps]:
        """Deep copy preserving node, pin and edge ids.

        With ``node_ids`` only those nodes (and edges between them) are copied.
        Owned subgraphs are cloned recursively; nothing is shared with ``self``.
        """
        wanted = set(node_ids) if node_ids is not None else None
        maps = CloneMaps()
        result = Graph()
        for node in self.nodes.values():
            if wanted is not None and node.id not in wanted:
                continue
            copy = Node(
                id=node.id,
                size=node.size,
                position=node.position,
                subgraph=node.subgraph.clone() if node.subgraph is not None else None,
                rank=node.rank,
                path_depth=node.path_depth,
                order_value=node.order_value,
                priority=node.priority,
                is_dummy=node.is_dummy,
                rank_slot=node.rank_slot,
            )
            for pin in node.pins():
                maps.pins[pin] = copy.add_pin(pin.direction, pin.id, pin.offset)
            result.add_node(copy)
            maps.nodes[node] = copy
        for edge in self.edges.values():
            if edge.tail in maps.pins and edge.head in maps.pins:
                copy_edge = result.add_edge(maps.pins[edge.tail], maps.pins[edge.head], edge.weight, edge.min_length)
                copy_edge.cut_value = edge.cut_value
                copy_edge.inverted = edge.inverted
                maps.edges[edge] = copy_edge
        result.layers = [[maps.nodes[n] for n in layer if n in maps.nodes] for layer in self.layers]
        result.layers = [layer for layer in result.layers if layer]
        result.bound = self.bound
        return result, maps

    def subset(self, node_ids: Iterable[str]) -> Graph:
        return self.clone_with_maps(node_ids)[0]

    def connected_components(self) -> list[list[str]]:
        """Undirected connected components as node-id lists, in first-node order."""
        index = {node_id: i for i, node_id in enumerate(self.nodes)}
        undirected = self.to_networkx(include_self_loops=False).to_undirected()
        components = [sorted(c, key=index.__getitem__) for c in nx.connected_components(undirected)]
        components.sort(key=lambda c: index[c[0]])
        return components

    def isolated_subgraphs(self) -> list[Graph]:
        """Independent clones, one per undirected connected component."""
        return [self.subset(component) for component in self.connected_components()]


# ─── Description → Graph ─────────────────────────────────────────────────────


def _orient(v: Vector2, transpose: bool) -> Vector2:
    return v.transposed() if transpose else v


def _is_descendant(node_id: str, ancestor_id: str, parents: dict[str, str]) -> bool:
    current = parents.get(node_id)
    while current is not None:
        if current == ancestor_id:
            return True
        current = parents.get(current)
    return False


def _make_node(spec: NodeSpec, transpose: bool) -> Node:
    node = Node(
        id=spec.id,
        size=_orient(spec.size, transpose),
        position=_orient(spec.position, transpose),
        rank_slot=spec.rank_slot,
    )
    for pin_spec in spec.pins:
        node.add_pin(pin_spec.direction, pin_spec.id, _orient(pin_spec.offset, transpose))
    return node


def _build_graph(
    desc: GraphDescription,
    member_ids: list[str],
    specs: dict[str, NodeSpec],
    parents: dict[str, str],
    transpose: bool,
) -> Graph:
    members = set(member_ids)
    graph = Graph()
    top = [nid for nid in member_ids if parents.get(nid) not in members]
    top.sort(key=lambda nid: _orient(specs[nid].position, transpose).y)

    for node_id in top:
        node = _make_node(specs[node_id], transpose)
        inner = [m for m in member_ids if _is_descendant(m, node_id, parents)]
        if inner:
            node.attach_subgraph(_build_graph(desc, inner, specs, parents, transpose))
        graph.add_node(node)

    for edge_spec in desc.edges:
        tail = graph.pins.get(edge_spec.tail)
        head = graph.pins.get(edge_spec.head)
        if tail is None or head is None:
            continue
        if tail.node_id == head.node_id and graph.nodes[tail.node_id].is_container:
            # Both ends inside the same group: the group's own subgraph holds it.
            continue
        graph.add_edge(tail, head, edge_spec.weight, edge_spec.min_length)
    return graph
