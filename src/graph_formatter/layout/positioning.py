"""Coordinate assignment.

Layout runs in a canonical left-to-right frame: ranks advance along x and
the nodes of one rank stack along y (the *cross axis*). Each strategy here
only decides cross-axis coordinates; ``assign_rank_axis`` then places the
ranks themselves and ``position_nodes`` writes both into the graph.

Strategies:

* ``EvenlyPositioning`` — stack each rank with ``node_spacing`` gaps and
  centre it on the tallest rank.
* ``PriorityPositioning`` — start evenly, then sweep down and up moving
  each node toward its neighbours' linked pins, highest priority first.
* ``FourDirectionPositioning`` — Brandes–Köpf: four independent
  alignment/compaction passes combined per node.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from graph_formatter.config import LayoutConfig
from graph_formatter.ir.graph import Edge, Graph, Node, Pin
from graph_formatter.types import CombineMethod, PositioningStrategy, Vector2

logger = logging.getLogger(__name__)

Layers = list[list[Node]]
CoordinateMap = dict[str, float]


class Positioning(Protocol):
    """Protocol that all cross-axis positioning strategies implement."""

    def place(self, layers: Layers) -> CoordinateMap:
        """Return the cross-axis (y) coordinate of every node in ``layers``."""
        ...


# ─── Shared helpers ──────────────────────────────────────────────────────────


def _connecting_edges(node: Node, other: Node) -> Iterator[tuple[Edge, Pin]]:
    for edge in node.in_edges:
        if edge.tail_id == other.id:
            yield edge, edge.head
    for edge in node.out_edges:
        if edge.head_id == other.id:
            yield edge, edge.tail


def linked_offset(node: Node, other: Node) -> float:
    """Mean cross-axis offset of ``node``'s pins on edges to ``other``; the node's middle if none."""
    offsets = [pin.offset.y for _, pin in _connecting_edges(node, other)]
    if not offsets:
        return node.size.y / 2
    return sum(offsets) / len(offsets)


def _neighbours(node: Node, layer: list[Node]) -> list[Node]:
    """Distinct nodes of ``layer`` sharing an edge with ``node``, in layer order."""
    ids: set[str] = set()
    for edge in node.in_edges + node.out_edges:
        if not edge.is_self_loop:
            ids.add(edge.tail_id if edge.head_id == node.id else edge.head_id)
    return [n for n in layer if n.id in ids]


def _layer_extent(layer: list[Node], spacing: float) -> float:
    if not layer:
        return 0.0
    return sum(n.size.y for n in layer) + spacing * (len(layer) - 1)


# ─── Evenly spaced ───────────────────────────────────────────────────────────


class EvenlyPositioning:
    def __init__(self, config: LayoutConfig) -> None:
        self.spacing = config.node_spacing

    def place(self, layers: Layers) -> CoordinateMap:
        coords: CoordinateMap = {}
        tallest = max((_layer_extent(layer, self.spacing) for layer in layers), default=0.0)
        for layer in layers:
            y = (tallest - _layer_extent(layer, self.spacing)) / 2
            for node in layer:
                coords[node.id] = y
                y += node.size.y + self.spacing
        return coords


# ─── Priority ────────────────────────────────────────────────────────────────


class PriorityPositioning:
    """Sander-style priority placement.

    Nodes are visited in priority order (dummies first, then by number of
    edges into the fixed rank). A visited node moves toward the position that
    lines its pins up with its neighbours' pins; it may push lower-priority
    nodes out of the way but never an already visited one.
    """

    def __init__(self, config: LayoutConfig) -> None:
        self.config = config
        self.spacing = config.node_spacing
        self.sweeps = config.max_ordering_iterations

    def place(self, layers: Layers) -> CoordinateMap:
        y = EvenlyPositioning(self.config).place(layers)
        for _ in range(self.sweeps):
            before = dict(y)
            for r in range(1, len(layers)):
                self._place_layer(layers[r], layers[r - 1], y)
            for r in range(len(layers) - 2, -1, -1):
                self._place_layer(layers[r], layers[r + 1], y)
            if before == y:
                break
        return y

    @staticmethod
    def priority(node: Node, fixed: list[Node]) -> int:
        if node.is_dummy:
            return 1 << 30
        fixed_ids = {n.id for n in fixed}
        return sum(
            1
            for e in node.in_edges + node.out_edges
            if not e.is_self_loop and (e.tail_id in fixed_ids or e.head_id in fixed_ids)
        )

    def _ideal(self, node: Node, fixed: list[Node], y: CoordinateMap) -> float | None:
        targets: list[float] = []
        for other in _neighbours(node, fixed):
            for _, own_pin in _connecting_edges(node, other):
                targets.append(y[other.id] + linked_offset(other, node) - own_pin.offset.y)
        if not targets:
            return None
        return sum(targets) / len(targets)

    def _place_layer(self, layer: list[Node], fixed: list[Node], y: CoordinateMap) -> None:
        for node in layer:
            node.priority = self.priority(node, fixed)
        order = sorted(range(len(layer)), key=lambda i: -layer[i].priority)
        placed = [False] * len(layer)
        for i in order:
            target = self._ideal(layer[i], fixed, y)
            if target is not None:
                if target < y[layer[i].id]:
                    self._move_up(layer, placed, i, target, y)
                elif target > y[layer[i].id]:
                    self._move_down(layer, placed, i, target, y)
            placed[i] = True

    def _move_up(self, layer: list[Node], placed: list[bool], i: int, target: float, y: CoordinateMap) -> None:
        limit = -math.inf
        need = 0.0
        for k in range(i - 1, -1, -1):
            need += layer[k].size.y + self.spacing
            if placed[k]:
                limit = y[layer[k].id] + need
                break
        y[layer[i].id] = max(target, limit)
        for k in range(i - 1, -1, -1):
            if placed[k]:
                break
            y[layer[k].id] = min(y[layer[k].id], y[layer[k + 1].id] - self.spacing - layer[k].size.y)

    def _move_down(self, layer: list[Node], placed: list[bool], i: int, target: float, y: CoordinateMap) -> None:
        limit = math.inf
        need = layer[i].size.y + self.spacing
        for k in range(i + 1, len(layer)):
            if placed[k]:
                limit = y[layer[k].id] - need
                break
            need += layer[k].size.y + self.spacing
        y[layer[i].id] = min(target, limit)
        for k in range(i + 1, len(layer)):
            if placed[k]:
                break
            y[layer[k].id] = max(y[layer[k].id], y[layer[k - 1].id] + layer[k - 1].size.y + self.spacing)


# ─── Four-direction (Brandes–Köpf) ───────────────────────────────────────────


class Vertical(Enum):
    DOWN = "down"  # align with the previous rank, scanning ranks first to last
    UP = "up"


class Horizontal(Enum):
    LEFT = "left"  # compact toward smaller cross-axis values
    RIGHT = "right"


@dataclass
class _Frame:
    """One of the four sweep directions, expressed as a mirrored view of the layers.

    Every direction is computed by the same up-left algorithm: UP reverses
    the rank order, RIGHT reverses each rank and mirrors sizes and pin
    offsets, and ``to_graph`` maps coordinates back.
    """

    vertical: Vertical
    horizontal: Horizontal
    layers: Layers

    @classmethod
    def build(cls, layers: Layers, vertical: Vertical, horizontal: Horizontal) -> _Frame:
        ranks = list(layers) if vertical is Vertical.DOWN else list(reversed(layers))
        if horizontal is Horizontal.RIGHT:
            ranks = [list(reversed(layer)) for layer in ranks]
        else:
            ranks = [list(layer) for layer in ranks]
        return cls(vertical, horizontal, ranks)

    @property
    def mirrored(self) -> bool:
        return self.horizontal is Horizontal.RIGHT

    def offset(self, node: Node, other: Node) -> float:
        value = linked_offset(node, other)
        return node.size.y - value if self.mirrored else value

    def to_graph(self, node: Node, value: float) -> float:
        return -(value + node.size.y) if self.mirrored else value


class FourDirectionPositioning:
    """Brandes–Köpf positioning honouring node sizes and pin offsets.

    Blocks of vertically aligned nodes are placed as rigid units. Inside a
    block each member keeps an *inner shift* so the linked pins of aligned
    neighbours sit on one line.
    """

    def __init__(self, config: LayoutConfig) -> None:
        self.spacing = config.node_spacing
        self.combine_method = config.combine_method

    def place(self, layers: Layers) -> CoordinateMap:
        if not layers:
            return {}
        maps = self.coordinate_maps(layers)
        sizes = {n.id: n.size.y for layer in layers for n in layer}
        return combine(list(maps.values()), sizes, self.combine_method)

    def coordinate_maps(self, layers: Layers) -> dict[tuple[Vertical, Horizontal], CoordinateMap]:
        conflicts = mark_type1_conflicts(layers)
        maps: dict[tuple[Vertical, Horizontal], CoordinateMap] = {}
        for vertical in Vertical:
            for horizontal in Horizontal:
                frame = _Frame.build(layers, vertical, horizontal)
                maps[(vertical, horizontal)] = self._sweep(frame, conflicts)
        return maps

    def _sweep(self, frame: _Frame, conflicts: set[frozenset[str]]) -> CoordinateMap:
        pos = {n.id: i for layer in frame.layers for i, n in enumerate(layer)}
        root, align = vertical_alignment(frame.layers, pos, conflicts)
        nodes = {n.id: n for layer in frame.layers for n in layer}
        inner = inner_shift(nodes, root, align, frame.offset)
        coords = horizontal_compaction(frame.layers, pos, root, align, inner, self.spacing)
        return {node_id: frame.to_graph(nodes[node_id], value) for node_id, value in coords.items()}


def mark_type1_conflicts(layers: Layers) -> set[frozenset[str]]:
    """Mark non-inner segments crossing an inner segment (an edge between two dummies)."""
    conflicts: set[frozenset[str]] = set()
    for i in range(1, len(layers) - 1):
        upper, lower = layers[i], layers[i + 1]
        upper_pos = {n.id: k for k, n in enumerate(upper)}
        k0 = 0
        scan = 0
        for l1, node in enumerate(lower):
            inner_upper: Node | None = None
            if node.is_dummy:
                for other in _neighbours(node, upper):
                    if other.is_dummy:
                        inner_upper = other
                        break
            if l1 == len(lower) - 1 or inner_upper is not None:
                k1 = upper_pos[inner_upper.id] if inner_upper is not None else len(upper) - 1
                while scan <= l1:
                    current = lower[scan]
                    for other in _neighbours(current, upper):
                        k = upper_pos[other.id]
                        if k < k0 or k > k1:
                            conflicts.add(frozenset((other.id, current.id)))
                    scan += 1
                k0 = k1
    return conflicts


def vertical_alignment(
    layers: Layers, pos: dict[str, int], conflicts: set[frozenset[str]]
) -> tuple[dict[str, str], dict[str, str]]:
    """Align each node with a median neighbour in the previous rank; returns (root, align)."""
    root = {n.id: n.id for layer in layers for n in layer}
    align = dict(root)
    for i in range(1, len(layers)):
        guide = -1
        for node in layers[i]:
            upper = _neighbours(node, layers[i - 1])
            degree = len(upper)
            if degree == 0:
                continue
            for m in sorted({(degree - 1) // 2, degree // 2}):
                if align[node.id] != node.id:
                    break
                u = upper[m]
                if frozenset((u.id, node.id)) in conflicts or pos[u.id] <= guide:
                    continue
                if align[u.id] != root[u.id]:
                    continue
                align[u.id] = node.id
                root[node.id] = root[u.id]
                align[node.id] = root[node.id]
                guide = pos[u.id]
    return root, align


def inner_shift(
    nodes: dict[str, Node],
    root: dict[str, str],
    align: dict[str, str],
    offset: Callable[[Node, Node], float],
) -> CoordinateMap:
    """Offset of every block member from its block's top so aligned pins line up."""
    inner: CoordinateMap = {}
    for node_id, block_root in root.items():
        if node_id != block_root:
            continue
        members = [node_id]
        inner[node_id] = 0.0
        upper, lower = node_id, align[node_id]
        while lower != node_id:
            upper_node, lower_node = nodes[upper], nodes[lower]
            inner[lower] = inner[upper] + offset(upper_node, lower_node) - offset(lower_node, upper_node)
            members.append(lower)
            upper, lower = lower, align[lower]
        low = min(inner[m] for m in members)
        for m in members:
            inner[m] -= low
    return inner


def horizontal_compaction(
    layers: Layers,
    pos: dict[str, int],
    root: dict[str, str],
    align: dict[str, str],
    inner: CoordinateMap,
    spacing: float,
) -> CoordinateMap:
    """Place blocks as far up as their predecessors allow, then separate the sink classes."""
    nodes = {n.id: n for layer in layers for n in layer}
    layer_of = {n.id: layer for layer in layers for n in layer}
    sink = {node_id: node_id for node_id in nodes}
    x: dict[str, float] = {}

    def place_block(v: str) -> None:
        if v in x:
            return
        x[v] = 0.0
        w = v
        while True:
            if pos[w] > 0:
                pred = layer_of[w][pos[w] - 1]
                u = root[pred.id]
                place_block(u)
                if sink[v] == v:
                    sink[v] = sink[u]
                if sink[v] == sink[u]:
                    x[v] = max(x[v], x[u] + inner[pred.id] + pred.size.y + spacing - inner[w])
            w = align[w]
            if w == v:
                break

    for layer in layers:
        for node in layer:
            if root[node.id] == node.id:
                place_block(node.id)

    absolute = {node_id: x[root[node_id]] + inner[node_id] for node_id in nodes}
    shift = _class_shifts(layers, root, sink, absolute, spacing)
    return {node_id: absolute[node_id] + shift[sink[root[node_id]]] for node_id in nodes}


def _class_shifts(
    layers: Layers,
    root: dict[str, str],
    sink: dict[str, str],
    absolute: CoordinateMap,
    spacing: float,
) -> CoordinateMap:
    """Move whole sink classes up until neighbours from different classes keep their spacing."""
    constraints: list[tuple[str, str, float]] = []
    for layer in layers:
        for above, below in zip(layer, layer[1:]):
            upper_class, lower_class = sink[root[above.id]], sink[root[below.id]]
            if upper_class != lower_class:
                gap = absolute[below.id] - absolute[above.id] - above.size.y - spacing
                constraints.append((upper_class, lower_class, gap))

    shift = {c: 0.0 for c in set(sink.values())}
    for _ in range(len(shift) + 1):
        changed = False
        for upper_class, lower_class, gap in constraints:
            bound = shift[lower_class] + gap
            if shift[upper_class] > bound:
                shift[upper_class] = bound
                changed = True
        if not changed:
            return shift
    logger.debug("class shift relaxation did not settle over %d classes", len(shift))
    return shift


def combine(maps: list[CoordinateMap], sizes: dict[str, float], method: CombineMethod) -> CoordinateMap:
    """Merge the four direction maps into one after aligning them to the narrowest map's top edge."""
    def extent(coords: CoordinateMap) -> tuple[float, float]:
        return (
            min(coords.values()),
            max(coords[n] + sizes[n] for n in coords),
        )

    extents = [extent(m) for m in maps]
    narrowest = min(range(len(maps)), key=lambda k: extents[k][1] - extents[k][0])
    anchor = extents[narrowest][0]
    aligned = [{n: v - extents[k][0] + anchor for n, v in m.items()} for k, m in enumerate(maps)]

    result: CoordinateMap = {}
    for node_id in maps[0]:
        values = sorted(m[node_id] for m in aligned)
        if method is CombineMethod.TOP:
            middle = len(values) // 2
            result[node_id] = (values[middle - 1] + values[middle]) / 2
        else:
            result[node_id] = (values[0] + values[-1]) / 2
    return result


# ─── Rank axis & entry point ─────────────────────────────────────────────────


def assign_rank_axis(layers: Layers, edge_spacing: float) -> CoordinateMap:
    """Place ranks left to right; sources sit flush right in their rank, everything else flush left."""
    coords: CoordinateMap = {}
    x = 0.0
    for layer in layers:
        width = max((n.size.x for n in layer), default=0.0)
        for node in layer:
            coords[node.id] = x + width - node.size.x if node.in_degree() == 0 else x
        x += width + edge_spacing
    return coords


_STRATEGIES: dict[PositioningStrategy, type] = {
    PositioningStrategy.EVENLY_SPACED: EvenlyPositioning,
    PositioningStrategy.PRIORITY: PriorityPositioning,
    PositioningStrategy.FOUR_DIRECTION_MEDIAN: FourDirectionPositioning,
}


def make_positioning(config: LayoutConfig) -> Positioning:
    strategy_cls = _STRATEGIES.get(config.positioning_strategy)
    if strategy_cls is None:
        raise ValueError(f"Unsupported positioning strategy: {config.positioning_strategy}")
    return strategy_cls(config)


def position_nodes(graph: Graph, config: LayoutConfig) -> None:
    """Write final positions for every node in ``graph.layers`` and compute the graph bound."""
    cross = make_positioning(config).place(graph.layers)
    ranks = assign_rank_axis(graph.layers, config.edge_spacing)
    for layer in graph.layers:
        for node in layer:
            node.set_position(Vector2(ranks[node.id], cross[node.id]))
    graph.calculate_bound()

