"""Dummy node insertion and crossing minimisation.

After ranking, every edge spanning more than one rank is split into a chain
of single-rank segments through dummy nodes, so ordering and positioning
only ever reason about edges between adjacent ranks. Ordering then runs
alternating barycenter sweeps over ``graph.layers`` and keeps the layering
with the fewest crossings seen.

Indices are counted per pin slot rather than per node: a node with three
output pins occupies three consecutive positions in its rank, so edges
leaving the same node from different pins are ordered correctly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from graph_formatter.ir.graph import Graph, Node, Pin
from graph_formatter.layout.types import DUMMY_PREFIX
from graph_formatter.types import PinDirection, Vector2

logger = logging.getLogger(__name__)


# ─── Dummy Node Insertion ────────────────────────────────────────────────────


@dataclass
class DummyChain:
    """An original long edge and the dummy nodes that now carry it, tail to head."""

    edge_id: str
    dummy_ids: list[str] = field(default_factory=list)
    inverted: bool = False


def _make_dummy(node_id: str, rank: int) -> Node:
    dummy = Node(id=node_id, size=Vector2(1.0, 1.0), rank=rank, is_dummy=True)
    dummy.add_pin(PinDirection.IN, f"{node_id}:in")
    dummy.add_pin(PinDirection.OUT, f"{node_id}:out")
    return dummy


def insert_dummy_nodes(graph: Graph) -> list[DummyChain]:
    """Replace every edge spanning more than one rank with a chain through dummy nodes."""
    chains: list[DummyChain] = []
    for edge in list(graph.edges.values()):
        if edge.is_self_loop:
            continue
        tail_rank = graph.nodes[edge.tail_id].rank
        head_rank = graph.nodes[edge.head_id].rank
        if tail_rank < 0 or head_rank < 0 or head_rank - tail_rank <= 1:
            continue

        chain = DummyChain(edge_id=edge.id, inverted=edge.inverted)
        index = len(chains)
        graph.remove_edge(edge)
        previous: Pin = edge.tail
        for step in range(head_rank - tail_rank - 1):
            dummy = graph.add_node(_make_dummy(f"{DUMMY_PREFIX}{index}_{step}", tail_rank + step + 1))
            graph.add_edge(previous, dummy.in_pins[0], edge.weight).inverted = edge.inverted
            previous = dummy.out_pins[0]
            chain.dummy_ids.append(dummy.id)
        graph.add_edge(previous, edge.head, edge.weight).inverted = edge.inverted
        chains.append(chain)

    if chains:
        logger.debug("inserted %d dummy nodes for %d long edges", sum(len(c.dummy_ids) for c in chains), len(chains))
    return chains


def build_layers(graph: Graph) -> list[list[Node]]:
    """Group nodes by rank in graph order; dummies come after the real nodes they were added after."""
    count = max((n.rank for n in graph.nodes.values()), default=-1) + 1
    layers: list[list[Node]] = [[] for _ in range(max(count, 1 if graph.nodes else 0))]
    for node in graph.nodes.values():
        layers[max(node.rank, 0)].append(node)
    graph.layers = layers
    for layer in layers:
        for order, node in enumerate(layer):
            node.order_value = float(order)
    return layers


# ─── Crossing Minimization ───────────────────────────────────────────────────


def slot_bases(layer: list[Node], side: PinDirection) -> dict[str, int]:
    """First slot index of each node when the rank's pins on ``side`` are laid end to end."""
    bases: dict[str, int] = {}
    running = 0
    for node in layer:
        bases[node.id] = running
        running += node.slot_count(side)
    return bases


def _slot_index(graph_nodes: dict[str, Node], bases: dict[str, int], pin: Pin, side: PinDirection) -> int:
    owner = graph_nodes[pin.node_id]
    return bases[owner.id] + owner.pin_slot(pin, side)


def barycenter(node: Node, side: PinDirection, fixed: list[Node]) -> float:
    """Mean slot index, in the ``fixed`` rank, of the pins ``node`` connects to on ``side``.

    ``side`` is the free node's side facing the fixed rank. Nodes with no
    edge into the fixed rank get 0.
    """
    fixed_side = side.opposite()
    bases = slot_bases(fixed, fixed_side)
    by_id = {n.id: n for n in fixed}
    total = 0
    count = 0
    for edge in node.edges_on(side):
        if edge.is_self_loop:
            continue
        other = edge.tail if side is PinDirection.IN else edge.head
        if other.node_id not in by_id:
            continue
        total += _slot_index(by_id, bases, other, fixed_side)
        count += 1
    return total / count if count else 0.0


def sort_layer(layer: list[Node], side: PinDirection, fixed: list[Node]) -> list[Node]:
    keys = {n.id: barycenter(n, side, fixed) for n in layer}
    return sorted(layer, key=lambda n: keys[n.id])


def _layer_edges(upper: list[Node], lower: list[Node]) -> list[tuple[int, int]]:
    out_bases = slot_bases(upper, PinDirection.OUT)
    in_bases = slot_bases(lower, PinDirection.IN)
    upper_by_id = {n.id: n for n in upper}
    lower_by_id = {n.id: n for n in lower}
    pairs: list[tuple[int, int]] = []
    for node in upper:
        for edge in node.out_edges:
            if edge.is_self_loop or edge.head_id not in lower_by_id:
                continue
            pairs.append(
                (
                    _slot_index(upper_by_id, out_bases, edge.tail, PinDirection.OUT),
                    _slot_index(lower_by_id, in_bases, edge.head, PinDirection.IN),
                )
            )
    return pairs


def count_layer_crossings(upper: list[Node], lower: list[Node]) -> int:
    pairs = _layer_edges(upper, lower)
    total = 0
    for i in range(len(pairs)):
        for j in range(i + 1, len(pairs)):
            (a_from, a_to), (b_from, b_to) = pairs[i], pairs[j]
            if (a_from < b_from and a_to > b_to) or (a_from > b_from and a_to < b_to):
                total += 1
    return total


def count_crossings(layers: list[list[Node]]) -> int:
    """Total strictly inverted edge pairs over every adjacent rank pair; self-loops never count."""
    return sum(count_layer_crossings(layers[r], layers[r + 1]) for r in range(len(layers) - 1))


def _sweep(layers: list[list[Node]], iteration: int) -> None:
    if iteration % 2 == 0:
        for r in range(1, len(layers)):
            layers[r] = sort_layer(layers[r], PinDirection.IN, layers[r - 1])
    else:
        for r in range(len(layers) - 2, -1, -1):
            layers[r] = sort_layer(layers[r], PinDirection.OUT, layers[r + 1])


def minimise_crossings(graph: Graph, max_iterations: int = 10) -> int:
    """Reorder ``graph.layers`` in place by barycenter sweeps; returns the crossing count kept."""
    layers = [list(layer) for layer in graph.layers]
    best_layers = [list(layer) for layer in layers]
    best = count_crossings(layers)
    initial = best

    for iteration in range(max_iterations):
        if best == 0:
            break
        _sweep(layers, iteration)
        crossings = count_crossings(layers)
        if crossings < best:
            best = crossings
            best_layers = [list(layer) for layer in layers]

    graph.layers = best_layers
    for layer in best_layers:
        for order, node in enumerate(layer):
            node.order_value = float(order)
    logger.debug("crossings %d -> %d", initial, best)
    return best

