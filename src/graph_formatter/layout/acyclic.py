"""Cycle removal by greedy edge inversion.

Works on a clone: sources and sinks are peeled off (they can never close a
cycle), and when only cycles remain the node with the largest
``out_degree - in_degree`` surplus is taken; its remaining in-edges are
inverted in the original graph. This is the Eades–Lin–Smyth greedy
feedback-arc-set heuristic expressed as edge inversion, so the caller keeps
every connection and only the ``inverted`` flags change.

Self-loops never take part: they are ignored for degrees and are never
inverted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from graph_formatter.ir.graph import Graph, Node

logger = logging.getLogger(__name__)


@dataclass
class CycleRemovalResult:
    """Ids of the edges inverted to make the graph acyclic."""

    inverted_edges: set[str] = field(default_factory=set)


def find_source_node(graph: Graph) -> Node | None:
    for node in graph.nodes.values():
        if node.in_degree() == 0:
            return node
    return None


def find_sink_node(graph: Graph) -> Node | None:
    for node in graph.nodes.values():
        if node.out_degree() == 0:
            return node
    return None


def find_median_node(graph: Graph) -> Node | None:
    """First node (in graph order) with the largest out-degree minus in-degree."""
    best: Node | None = None
    best_diff = 0
    for node in graph.nodes.values():
        diff = node.out_degree() - node.in_degree()
        if best is None or diff > best_diff:
            best, best_diff = node, diff
    return best


def remove_cycles(graph: Graph) -> CycleRemovalResult:
    """Invert edges of ``graph`` in place until it is acyclic (self-loops aside)."""
    result = CycleRemovalResult()
    if not graph.nodes:
        return result

    work = graph.clone()
    while work.nodes:
        changed = True
        while changed:
            changed = False
            source = find_source_node(work)
            while source is not None:
                work.remove_node(source)
                source = find_source_node(work)
                changed = True
            sink = find_sink_node(work)
            while sink is not None:
                work.remove_node(sink)
                sink = find_sink_node(work)
                changed = True

        median = find_median_node(work)
        if median is None:
            break
        for edge in list(median.in_edges):
            if edge.is_self_loop:
                continue
            original = graph.edges[edge.key]
            graph.invert_edge(original)
            result.inverted_edges.add(original.id)
        work.remove_node(median)

    logger.debug("cycle removal inverted %d of %d edges", len(result.inverted_edges), graph.edge_count())
    return result
