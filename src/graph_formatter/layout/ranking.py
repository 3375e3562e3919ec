"""Rank assignment.

Two interchangeable strategies:

* ``longest_path_ranking`` — iterative peeling from the sinks. Fast, always
  feasible, but tends to produce wide bottom ranks and long edges.
* ``network_simplex_ranking`` — Gansner et al.'s network simplex on a tight
  spanning tree. Starts from the longest-path ranking and exchanges tree
  edges with negative cut values until the total weighted edge length
  ``sum(weight * (head.rank - tail.rank))`` is minimal.

Both expect an acyclic graph (run ``remove_cycles`` first); nodes that
cannot be reached by the peeling keep ``rank == -1``. Self-loops are
ignored. Disconnected graphs are ranked one undirected component at a time
and every component is normalised so its smallest rank is 0.
"""

from __future__ import annotations

import logging
from collections import deque

from graph_formatter.ir.graph import Edge, Graph
from graph_formatter.types import RankingStrategy, RankSlot

logger = logging.getLogger(__name__)


# ─── Shared helpers ──────────────────────────────────────────────────────────


def _component_edges(graph: Graph, component: set[str]) -> list[Edge]:
    return [
        e
        for e in graph.edges.values()
        if not e.is_self_loop and e.tail_id in component and e.head_id in component
    ]


def _calculate_longest_path(graph: Graph, component: list[str]) -> int:
    """Assign ``path_depth`` by peeling: sinks get 1, then every node whose successors are all done.

    Returns the deepest depth assigned. Nodes on a cycle keep depth 0.
    """
    nodes = [graph.nodes[n] for n in component]
    for node in nodes:
        node.path_depth = 0
    remaining = list(nodes)
    deepest = 0
    while remaining:
        ready = [
            node
            for node in remaining
            if all(graph.nodes[e.head_id].path_depth != 0 for e in node.out_edges if not e.is_self_loop)
        ]
        if not ready:
            break
        for node in ready:
            depth = 1
            for edge in node.out_edges:
                if not edge.is_self_loop:
                    depth = max(depth, graph.nodes[edge.head_id].path_depth + edge.min_length)
            node.path_depth = depth
            deepest = max(deepest, depth)
        ready_ids = {id(n) for n in ready}
        remaining = [n for n in remaining if id(n) not in ready_ids]
    if remaining:
        logger.debug("%d node(s) sit on a cycle; their rank stays undefined", len(remaining))
    return deepest


def _assign_from_path_depth(graph: Graph, component: list[str], deepest: int) -> None:
    for node_id in component:
        node = graph.nodes[node_id]
        node.rank = deepest - node.path_depth if node.path_depth != 0 else -1


def _apply_rank_slots(graph: Graph, component: list[str]) -> None:
    """Pull MIN-slot nodes to the component's smallest rank and MAX-slot nodes to its largest.

    The pipeline has already made MIN nodes sources and MAX nodes sinks, so
    the move can only lengthen their edges and the ranking stays feasible.
    """
    ranked = [graph.nodes[n] for n in component if graph.nodes[n].rank >= 0]
    if not ranked:
        return
    low = min(n.rank for n in ranked)
    high = max(n.rank for n in ranked)
    for node in ranked:
        if node.rank_slot is RankSlot.MIN:
            node.rank = low
        elif node.rank_slot is RankSlot.MAX:
            node.rank = high


def _normalize(graph: Graph, component: list[str]) -> None:
    ranked = [graph.nodes[n] for n in component if graph.nodes[n].rank >= 0]
    if not ranked:
        return
    low = min(n.rank for n in ranked)
    for node in ranked:
        node.rank -= low


def edge_length_sum(graph: Graph) -> int:
    """Total weighted edge length; the quantity network simplex minimises."""
    total = 0
    for edge in graph.edges.values():
        if edge.is_self_loop:
            continue
        total += edge.weight * graph.length(edge)
    return total


def rank_count(graph: Graph) -> int:
    return max((n.rank for n in graph.nodes.values()), default=-1) + 1


# ─── Strategy A: longest path ────────────────────────────────────────────────


def longest_path_ranking(graph: Graph) -> None:
    """Rank every component of ``graph`` in place by longest path to a sink."""
    for component in graph.connected_components():
        deepest = _calculate_longest_path(graph, component)
        _assign_from_path_depth(graph, component, deepest)
        _apply_rank_slots(graph, component)
        _normalize(graph, component)


# ─── Strategy B: network simplex ─────────────────────────────────────────────


class SpanningTree:
    """Spanning tree over one connected component, used by network simplex.

    ``tree_edges`` and ``non_tree_edges`` are insertion-ordered dicts used as
    ordered sets so every run makes the same choices.
    """

    def __init__(self, graph: Graph, component: list[str]) -> None:
        self.graph = graph
        self.order = list(component)
        self.scope = set(component)
        self.edges = _component_edges(graph, self.scope)
        self.nodes: set[str] = set()
        self.tree_edges: dict[Edge, None] = {}
        self.non_tree_edges: dict[Edge, None] = dict.fromkeys(self.edges)

    def rank(self, node_id: str) -> int:
        return self.graph.nodes[node_id].rank

    def slack(self, edge: Edge) -> int:
        return self.rank(edge.head_id) - self.rank(edge.tail_id) - edge.min_length

    def _adjacency(self) -> dict[str, list[Edge]]:
        adjacency: dict[str, list[Edge]] = {n: [] for n in self.scope}
        for edge in self.tree_edges:
            adjacency[edge.tail_id].append(edge)
            adjacency[edge.head_id].append(edge)
        return adjacency

    def _set_tree(self, tree_edges: list[Edge]) -> None:
        self.tree_edges = dict.fromkeys(tree_edges)
        self.non_tree_edges = {e: None for e in self.edges if e not in self.tree_edges}

    # ─── Feasible tree ───────────────────────────────────────────────────

    def tight_tree(self) -> tuple[set[str], list[Edge]]:
        """Maximal tree of tight edges grown from the component's first node."""
        root = self.order[0]
        incident: dict[str, list[Edge]] = {n: [] for n in self.scope}
        for edge in self.edges:
            incident[edge.tail_id].append(edge)
            incident[edge.head_id].append(edge)
        nodes = {root}
        tree: list[Edge] = []
        stack = [root]
        while stack:
            current = stack.pop()
            for edge in incident[current]:
                other = edge.head_id if edge.tail_id == current else edge.tail_id
                if other in nodes or self.slack(edge) != 0:
                    continue
                nodes.add(other)
                tree.append(edge)
                stack.append(other)
        return nodes, tree

    def find_min_incident_edge(self) -> tuple[Edge, str] | None:
        """Non-tree edge with exactly one end in the tree and the least slack, plus that end."""
        best: tuple[Edge, str] | None = None
        best_slack = 0
        for edge in self.edges:
            tail_in = edge.tail_id in self.nodes
            head_in = edge.head_id in self.nodes
            if tail_in == head_in:
                continue
            slack = self.slack(edge)
            if best is None or slack < best_slack:
                best = (edge, edge.tail_id if tail_in else edge.head_id)
                best_slack = slack
        return best

    def feasible_tree(self) -> None:
        """Grow a tight spanning tree, shifting tree ranks to absorb the nearest edge each round."""
        while True:
            self.nodes, tree = self.tight_tree()
            self._set_tree(tree)
            if len(self.nodes) == len(self.scope):
                return
            found = self.find_min_incident_edge()
            if found is None:
                return
            edge, incident = found
            delta = self.slack(edge)
            if incident == edge.head_id:
                delta = -delta
            for node_id in self.nodes:
                self.graph.nodes[node_id].rank += delta

    # ─── Cut values ──────────────────────────────────────────────────────

    def split(self, edge: Edge) -> tuple[set[str], set[str]]:
        """Tail and head components left when ``edge`` is removed from the tree."""
        adjacency = self._adjacency()
        tail_side = {edge.tail_id}
        stack = [edge.tail_id]
        while stack:
            current = stack.pop()
            for tree_edge in adjacency[current]:
                if tree_edge is edge:
                    continue
                other = tree_edge.head_id if tree_edge.tail_id == current else tree_edge.tail_id
                if other not in tail_side:
                    tail_side.add(other)
                    stack.append(other)
        return tail_side, self.scope - tail_side

    def cut_value(self, edge: Edge) -> int:
        tail_side, head_side = self.split(edge)
        value = 0
        for other in self.edges:
            if other.tail_id in tail_side and other.head_id in head_side:
                value += other.weight
            elif other.tail_id in head_side and other.head_id in tail_side:
                value -= other.weight
        return value

    def calculate_cut_values(self) -> None:
        for edge in self.non_tree_edges:
            edge.cut_value = 0
        for edge in self.tree_edges:
            edge.cut_value = self.cut_value(edge)

    # ─── Exchange ────────────────────────────────────────────────────────

    def leave_edge(self) -> Edge | None:
        for edge in self.tree_edges:
            if edge.cut_value < 0:
                return edge
        return None

    def enter_edge(self, edge: Edge) -> Edge | None:
        """Least-slack non-tree edge crossing ``edge``'s cut from the head side to the tail side."""
        tail_side, head_side = self.split(edge)
        best: Edge | None = None
        best_slack = 0
        for candidate in self.non_tree_edges:
            if candidate.tail_id in head_side and candidate.head_id in tail_side:
                slack = self.slack(candidate)
                if best is None or slack < best_slack:
                    best, best_slack = candidate, slack
        return best

    def tighten(self) -> None:
        """Recompute ranks from the tree so every tree edge is tight; the root keeps its rank."""
        adjacency = self._adjacency()
        root = self.order[0]
        seen = {root}
        queue = deque([root])
        while queue:
            current = queue.popleft()
            for edge in adjacency[current]:
                if edge.tail_id == current and edge.head_id not in seen:
                    self.graph.nodes[edge.head_id].rank = self.rank(current) + edge.min_length
                    seen.add(edge.head_id)
                    queue.append(edge.head_id)
                elif edge.head_id == current and edge.tail_id not in seen:
                    self.graph.nodes[edge.tail_id].rank = self.rank(current) - edge.min_length
                    seen.add(edge.tail_id)
                    queue.append(edge.tail_id)

    def _tree_path(self, start: str, goal: str) -> list[Edge]:
        adjacency = self._adjacency()
        came_from: dict[str, Edge | None] = {start: None}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            if current == goal:
                break
            for edge in adjacency[current]:
                other = edge.head_id if edge.tail_id == current else edge.tail_id
                if other not in came_from:
                    came_from[other] = edge
                    queue.append(other)
        path: list[Edge] = []
        current = goal
        while came_from.get(current) is not None:
            edge = came_from[current]
            path.append(edge)
            current = edge.head_id if edge.tail_id == current else edge.tail_id
        return path

    def exchange(self, leaving: Edge, entering: Edge) -> None:
        """Swap tree membership, re-tighten ranks and refresh the cut values on the affected cycle."""
        del self.tree_edges[leaving]
        del self.non_tree_edges[entering]
        self.tree_edges[entering] = None
        self.non_tree_edges[leaving] = None
        leaving.cut_value = 0
        self.tighten()
        for edge in self._tree_path(leaving.tail_id, leaving.head_id):
            edge.cut_value = self.cut_value(edge)

    def solve(self, max_iterations: int) -> int:
        """Run the leave/enter exchange loop; returns the number of exchanges made."""
        self.feasible_tree()
        self.calculate_cut_values()
        iterations = 0
        while True:
            leaving = self.leave_edge()
            if leaving is None:
                break
            if iterations >= max_iterations:
                logger.warning("network simplex stopped after %d exchanges without converging", iterations)
                break
            entering = self.enter_edge(leaving)
            if entering is None:
                break
            self.exchange(leaving, entering)
            iterations += 1
        return iterations


def network_simplex_ranking(graph: Graph, max_iterations: int = 10_000) -> int:
    """Rank every component of ``graph`` in place with network simplex.

    Returns the total number of tree-edge exchanges performed.
    """
    exchanges = 0
    for component in graph.connected_components():
        deepest = _calculate_longest_path(graph, component)
        _assign_from_path_depth(graph, component, deepest)
        if any(graph.nodes[n].rank < 0 for n in component):
            logger.debug("skipping network simplex on a cyclic component of %d nodes", len(component))
        else:
            exchanges += SpanningTree(graph, component).solve(max_iterations)
        _apply_rank_slots(graph, component)
        _normalize(graph, component)
    logger.debug("network simplex made %d exchanges", exchanges)
    return exchanges


# ─── Pipeline entry ──────────────────────────────────────────────────────────


def prepare_rank_slots(graph: Graph) -> set[str]:
    """Make MIN-slot nodes sources and MAX-slot nodes sinks by inverting edges.

    Returns the ids of the edges inverted. Run after cycle removal.
    """
    inverted: set[str] = set()
    for slot in (RankSlot.MIN, RankSlot.MAX):
        for node in list(graph.nodes.values()):
            if node.rank_slot is not slot:
                continue
            edges = node.in_edges if slot is RankSlot.MIN else node.out_edges
            for edge in list(edges):
                if edge.is_self_loop:
                    continue
                graph.invert_edge(edge)
                inverted.add(edge.id)
    return inverted


def rank_nodes(graph: Graph, strategy: RankingStrategy, max_simplex_iterations: int = 10_000) -> int:
    """Rank ``graph`` in place using a merged clone so parallel edges count once.

    Ranks are copied back by node id and cut values by edge id. Returns the
    number of ranks used.
    """
    work = graph.clone()
    for edge in list(work.edges.values()):
        if edge.is_self_loop:
            work.remove_edge(edge)
    work.merge_edges()

    if strategy is RankingStrategy.LONGEST_PATH:
        longest_path_ranking(work)
    else:
        network_simplex_ranking(work, max_simplex_iterations)

    for node_id, node in work.nodes.items():
        graph.nodes[node_id].rank = node.rank
        graph.nodes[node_id].path_depth = node.path_depth
    cut_values = {e.id: e.cut_value for e in work.edges.values()}
    for edge in graph.edges.values():
        edge.cut_value = cut_values.get(edge.id, 0)

    count = rank_count(graph)
    logger.debug("ranked %d nodes into %d ranks (%s)", graph.node_count(), count, strategy.value)
    return count
