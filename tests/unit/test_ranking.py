"""Tests for graph_formatter.layout.ranking — longest path and network simplex."""

from __future__ import annotations

import logging

import pytest

from graph_formatter.ir import EdgeSpec, Graph, GraphDescription, NodeSpec
from graph_formatter.layout.acyclic import remove_cycles
from graph_formatter.layout.ranking import (
    SpanningTree,
    edge_length_sum,
    longest_path_ranking,
    network_simplex_ranking,
    prepare_rank_slots,
    rank_nodes,
)
from graph_formatter.types import RankingStrategy, RankSlot


def _graph(*pairs: tuple, extra: tuple[str, ...] = ()) -> Graph:
    """Edges are ``(tail, head)`` or ``(tail, head, weight)`` or ``(tail, head, weight, min_length)``."""
    names: list[str] = []
    for pair in pairs:
        for name in pair[:2]:
            if name not in names:
                names.append(name)
    names.extend(n for n in extra if n not in names)
    edges = []
    for pair in pairs:
        weight = pair[2] if len(pair) > 2 else 1
        min_length = pair[3] if len(pair) > 3 else 1
        edges.append(EdgeSpec(f"{pair[0]}.out0", f"{pair[1]}.in0", weight, min_length))
    return Graph.from_description(GraphDescription(nodes=[NodeSpec.simple(n) for n in names], edges=edges))


def _ranks(g: Graph) -> dict[str, int]:
    return {node_id: node.rank for node_id, node in g.nodes.items()}


DIAMOND = [("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")]

# Longest path leaves B at the bottom; the optimum pulls it up next to A.
LATE_SINK = [("A", "B"), ("A", "C"), ("C", "D"), ("D", "E")]

# Needs one tree-edge exchange: the heavy A->B edge wants F and B pulled up.
NEEDS_EXCHANGE = [("A", "B", 2), ("A", "C"), ("C", "D"), ("D", "E"), ("F", "E"), ("F", "B")]

SAMPLES = [
    DIAMOND,
    LATE_SINK,
    NEEDS_EXCHANGE,
    [("A", "B"), ("B", "C"), ("C", "D"), ("A", "D")],
    [("A", "B"), ("B", "C"), ("C", "A"), ("C", "D")],
    [("A", "B", 3), ("C", "B"), ("C", "D", 2), ("E", "D"), ("A", "E")],
    [("A", "B", 1, 2), ("B", "C", 1, 0), ("A", "C")],
]

STRATEGIES = [RankingStrategy.LONGEST_PATH, RankingStrategy.NETWORK_SIMPLEX]


class TestLongestPath:
    def test_diamond(self):
        g = _graph(*DIAMOND)
        longest_path_ranking(g)
        assert _ranks(g) == {"A": 0, "B": 1, "C": 1, "D": 2}

    def test_sinks_share_the_last_rank(self):
        g = _graph(*LATE_SINK)
        longest_path_ranking(g)
        assert _ranks(g) == {"A": 0, "B": 3, "C": 1, "D": 2, "E": 3}

    def test_min_length_respected(self):
        g = _graph(("A", "B", 1, 2))
        longest_path_ranking(g)
        assert _ranks(g) == {"A": 0, "B": 2}

    def test_zero_min_length_allows_same_rank(self):
        g = _graph(("A", "B", 1, 0))
        longest_path_ranking(g)
        assert _ranks(g) == {"A": 0, "B": 0}

    def test_each_component_starts_at_zero(self):
        g = _graph(("A", "B"), ("C", "D"), ("D", "E"), extra=("F",))
        longest_path_ranking(g)
        assert _ranks(g) == {"A": 0, "B": 1, "C": 0, "D": 1, "E": 2, "F": 0}

    def test_cycle_leaves_rank_undefined(self):
        g = _graph(("A", "B"), ("B", "A"))
        longest_path_ranking(g)
        assert _ranks(g) == {"A": -1, "B": -1}


class TestNetworkSimplex:
    def test_diamond(self):
        g = _graph(*DIAMOND)
        network_simplex_ranking(g)
        assert _ranks(g) == {"A": 0, "B": 1, "C": 1, "D": 2}

    def test_pulls_late_sink_up(self):
        g = _graph(*LATE_SINK)
        network_simplex_ranking(g)
        assert _ranks(g) == {"A": 0, "B": 1, "C": 1, "D": 2, "E": 3}
        assert edge_length_sum(g) == 4

    def test_exchange(self):
        g = _graph(*NEEDS_EXCHANGE)
        exchanges = network_simplex_ranking(g)
        assert exchanges == 1
        assert _ranks(g) == {"A": 0, "B": 1, "C": 1, "D": 2, "E": 3, "F": 0}
        assert edge_length_sum(g) == 9

    def test_longest_path_baseline_for_exchange_graph(self):
        g = _graph(*NEEDS_EXCHANGE)
        longest_path_ranking(g)
        assert edge_length_sum(g) == 11

    def test_safety_cap_logs_warning(self, caplog):
        g = _graph(*NEEDS_EXCHANGE)
        with caplog.at_level(logging.WARNING, logger="graph_formatter.layout.ranking"):
            exchanges = network_simplex_ranking(g, max_iterations=0)
        assert exchanges == 0
        assert "without converging" in caplog.text
        assert all(g.slack(e) >= 0 for e in g.edges.values())

    def test_cut_values_non_negative_at_optimum(self):
        g = _graph(*NEEDS_EXCHANGE)
        rank_nodes(g, RankingStrategy.NETWORK_SIMPLEX)
        assert all(e.cut_value >= 0 for e in g.edges.values())


class TestSpanningTree:
    def _ranked(self) -> Graph:
        g = _graph(*LATE_SINK)
        longest_path_ranking(g)
        return g

    def test_tight_tree_from_longest_path(self):
        g = self._ranked()
        tree = SpanningTree(g, list(g.nodes))
        nodes, edges = tree.tight_tree()
        assert nodes == {"A", "C", "D", "E"}
        assert len(edges) == 3

    def test_feasible_tree_spans_component(self):
        g = self._ranked()
        tree = SpanningTree(g, list(g.nodes))
        tree.feasible_tree()
        assert tree.nodes == set(g.nodes)
        assert len(tree.tree_edges) == len(g.nodes) - 1
        assert all(tree.slack(e) == 0 for e in tree.tree_edges)
        assert not tree.non_tree_edges

    def test_find_min_incident_edge(self):
        g = self._ranked()
        tree = SpanningTree(g, list(g.nodes))
        tree.nodes, edges = tree.tight_tree()
        edge, incident = tree.find_min_incident_edge()
        assert (edge.tail_id, edge.head_id) == ("A", "B")
        assert incident == "A"

    def test_cut_values(self):
        g = _graph(*NEEDS_EXCHANGE)
        longest_path_ranking(g)
        tree = SpanningTree(g, list(g.nodes))
        tree.feasible_tree()
        tree.calculate_cut_values()
        cuts = {(e.tail_id, e.head_id): e.cut_value for e in tree.tree_edges}
        assert cuts[("F", "E")] == -1
        assert cuts[("A", "C")] == 3
        leaving = tree.leave_edge()
        assert (leaving.tail_id, leaving.head_id) == ("F", "E")
        entering = tree.enter_edge(leaving)
        assert (entering.tail_id, entering.head_id) == ("A", "B")


class TestRankNodes:
    @pytest.mark.parametrize("strategy", STRATEGIES)
    @pytest.mark.parametrize("pairs", SAMPLES)
    def test_every_edge_has_non_negative_slack(self, strategy, pairs):
        g = _graph(*pairs)
        remove_cycles(g)
        rank_nodes(g, strategy)
        for edge in g.edges.values():
            assert g.slack(edge) >= 0, edge.id

    @pytest.mark.parametrize("pairs", SAMPLES)
    def test_network_simplex_never_longer_than_longest_path(self, pairs):
        longest = _graph(*pairs)
        remove_cycles(longest)
        rank_nodes(longest, RankingStrategy.LONGEST_PATH)
        simplex = _graph(*pairs)
        remove_cycles(simplex)
        rank_nodes(simplex, RankingStrategy.NETWORK_SIMPLEX)
        assert edge_length_sum(simplex) <= edge_length_sum(longest)

    def test_returns_rank_count(self):
        g = _graph(*DIAMOND)
        assert rank_nodes(g, RankingStrategy.NETWORK_SIMPLEX) == 3

    def test_parallel_edges_stay_in_graph(self):
        desc = GraphDescription(
            nodes=[NodeSpec.simple("A", outputs=2), NodeSpec.simple("B", inputs=2)],
            edges=[EdgeSpec("A.out0", "B.in0"), EdgeSpec("A.out1", "B.in1")],
        )
        g = Graph.from_description(desc)
        rank_nodes(g, RankingStrategy.NETWORK_SIMPLEX)
        assert g.edge_count() == 2
        assert _ranks(g) == {"A": 0, "B": 1}

    def test_self_loop_ignored(self):
        desc = GraphDescription(
            nodes=[NodeSpec.simple("A"), NodeSpec.simple("B")],
            edges=[EdgeSpec("A.out0", "B.in0"), EdgeSpec("B.out0", "B.in0")],
        )
        g = Graph.from_description(desc)
        rank_nodes(g, RankingStrategy.NETWORK_SIMPLEX)
        assert _ranks(g) == {"A": 0, "B": 1}
        assert g.edge_count() == 2

    def test_single_node(self):
        g = _graph(extra=("A",))
        assert rank_nodes(g, RankingStrategy.NETWORK_SIMPLEX) == 1
        assert g.nodes["A"].rank == 0


class TestRankSlots:
    @pytest.mark.parametrize("strategy", STRATEGIES)
    def test_min_slot(self, strategy):
        g = _graph(("A", "B"), ("B", "C"), ("B", "M"))
        g.set_node_in_rank_slot("M", RankSlot.MIN)
        inverted = prepare_rank_slots(g)
        assert inverted == {"B.out0->M.in0"}
        rank_nodes(g, strategy)
        ranks = _ranks(g)
        assert ranks["M"] == min(ranks.values()) == 0
        assert all(g.slack(e) >= 0 for e in g.edges.values())

    @pytest.mark.parametrize("strategy", STRATEGIES)
    def test_max_slot(self, strategy):
        g = _graph(("X", "A"), ("A", "B"), ("B", "C"))
        g.set_node_in_rank_slot("X", RankSlot.MAX)
        prepare_rank_slots(g)
        rank_nodes(g, strategy)
        ranks = _ranks(g)
        assert ranks["X"] == max(ranks.values()) == 2
        assert all(g.slack(e) >= 0 for e in g.edges.values())
