"""Tests for graph_formatter.layout.sugiyama and the layout engine."""

from __future__ import annotations

import pytest

from graph_formatter.config import LayoutConfig
from graph_formatter.ir import EdgeSpec, Graph, GraphDescription, NodeSpec, PinSpec
from graph_formatter.layout.engine import full_layout
from graph_formatter.layout.ordering import count_crossings
from graph_formatter.layout.sugiyama import LayoutError, SugiyamaLayout
from graph_formatter.types import Direction, PinDirection, RankingStrategy, RankSlot, Rect, Vector2


def _desc(*pairs: tuple[str, str], extra: tuple[str, ...] = ()) -> GraphDescription:
    names: list[str] = []
    for a, b in pairs:
        for name in (a, b):
            if name not in names:
                names.append(name)
    names.extend(n for n in extra if n not in names)
    return GraphDescription(
        nodes=[NodeSpec.simple(n) for n in names],
        edges=[EdgeSpec(f"{a}.out0", f"{b}.in0") for a, b in pairs],
    )


def _layout(desc: GraphDescription, **config_values) -> Graph:
    return SugiyamaLayout(LayoutConfig(**config_values)).layout(Graph.from_description(desc))


def _overlap(a: Rect, b: Rect) -> bool:
    return a.left < b.right and b.left < a.right and a.top < b.bottom and b.top < a.bottom


def _group_desc() -> GraphDescription:
    """X feeds A inside group G; A -> B stays inside the group."""
    return GraphDescription(
        nodes=[
            NodeSpec.simple("X"),
            NodeSpec(id="G", size=Vector2(0, 0), children=["A", "B"]),
            NodeSpec.simple("A"),
            NodeSpec.simple("B"),
        ],
        edges=[EdgeSpec("X.out0", "A.in0"), EdgeSpec("A.out0", "B.in0")],
    )


DIAMOND = [("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")]


class TestBasics:
    def test_empty_graph(self):
        g = SugiyamaLayout().layout(Graph())
        assert g.bound == Rect()
        assert g.layers == []

    def test_single_node_at_origin(self):
        g = _layout(_desc(extra=("A",)))
        assert g.nodes["A"].position == Vector2(0, 0)
        assert g.nodes["A"].rank == 0
        assert g.bound == Rect(0, 0, 100, 50)

    def test_left_to_right_ranks(self):
        g = _layout(_desc(("A", "B")))
        assert g.nodes["A"].position == Vector2(0, 0)
        assert g.nodes["B"].position == Vector2(180, 0)

    def test_diamond(self):
        g = _layout(_desc(*DIAMOND))
        assert {n: g.nodes[n].rank for n in "ABCD"} == {"A": 0, "B": 1, "C": 1, "D": 2}
        assert count_crossings(g.layers) == 0
        assert g.bound.top == 0 and g.bound.left == 0

    def test_deterministic(self):
        first = _layout(_desc(*DIAMOND, ("A", "D")))
        second = _layout(_desc(*DIAMOND, ("A", "D")))
        assert {n.id: n.position for n in first.nodes.values()} == {n.id: n.position for n in second.nodes.values()}

    @pytest.mark.parametrize("strategy", list(RankingStrategy))
    def test_edges_point_forward(self, strategy):
        g = _layout(_desc(*DIAMOND, ("B", "C")), ranking_strategy=strategy)
        for node in g.real_nodes():
            for edge in node.out_edges:
                head = g.nodes[edge.head_id]
                assert head.position.x > node.position.x


class TestCyclesAndLoops:
    def test_cycle_lays_out_without_overlap(self):
        g = _layout(_desc(("A", "B"), ("B", "C"), ("C", "A")))
        real = g.real_nodes()
        assert all(n.rank >= 0 for n in real)
        for i, a in enumerate(real):
            for b in real[i + 1:]:
                assert not _overlap(a.bound, b.bound)

    def test_self_loop(self):
        desc = _desc(("A", "B"))
        desc.edges.append(EdgeSpec("A.out0", "A.in0"))
        g = _layout(desc)
        assert g.nodes["A"].rank == 0
        assert g.nodes["B"].rank == 1
        assert ("A.out0", "A.in0") in g.edges

    def test_inverted_edge_chain_is_recorded(self):
        g = _layout(_desc(("A", "B"), ("B", "C"), ("C", "A")))
        (chain,) = g.dummy_chains
        assert chain.inverted
        (dummy_id,) = chain.dummy_ids
        dummy = g.nodes[dummy_id]
        assert all(e.inverted for e in dummy.in_edges + dummy.out_edges)

    def test_forward_chain_is_not_inverted(self):
        g = _layout(_desc(("A", "B"), ("B", "C"), ("A", "C")))
        (chain,) = g.dummy_chains
        assert chain.edge_id == "A.out0->C.in0"
        assert not chain.inverted
        assert not any(e.inverted for e in g.edges.values())


class TestComponents:
    def test_components_stacked(self):
        g = _layout(_desc(("A", "B"), ("C", "D")))
        assert g.nodes["A"].position.y == 0
        assert g.nodes["C"].position.y == 90
        assert len(g.isolated_graphs) == 2

    def test_component_spacing(self):
        g = _layout(_desc(("A", "B"), ("C", "D")), component_spacing=100.0)
        assert g.nodes["C"].position.y - g.nodes["A"].position.y == 150

    def test_components_share_layers(self):
        g = _layout(_desc(("A", "B"), extra=("C",)))
        assert [[n.id for n in layer] for layer in g.layers] == [["A", "C"], ["B"]]
        assert g.bound == Rect(0, 0, 280, 140)

    def test_cycle_orientation_reaches_split_graph(self):
        g = _layout(_desc(("A", "B"), ("B", "C"), ("C", "A"), ("D", "E")))
        assert len(g.isolated_graphs) == 2
        assert sum(e.inverted for e in g.edges.values()) == 1
        for edge in g.edges.values():
            if not edge.is_self_loop:
                assert g.slack(edge) >= 0

    def test_split_graph_collects_dummy_chains(self):
        g = _layout(_desc(("A", "B"), ("B", "C"), ("C", "A"), ("D", "E")))
        (chain,) = g.dummy_chains
        assert chain.inverted
        assert not any(n.is_dummy for n in g.nodes.values())

    @pytest.mark.parametrize("pairs", [[("A", "D"), *DIAMOND], [("A", "D"), ("E", "F"), *DIAMOND]])
    def test_layers_hold_own_nodes(self, pairs):
        g = _layout(_desc(*pairs))
        assert sorted(n.id for layer in g.layers for n in layer) == sorted(g.nodes)


class TestGroups:
    def test_group_wraps_children(self):
        g = _layout(_group_desc())
        group = g.nodes["G"]
        assert group.subgraph is not None
        for child in group.subgraph.nodes.values():
            assert child.bound.left - group.bound.left >= 40
            assert child.bound.top - group.bound.top >= 40
            assert group.bound.right - child.bound.right >= 40
            assert group.bound.bottom - child.bound.bottom >= 40

    def test_edge_into_group_is_straight(self):
        g = _layout(_group_desc())
        inner = g.nodes["G"].subgraph
        x_out = g.pin_positions()["X.out0"]
        a_in = inner.pin_positions()["A.in0"]
        assert x_out.y == pytest.approx(a_in.y)
        assert g.nodes["G"].rank == 1

    def test_nesting_depth_guard(self):
        desc = GraphDescription(
            nodes=[
                NodeSpec(id="G1", size=Vector2(0, 0), children=["G2"]),
                NodeSpec(id="G2", size=Vector2(0, 0), children=["G3"]),
                NodeSpec(id="G3", size=Vector2(0, 0), children=["A"]),
                NodeSpec.simple("A"),
            ]
        )
        with pytest.raises(LayoutError, match="nested deeper"):
            _layout(desc, max_nesting_depth=1)
        assert _layout(desc, max_nesting_depth=3).nodes["G1"].size.x > 100


class TestRankSlots:
    def test_min_slot_node_in_first_rank(self):
        desc = _desc(("A", "B"), ("B", "M"))
        desc.nodes[2].rank_slot = RankSlot.MIN
        g = _layout(desc)
        assert g.nodes["M"].rank == 0
        assert g.nodes["M"].position.x == g.nodes["A"].position.x

    def test_max_slot_node_in_last_rank(self):
        desc = _desc(("X", "A"), ("A", "B"), ("B", "C"))
        desc.nodes[0].rank_slot = RankSlot.MAX
        g = _layout(desc)
        assert g.nodes["X"].rank == max(n.rank for n in g.real_nodes())


class TestPosition:
    def test_preserve_position_keeps_first_node(self):
        desc = _desc(("A", "B"))
        desc.nodes[0].position = Vector2(10, 20)
        desc.nodes[1].position = Vector2(500, 300)
        g = _layout(desc, preserve_position=True)
        assert g.nodes["A"].position == Vector2(10, 20)
        assert g.nodes["B"].position == Vector2(190, 20)

    def test_default_moves_to_origin(self):
        desc = _desc(("A", "B"))
        desc.nodes[0].position = Vector2(10, 20)
        g = _layout(desc)
        assert g.bound.top_left == Vector2(0, 0)


class TestFullLayout:
    def test_left_to_right(self):
        result = full_layout(_desc(("A", "B")))
        assert (result.node("B").x, result.node("B").y) == (180, 0)
        assert result.direction is Direction.LR

    def test_top_down(self):
        def vertical(node_id: str) -> NodeSpec:
            return NodeSpec(
                id=node_id,
                size=Vector2(100, 50),
                pins=[
                    PinSpec(f"{node_id}.in0", PinDirection.IN, Vector2(50, 0)),
                    PinSpec(f"{node_id}.out0", PinDirection.OUT, Vector2(50, 50)),
                ],
            )

        desc = GraphDescription(nodes=[vertical("A"), vertical("B")], edges=[EdgeSpec("A.out0", "B.in0")])
        result = full_layout(desc, LayoutConfig(direction=Direction.TD))
        a, b = result.node("A"), result.node("B")
        assert (a.x, a.y) == (0, 0)
        assert (b.x, b.y) == (0, 130)
        assert (b.width, b.height) == (100, 50)
        assert result.pin_offsets["B.in0"] == Vector2(50, 0)
        assert result.bound == Rect(0, 0, 100, 180)
        assert result.direction is Direction.TD

    def test_dummies_hidden(self):
        result = full_layout(_desc(("A", "B"), ("B", "C"), ("A", "C")))
        assert sorted(n.id for n in result.nodes) == ["A", "B", "C"]

    def test_group_children_report_parent(self):
        result = full_layout(_group_desc())
        parents = {n.id: n.parent for n in result.nodes}
        assert parents == {"X": None, "G": None, "A": "G", "B": "G"}
        assert "A.in0" in result.pin_offsets
        assert result.bound_map()["A"].left >= result.bound_map()["G"].left + 40

    def test_bound_contains_every_node(self):
        result = full_layout(_desc(*DIAMOND, ("C", "E"), extra=("F",)))
        for rect in result.bound_map().values():
            assert result.bound.left <= rect.left and rect.right <= result.bound.right
            assert result.bound.top <= rect.top and rect.bottom <= result.bound.bottom
