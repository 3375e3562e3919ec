"""Layout engine registry and public API."""

from __future__ import annotations

from graph_formatter.layout.acyclic import CycleRemovalResult, remove_cycles
from graph_formatter.layout.engine import build_graph, collect_result, full_layout
from graph_formatter.layout.ordering import (
    DummyChain,
    build_layers,
    count_crossings,
    insert_dummy_nodes,
    minimise_crossings,
)
from graph_formatter.layout.positioning import (
    EvenlyPositioning,
    FourDirectionPositioning,
    PriorityPositioning,
    position_nodes,
)
from graph_formatter.layout.ranking import (
    SpanningTree,
    edge_length_sum,
    longest_path_ranking,
    network_simplex_ranking,
    rank_nodes,
)
from graph_formatter.layout.sugiyama import LayoutError, SugiyamaLayout
from graph_formatter.layout.types import DUMMY_PREFIX, LayoutNode, LayoutResult

__all__ = [
    "DUMMY_PREFIX",
    "CycleRemovalResult",
    "DummyChain",
    "EvenlyPositioning",
    "FourDirectionPositioning",
    "LayoutError",
    "LayoutNode",
    "LayoutResult",
    "PriorityPositioning",
    "SpanningTree",
    "SugiyamaLayout",
    "build_graph",
    "build_layers",
    "collect_result",
    "count_crossings",
    "edge_length_sum",
    "full_layout",
    "insert_dummy_nodes",
    "longest_path_ranking",
    "minimise_crossings",
    "network_simplex_ranking",
    "position_nodes",
    "rank_nodes",
    "remove_cycles",
]
