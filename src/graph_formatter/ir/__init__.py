"""Intermediate representation: host description and graph model."""

from graph_formatter.ir.description import EdgeSpec, GraphDescription, NodeSpec, PinSpec
from graph_formatter.ir.graph import CloneMaps, Edge, Graph, GraphStructureError, Node, Pin

__all__ = [
    "CloneMaps",
    "Edge",
    "EdgeSpec",
    "Graph",
    "GraphDescription",
    "GraphStructureError",
    "Node",
    "NodeSpec",
    "Pin",
    "PinSpec",
]
