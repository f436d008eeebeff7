"""JSON-LD graph model, builder, normalizers and visualizer view."""

from schemaai.graph.builder import GraphBuilder
from schemaai.graph.model import SCHEMA_CONTEXT, Graph, Node
from schemaai.graph.normalize import normalize_price_range
from schemaai.graph.values import prune
from schemaai.graph.view import GraphEdge, GraphNode, GraphView, graph_view

__all__ = [
    "Graph",
    "Node",
    "SCHEMA_CONTEXT",
    "GraphBuilder",
    "normalize_price_range",
    "prune",
    "GraphEdge",
    "GraphNode",
    "GraphView",
    "graph_view",
]
