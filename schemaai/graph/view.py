"""
Node/edge view of a JSON-LD graph for the browser-side visualizer.

Every graph node becomes a `GraphNode`; every ``{"@id": ...}`` reference
found inside a node becomes a `GraphEdge` labelled with the top-level
property that holds it. References to ids outside the graph get a
placeholder node so the D3 layout always has both ends of an edge.
"""

import re
from typing import Any

from pydantic import BaseModel, Field

from schemaai.graph.model import Graph, Node
from schemaai.graph.values import iter_references

EXTERNAL_TYPE = "external"

_PROPERTY_RE = re.compile(r"^\.([^.\[]+)")


class GraphNode(BaseModel):
    """D3-compatible node representation."""

    id: str = Field(description="Node @id, or a blank-node label for anonymous nodes")
    label: str = Field(description="Display label (name, headline or id fallback)")
    entity_type: str = Field(description="First @type, used for styling")
    properties: dict[str, Any] = Field(default_factory=dict, description="Full node data for the detail panel")


class GraphEdge(BaseModel):
    """D3-compatible edge representation."""

    source: str = Field(description="Referencing node id")
    target: str = Field(description="Referenced node id")
    label: str = Field(description="Human-readable predicate")
    predicate: str = Field(description="Property holding the reference")
    path: str = Field(description="Location of the reference inside the source node")


class GraphView(BaseModel):
    nodes: list[GraphNode] = Field(description="Nodes in the graph")
    edges: list[GraphEdge] = Field(description="Reference edges between nodes")


def _label(node: Node, fallback: str) -> str:
    for prop in ("name", "headline"):
        value = node.get(prop)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return fallback


def _humanize(predicate: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", " ", predicate).lower()


def graph_view(graph: Graph) -> GraphView:
    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []
    known: set[str] = set()

    for index, node in enumerate(graph.nodes):
        node_id = node.id or f"_:b{index}"
        if node_id in known:
            continue
        known.add(node_id)
        nodes.append(
            GraphNode(
                id=node_id,
                label=_label(node, node_id),
                entity_type=node.primary_type,
                properties=node.to_jsonld(),
            )
        )

    for index, node in enumerate(graph.nodes):
        source = node.id or f"_:b{index}"
        for target, path in iter_references(node.properties, ""):
            match = _PROPERTY_RE.match(path)
            predicate = match.group(1) if match else path
            if target not in known:
                known.add(target)
                nodes.append(GraphNode(id=target, label=target, entity_type=EXTERNAL_TYPE))
            edges.append(
                GraphEdge(source=source, target=target, label=_humanize(predicate), predicate=predicate, path=path)
            )

    return GraphView(nodes=nodes, edges=edges)
