"""Immutable JSON-LD graph model."""

from __future__ import annotations

import copy
import json
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from schemaai.graph.values import ID_KEY, TYPE_KEY

SCHEMA_CONTEXT = "https://schema.org"


class Node(BaseModel):
    """One typed entity of the graph.

    `properties` holds everything except ``@type`` and ``@id``, in output
    order. Values are plain JSON values; references are ``{"@id": ...}``
    mappings.
    """

    model_config = ConfigDict(frozen=True)

    types: tuple[str, ...] = Field(default=(), description="One or more schema.org type names")
    id: Optional[str] = Field(default=None, description="Globally unique @id, when the node has one")
    properties: dict[str, Any] = Field(default_factory=dict)

    @property
    def primary_type(self) -> str:
        return self.types[0] if self.types else ""

    def has_type(self, type_name: str) -> bool:
        return type_name in self.types

    def get(self, prop: str, default: Any = None) -> Any:
        return self.properties.get(prop, default)

    def to_jsonld(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.types:
            out[TYPE_KEY] = self.types[0] if len(self.types) == 1 else list(self.types)
        if self.id:
            out[ID_KEY] = self.id
        out.update(copy.deepcopy(self.properties))
        return out

    @classmethod
    def from_jsonld(cls, data: Mapping[str, Any]) -> "Node":
        raw_type = data.get(TYPE_KEY)
        if isinstance(raw_type, str):
            types: tuple[str, ...] = (raw_type,) if raw_type else ()
        elif isinstance(raw_type, (list, tuple)):
            types = tuple(str(t) for t in raw_type if t)
        else:
            types = ()
        raw_id = data.get(ID_KEY)
        properties = {k: copy.deepcopy(v) for k, v in data.items() if k not in (TYPE_KEY, ID_KEY)}
        return cls(types=types, id=raw_id if isinstance(raw_id, str) and raw_id else None, properties=properties)


class Graph(BaseModel):
    """A ``@context`` plus an ordered list of nodes."""

    model_config = ConfigDict(frozen=True)

    context: Union[str, list[Any], dict[str, Any]] = SCHEMA_CONTEXT
    nodes: tuple[Node, ...] = ()

    def get_node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def nodes_of_type(self, type_name: str) -> list[Node]:
        return [node for node in self.nodes if node.has_type(type_name)]

    def node_ids(self) -> list[str]:
        return [node.id for node in self.nodes if node.id]

    def to_jsonld(self) -> dict[str, Any]:
        return {"@context": copy.deepcopy(self.context), "@graph": [node.to_jsonld() for node in self.nodes]}

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize without escaping non-ASCII characters or slashes."""
        return json.dumps(self.to_jsonld(), ensure_ascii=False, indent=indent)

    @classmethod
    def from_jsonld(cls, data: Mapping[str, Any]) -> "Graph":
        """Read a document with a ``@graph`` array, or a single root node with ``@type``."""
        if not isinstance(data, Mapping):
            raise TypeError(f"expected a JSON object, got {type(data).__name__}")
        context = data.get("@context", SCHEMA_CONTEXT)
        raw_graph = data.get("@graph")
        if isinstance(raw_graph, list):
            nodes = tuple(Node.from_jsonld(item) for item in raw_graph if isinstance(item, Mapping))
        elif TYPE_KEY in data:
            nodes = (Node.from_jsonld({k: v for k, v in data.items() if k != "@context"}),)
        else:
            nodes = ()
        return cls(context=context, nodes=nodes)

    @classmethod
    def from_json(cls, text: str) -> "Graph":
        return cls.from_jsonld(json.loads(text))
