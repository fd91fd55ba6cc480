"""Data structures for the resource graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class NodeType(StrEnum):
    """Role a node plays relative to the graph root."""

    OBJECT = "Object"
    CHAIN = "Chain"
    SOURCE = "Source"
    UPSTREAM = "Upstream"
    FLUX_RESOURCE = "FluxResource"
    WORKLOAD = "Workload"
    WORKLOAD_GROUP = "WorkloadGroup"
    RESOURCE_GROUP = "ResourceGroup"


class RelationshipType(StrEnum):
    """Direction-carrying relationship between two nodes."""

    SOURCED_FROM = "SourcedFrom"
    MANAGED_BY = "ManagedBy"
    OWNS = "Owns"


def node_id(kind: str, namespace: str, name: str) -> str:
    return f"{kind}:{namespace}:{name}"


@dataclass(frozen=True)
class GraphNode:
    """A node in the resource graph.

    ``position`` is reserved for the renderer and never set here.
    """

    id: str
    kind: str
    name: str
    namespace: str
    node_type: NodeType
    ready: bool | None = None
    description: str | None = None
    position: tuple[float, float] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "name": self.name,
            "namespace": self.namespace,
            "nodeType": self.node_type.value,
            "ready": self.ready,
            "description": self.description,
        }


@dataclass(frozen=True)
class GraphEdge:
    """A typed edge between two node ids."""

    from_id: str
    to_id: str
    relationship: RelationshipType

    def to_dict(self) -> dict[str, str]:
        return {"from": self.from_id, "to": self.to_id, "relationship": self.relationship.value}


@dataclass
class ResourceGraph:
    """Nodes and edges around one root object.

    ``node_index`` maps node id to its position in ``nodes`` and is the only
    uniqueness check: every insertion goes through ``add_node``.
    """

    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)
    node_index: dict[str, int] = field(default_factory=dict)

    def add_node(self, node: GraphNode) -> bool:
        """Insert *node* unless its id is already present. Returns True if inserted."""
        if node.id in self.node_index:
            return False
        self.node_index[node.id] = len(self.nodes)
        self.nodes.append(node)
        return True

    def add_edge(self, from_id: str, to_id: str, relationship: RelationshipType) -> None:
        edge = GraphEdge(from_id, to_id, relationship)
        if edge not in self.edges:
            self.edges.append(edge)

    def contains(self, node_id_: str) -> bool:
        return node_id_ in self.node_index

    def get(self, node_id_: str) -> GraphNode | None:
        index = self.node_index.get(node_id_)
        return self.nodes[index] if index is not None else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }
