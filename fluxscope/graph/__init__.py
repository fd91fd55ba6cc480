"""Resource graph: upstream sources and downstream inventory around one Flux object."""

from fluxscope.graph.builder import GraphBuilder, build_resource_graph
from fluxscope.graph.models import GraphEdge, GraphNode, NodeType, RelationshipType, ResourceGraph
from fluxscope.models.kinds import supports_graph

__all__ = [
    "GraphBuilder",
    "GraphEdge",
    "GraphNode",
    "NodeType",
    "RelationshipType",
    "ResourceGraph",
    "build_resource_graph",
    "supports_graph",
]
