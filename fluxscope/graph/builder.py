"""Resource graph around one Flux object.

Upstream (release roots only):
    Upstream -SourcedFrom-> Source -SourcedFrom-> Root
    Chain    -ManagedBy->   Root
    Owner    -ManagedBy->   Root      (Flux kinds in the root's ownerReferences)

Downstream (inventory-bearing roots):
    Root -Owns-> FluxResource         one node per Flux object applied
    Root -Owns-> WorkloadGroup        all workloads folded into one node
    Root -Owns-> ResourceGroup        every other kind as "Kind: count"

A failure while enriching the downstream side leaves the upstream part
and the root in place instead of failing the whole build.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any

from fluxscope.errors import FluxScopeError
from fluxscope.graph.models import GraphNode, NodeType, RelationshipType, ResourceGraph, node_id
from fluxscope.graph.workloads import fetch_workload_status, format_workload_line
from fluxscope.inventory.decoder import extract_inventory, extract_upstream, group_inventory, upstream_kind
from fluxscope.inventory.helm_storage import decode_release_inventory
from fluxscope.kube.resolver import fetch_object
from fluxscope.models.kinds import FluxKind, is_flux_kind, is_release_kind, parse_kind, supports_graph
from fluxscope.observability.logging import get_logger
from fluxscope.observability.metrics import graph_build_seconds
from fluxscope.trace.models import TraceNode
from fluxscope.trace.tracer import build_trace_node, trace_object

if TYPE_CHECKING:
    from fluxscope.inventory.models import InventoryEntry, InventoryGroups
    from fluxscope.kube.client import KubeClient

_log = get_logger("graph.builder")

DEFAULT_WORKLOAD_CONCURRENCY = 4

__all__ = ["DEFAULT_WORKLOAD_CONCURRENCY", "GraphBuilder", "build_resource_graph", "supports_graph"]


def _trace_node_description(node: TraceNode) -> str | None:
    if node.spec is None:
        return None
    return node.spec.url or node.spec.path


def _node_from_trace(node: TraceNode, node_type: NodeType) -> GraphNode:
    return GraphNode(
        id=node_id(node.kind, node.namespace, node.name),
        kind=node.kind,
        name=node.name,
        namespace=node.namespace,
        node_type=node_type,
        ready=node.status.ready if node.status else None,
        description=_trace_node_description(node),
    )


class GraphBuilder:
    """Builds one ResourceGraph. Single use."""

    def __init__(self, client: KubeClient, workload_concurrency: int = DEFAULT_WORKLOAD_CONCURRENCY) -> None:
        self._client = client
        self._semaphore = asyncio.Semaphore(max(1, workload_concurrency))
        self._graph = ResourceGraph()

    async def build(self, kind: str, namespace: str, name: str) -> ResourceGraph:
        obj = await fetch_object(self._client, kind, namespace, name)
        root = _node_from_trace(build_trace_node(obj, namespace), NodeType.OBJECT)
        self._graph.add_node(root)
        log = _log.bind(kind=kind, namespace=namespace, name=name)

        if is_release_kind(root.kind):
            await self._add_upstream(root)
        await self._add_owners(obj, root)

        if supports_graph(root.kind):
            try:
                await self._add_downstream(obj, root)
            except FluxScopeError as exc:
                log.warning("downstream discovery failed; returning upstream only", error=str(exc))

        log.debug("graph built", nodes=len(self._graph.nodes), edges=len(self._graph.edges))
        return self._graph

    # ------------------------------------------------------------------
    # Upstream
    # ------------------------------------------------------------------

    async def _add_upstream(self, root: GraphNode) -> None:
        try:
            result = await trace_object(self._client, root.kind, root.namespace, root.name)
        except FluxScopeError as exc:
            _log.warning("trace failed; upstream omitted", kind=root.kind, name=root.name, error=str(exc))
            return

        if result.source is not None:
            source = _node_from_trace(result.source, NodeType.SOURCE)
            if self._graph.add_node(source):
                await self._add_origin(source)
            self._graph.add_edge(source.id, root.id, RelationshipType.SOURCED_FROM)

        for chain_node in result.chain:
            node = _node_from_trace(chain_node, NodeType.CHAIN)
            self._graph.add_node(node)
            self._graph.add_edge(node.id, root.id, RelationshipType.MANAGED_BY)

    async def _add_origin(self, source: GraphNode) -> None:
        """Add the repository URL a source was fetched from, when it reports one."""
        try:
            source_obj = await fetch_object(self._client, source.kind, source.namespace, source.name)
        except FluxScopeError as exc:
            _log.debug("source re-read failed", kind=source.kind, name=source.name, error=str(exc))
            return

        upstream = extract_upstream(source_obj)
        if upstream is None:
            return
        upstream_name, url = upstream
        kind = upstream_kind(url)
        node = GraphNode(
            id=node_id(kind, source.namespace, upstream_name),
            kind=kind,
            name=upstream_name,
            namespace=source.namespace,
            node_type=NodeType.UPSTREAM,
            description=url,
        )
        self._graph.add_node(node)
        self._graph.add_edge(node.id, source.id, RelationshipType.SOURCED_FROM)

    async def _add_owners(self, obj: dict[str, Any], root: GraphNode) -> None:
        for ref in (obj.get("metadata") or {}).get("ownerReferences") or []:
            owner_kind = ref.get("kind")
            owner_name = ref.get("name")
            if not owner_kind or not owner_name or not is_flux_kind(owner_kind):
                continue
            try:
                owner_obj = await fetch_object(self._client, owner_kind, root.namespace, owner_name)
            except FluxScopeError as exc:
                _log.warning("failed to fetch owner", kind=owner_kind, name=owner_name, error=str(exc))
                continue
            owner = _node_from_trace(build_trace_node(owner_obj, root.namespace), NodeType.CHAIN)
            self._graph.add_node(owner)
            self._graph.add_edge(owner.id, root.id, RelationshipType.MANAGED_BY)

    # ------------------------------------------------------------------
    # Downstream
    # ------------------------------------------------------------------

    async def _add_downstream(self, obj: dict[str, Any], root: GraphNode) -> None:
        entries = extract_inventory(obj)
        if not entries and parse_kind(root.kind) is FluxKind.HELM_RELEASE:
            entries = await decode_release_inventory(self._client, obj)
        if not entries:
            _log.debug("no inventory", kind=root.kind, name=root.name)
            return

        groups = group_inventory(entries)
        self._add_flux_resources(groups, root)
        await self._add_workload_group(groups, root)
        self._add_resource_group(groups, root)

    def _add_flux_resources(self, groups: InventoryGroups, root: GraphNode) -> None:
        for entry in groups.flux:
            node = GraphNode(
                id=node_id(entry.kind, entry.namespace, entry.name),
                kind=entry.kind,
                name=entry.name,
                namespace=entry.namespace,
                node_type=NodeType.FLUX_RESOURCE,
            )
            if self._graph.add_node(node):
                self._graph.add_edge(root.id, node.id, RelationshipType.OWNS)

    async def _add_workload_group(self, groups: InventoryGroups, root: GraphNode) -> None:
        if not groups.workloads:
            return

        async def _status(entry: InventoryEntry) -> tuple[bool | None, str | None]:
            async with self._semaphore:
                return await fetch_workload_status(self._client, entry)

        # gather preserves argument order, so lines follow inventory order
        results = await asyncio.gather(*(_status(entry) for entry in groups.workloads), return_exceptions=True)
        lines: list[str] = []
        for entry, result in zip(groups.workloads, results, strict=True):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                _log.warning("workload status failed", kind=entry.kind, name=entry.name, error=repr(result))
                result = (None, None)
            ready, text = result
            lines.append(format_workload_line(entry, ready, text))

        name = f"Workloads ({len(groups.workloads)})"
        node = GraphNode(
            id=node_id("Workloads", root.namespace, name),
            kind="Workloads",
            name=name,
            namespace=root.namespace,
            node_type=NodeType.WORKLOAD_GROUP,
            description="\n".join(lines),
        )
        if self._graph.add_node(node):
            self._graph.add_edge(root.id, node.id, RelationshipType.OWNS)

    def _add_resource_group(self, groups: InventoryGroups, root: GraphNode) -> None:
        if not groups.resources:
            return
        total = sum(groups.resources.values())
        name = f"Resources ({total})"
        node = GraphNode(
            id=node_id("Resources", root.namespace, name),
            kind="Resources",
            name=name,
            namespace=root.namespace,
            node_type=NodeType.RESOURCE_GROUP,
            description=", ".join(f"{kind}: {count}" for kind, count in sorted(groups.resources.items())),
        )
        if self._graph.add_node(node):
            self._graph.add_edge(root.id, node.id, RelationshipType.OWNS)


async def build_resource_graph(
    client: KubeClient,
    kind: str,
    namespace: str,
    name: str,
    *,
    workload_concurrency: int = DEFAULT_WORKLOAD_CONCURRENCY,
) -> ResourceGraph:
    """Build the upstream and downstream graph around ``kind namespace/name``."""
    started = time.monotonic()
    try:
        return await GraphBuilder(client, workload_concurrency).build(kind, namespace, name)
    finally:
        graph_build_seconds.observe(time.monotonic() - started)
