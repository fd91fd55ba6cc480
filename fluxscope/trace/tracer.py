"""Ownership tracer: from any object up to the Flux source that produced it.

The walk follows, in order of preference, the ownership labels Flux
controllers stamp on applied objects and then ``metadata.ownerReferences``.
It stops at the first Kustomization or HelmRelease and resolves that
release's source:

    Kustomization  spec.sourceRef
    HelmRelease    status.helmChart | spec.chartRef | spec.chart.spec.sourceRef
    HelmChart      spec.sourceRef

The walk is an explicit loop so chain depth never grows the call stack.
Every step depends on the object fetched in the previous one, so reads are
strictly sequential.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from fluxscope.errors import DataIntegrityError, FluxScopeError, MalformedReference
from fluxscope.kube.resolver import fetch_object
from fluxscope.models.kinds import FluxKind, KindRole, is_release_kind, kind_role
from fluxscope.observability.logging import get_logger
from fluxscope.observability.metrics import traces_total
from fluxscope.trace.models import SourceRef, TraceNode, TraceResult, TraceSpec, TraceStatus

if TYPE_CHECKING:
    from fluxscope.kube.client import KubeClient

_log = get_logger("trace")

# (owner kind, name label, namespace label), checked in this order
FLUX_OWNER_LABELS: tuple[tuple[FluxKind, str, str], ...] = (
    (FluxKind.KUSTOMIZATION, "kustomize.toolkit.fluxcd.io/name", "kustomize.toolkit.fluxcd.io/namespace"),
    (FluxKind.HELM_RELEASE, "helm.toolkit.fluxcd.io/name", "helm.toolkit.fluxcd.io/namespace"),
)

_Fetched = tuple[dict[str, Any], TraceNode]


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def parse_namespaced_name(ref: str, default_namespace: str) -> tuple[str, str]:
    """Split ``"ns/name"``; a bare ``"name"`` takes *default_namespace*."""
    namespace, sep, name = ref.partition("/")
    if not sep:
        return default_namespace, ref
    return namespace, name


def parse_source_ref(raw: Any) -> SourceRef:
    """Build a SourceRef from a ``{kind, name, namespace?}`` mapping."""
    if not isinstance(raw, dict):
        raise MalformedReference(f"reference is not an object: {raw!r}")
    kind = raw.get("kind")
    name = raw.get("name")
    if not isinstance(kind, str) or not kind:
        raise MalformedReference(f"reference is missing kind: {raw!r}")
    if not isinstance(name, str) or not name:
        raise MalformedReference(f"reference is missing name: {raw!r}")
    namespace = raw.get("namespace")
    return SourceRef(kind=kind, name=name, namespace=namespace if isinstance(namespace, str) and namespace else None)


def find_label_owner(obj: dict[str, Any]) -> SourceRef | None:
    """The Flux release named by *obj*'s ownership labels, if any."""
    labels = (obj.get("metadata") or {}).get("labels") or {}
    for kind, name_label, namespace_label in FLUX_OWNER_LABELS:
        name = labels.get(name_label)
        if name:
            return SourceRef(kind=kind.value, name=name, namespace=labels.get(namespace_label) or None)
    return None


def _ready_condition(status: dict[str, Any]) -> tuple[bool | None, str | None]:
    for condition in status.get("conditions") or []:
        if isinstance(condition, dict) and condition.get("type") == "Ready":
            value = condition.get("status")
            ready = True if value == "True" else False if value == "False" else None
            return ready, condition.get("message")
    return None, None


def build_trace_node(obj: dict[str, Any], default_namespace: str) -> TraceNode:
    """Snapshot *obj* into a TraceNode."""
    metadata = obj.get("metadata") or {}
    status = obj.get("status") or {}
    spec = obj.get("spec") or {}

    ready, message = _ready_condition(status)
    revision = (status.get("artifact") or {}).get("revision") or status.get("lastAppliedRevision")

    source_ref: SourceRef | None = None
    if "sourceRef" in spec:
        try:
            source_ref = parse_source_ref(spec["sourceRef"])
        except MalformedReference:
            source_ref = None

    ref = spec.get("ref") if isinstance(spec.get("ref"), dict) else {}
    return TraceNode(
        kind=obj.get("kind", ""),
        name=metadata.get("name", ""),
        namespace=metadata.get("namespace") or default_namespace,
        status=TraceStatus(
            ready=ready,
            message=message,
            last_reconciled=status.get("lastHandledReconcileAt"),
            revision=revision,
        ),
        spec=TraceSpec(
            path=spec.get("path"),
            url=spec.get("url"),
            branch=ref.get("branch") or spec.get("branch"),
            source_ref=source_ref,
        ),
    )


# ---------------------------------------------------------------------------
# Tracer
# ---------------------------------------------------------------------------


class OwnershipTracer:
    """Walks one object's ownership chain. Single use: create one per trace."""

    def __init__(self, client: KubeClient) -> None:
        self._client = client
        self._chain: list[TraceNode] = []
        self._visited: set[tuple[str, str, str]] = set()
        self._resolvers: dict[KindRole, Callable[[TraceNode, dict[str, Any]], Awaitable[TraceNode | None]]] = {
            KindRole.PATH_RELEASE: self._resolve_path_release,
            KindRole.CHART_RELEASE: self._resolve_chart_release,
            KindRole.CHART: self._resolve_chart,
        }

    async def trace(self, kind: str, namespace: str, name: str) -> TraceResult:
        obj = await fetch_object(self._client, kind, namespace, name)
        root = build_trace_node(obj, namespace)
        self._visited.add(root.key)
        log = _log.bind(kind=kind, namespace=namespace, name=name)

        if is_release_kind(root.kind):
            # A release may itself be applied by another release; its own node stays out of the chain.
            source = await self._walk(obj, root.namespace)
            if source is None and not self._chain:
                source = await self._resolve_source(root, obj)
        else:
            self._chain.append(root)
            source = await self._walk(obj, root.namespace)

        traces_total.labels(outcome="source" if source is not None else "orphan").inc()
        log.debug("trace complete", chain=len(self._chain), source=source.kind if source else None)
        return TraceResult(object=root, chain=list(self._chain), source=source)

    # ------------------------------------------------------------------
    # Owner walk
    # ------------------------------------------------------------------

    async def _walk(self, obj: dict[str, Any], namespace: str) -> TraceNode | None:
        current, current_ns = obj, namespace
        while True:
            step = await self._follow_labels(current, current_ns)
            if step is None:
                step = await self._follow_owner_references(current, current_ns)
            if step is None:
                return None

            owner_obj, owner_node = step
            if is_release_kind(owner_node.kind):
                return await self._resolve_source(owner_node, owner_obj)
            current, current_ns = owner_obj, owner_node.namespace

    async def _follow_labels(self, obj: dict[str, Any], namespace: str) -> _Fetched | None:
        owner = find_label_owner(obj)
        if owner is None:
            return None
        owner_ns = owner.namespace or namespace
        if (owner.kind, owner_ns, owner.name) in self._visited:
            return None
        fetched = await self._fetch(owner.kind, owner_ns, owner.name)
        if fetched is None:
            return None
        self._push(fetched[1])
        return fetched

    async def _follow_owner_references(self, obj: dict[str, Any], namespace: str) -> _Fetched | None:
        for raw in (obj.get("metadata") or {}).get("ownerReferences") or []:
            try:
                ref = parse_source_ref(raw)
            except MalformedReference as exc:
                _log.warning("skipping malformed owner reference", error=str(exc))
                continue

            if (ref.kind, namespace, ref.name) in self._visited:
                _log.debug("owner already visited", kind=ref.kind, name=ref.name)
                continue

            fetched = await self._fetch(ref.kind, namespace, ref.name, api_version=raw.get("apiVersion"))
            if fetched is None:
                continue

            owner_obj, owner_node = fetched
            expected_uid = raw.get("uid")
            actual_uid = (owner_obj.get("metadata") or {}).get("uid", "")
            if expected_uid and expected_uid != actual_uid:
                _log.warning(
                    "stale owner reference",
                    kind=ref.kind,
                    name=ref.name,
                    expected_uid=expected_uid,
                    actual_uid=actual_uid,
                )
                continue

            self._push(owner_node)
            return fetched
        return None

    # ------------------------------------------------------------------
    # Source resolution
    # ------------------------------------------------------------------

    async def _resolve_source(self, node: TraceNode, obj: dict[str, Any]) -> TraceNode | None:
        resolver = self._resolvers.get(kind_role(node.kind))
        if resolver is None:
            return None
        return await resolver(node, obj)

    async def _resolve_path_release(self, node: TraceNode, obj: dict[str, Any]) -> TraceNode | None:
        ref = self._read_ref(node, (obj.get("spec") or {}).get("sourceRef"), "spec.sourceRef")
        if ref is None:
            return None
        ref_ns = ref.namespace or node.namespace
        if ref.kind == FluxKind.EXTERNAL_ARTIFACT:
            return await self._external_artifact(ref_ns, ref.name)
        return await self._fetch_node(ref.kind, ref_ns, ref.name)

    async def _resolve_chart_release(self, node: TraceNode, obj: dict[str, Any]) -> TraceNode | None:
        spec = obj.get("spec") or {}
        status = obj.get("status") or {}

        helm_chart = status.get("helmChart")
        if isinstance(helm_chart, str) and helm_chart:
            chart_ns, chart_name = parse_namespaced_name(helm_chart, node.namespace)
            found, source = await self._via_chart(chart_ns, chart_name)
            if found:
                return source

        chart_ref = self._read_ref(node, spec.get("chartRef"), "spec.chartRef")
        if chart_ref is not None:
            ref_ns = chart_ref.namespace or node.namespace
            match chart_ref.kind:
                case FluxKind.HELM_CHART:
                    found, source = await self._via_chart(ref_ns, chart_ref.name)
                    if found:
                        return source
                case FluxKind.OCI_REPOSITORY:
                    return await self._fetch_node(chart_ref.kind, ref_ns, chart_ref.name)
                case FluxKind.EXTERNAL_ARTIFACT:
                    return await self._external_artifact(ref_ns, chart_ref.name)
                case _:
                    _log.warning("unsupported chartRef kind", kind=chart_ref.kind, helmrelease=node.name)

        chart_spec = (spec.get("chart") or {}).get("spec") or {}
        ref = self._read_ref(node, chart_spec.get("sourceRef"), "spec.chart.spec.sourceRef")
        if ref is not None:
            return await self._fetch_node(ref.kind, ref.namespace or node.namespace, ref.name)
        return None

    async def _resolve_chart(self, node: TraceNode, obj: dict[str, Any]) -> TraceNode | None:
        ref = self._read_ref(node, (obj.get("spec") or {}).get("sourceRef"), "spec.sourceRef")
        if ref is None:
            return None
        return await self._fetch_node(ref.kind, ref.namespace or node.namespace, ref.name)

    async def _via_chart(self, namespace: str, name: str) -> tuple[bool, TraceNode | None]:
        """Push the HelmChart and resolve its source. ``found`` is False when the chart cannot be read."""
        fetched = await self._fetch(FluxKind.HELM_CHART, namespace, name)
        if fetched is None:
            return False, None
        chart_obj, chart_node = fetched
        self._push(chart_node)
        return True, await self._resolve_chart(chart_node, chart_obj)

    async def _external_artifact(self, namespace: str, name: str) -> TraceNode:
        """ExternalArtifact sources must point at their own origin."""
        obj = await fetch_object(self._client, FluxKind.EXTERNAL_ARTIFACT, namespace, name)
        if not (obj.get("spec") or {}).get("sourceRef"):
            raise DataIntegrityError(f"ExternalArtifact {namespace}/{name} is missing spec.sourceRef")
        return build_trace_node(obj, namespace)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _push(self, node: TraceNode) -> None:
        self._visited.add(node.key)
        if all(existing.key != node.key for existing in self._chain):
            self._chain.append(node)

    @staticmethod
    def _read_ref(node: TraceNode, raw: Any, field_name: str) -> SourceRef | None:
        if raw is None:
            return None
        try:
            return parse_source_ref(raw)
        except MalformedReference as exc:
            _log.warning("malformed source reference", owner=f"{node.kind}/{node.name}", field=field_name, error=str(exc))
            return None

    async def _fetch(self, kind: str, namespace: str, name: str, api_version: str | None = None) -> _Fetched | None:
        try:
            obj = await fetch_object(self._client, kind, namespace, name, api_version=api_version)
        except FluxScopeError as exc:
            _log.warning("failed to fetch owner", kind=kind, namespace=namespace, name=name, error=str(exc))
            return None
        return obj, build_trace_node(obj, namespace)

    async def _fetch_node(self, kind: str, namespace: str, name: str) -> TraceNode | None:
        fetched = await self._fetch(kind, namespace, name)
        return fetched[1] if fetched is not None else None


async def trace_object(client: KubeClient, kind: str, namespace: str, name: str) -> TraceResult:
    """Trace ``kind namespace/name`` up to its Flux source."""
    try:
        return await OwnershipTracer(client).trace(kind, namespace, name)
    except FluxScopeError:
        traces_total.labels(outcome="error").inc()
        raise
