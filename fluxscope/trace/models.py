"""Data structures returned by the ownership tracer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SourceRef:
    """A ``spec.sourceRef`` / ``spec.chartRef`` pointer."""

    kind: str
    name: str
    namespace: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "name": self.name, "namespace": self.namespace}


@dataclass(frozen=True)
class TraceStatus:
    ready: bool | None = None
    message: str | None = None
    last_reconciled: str | None = None
    revision: str | None = None


@dataclass(frozen=True)
class TraceSpec:
    path: str | None = None
    url: str | None = None
    branch: str | None = None
    source_ref: SourceRef | None = None


@dataclass(frozen=True)
class TraceNode:
    """Snapshot of one object encountered while tracing."""

    kind: str
    name: str
    namespace: str
    status: TraceStatus | None = None
    spec: TraceSpec | None = None

    @property
    def key(self) -> tuple[str, str, str]:
        """Identity used for chain deduplication."""
        return (self.kind, self.namespace, self.name)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"kind": self.kind, "name": self.name, "namespace": self.namespace}
        if self.status is not None:
            out["status"] = {
                "ready": self.status.ready,
                "message": self.status.message,
                "lastReconciled": self.status.last_reconciled,
                "revision": self.status.revision,
            }
        if self.spec is not None:
            out["spec"] = {
                "path": self.spec.path,
                "url": self.spec.url,
                "branch": self.spec.branch,
                "sourceRef": self.spec.source_ref.to_dict() if self.spec.source_ref else None,
            }
        return out


@dataclass
class TraceResult:
    """Outcome of ``trace_object``.

    ``chain`` lists the intermediate owners from nearest to farthest and
    never holds the same ``(kind, namespace, name)`` twice.
    """

    object: TraceNode
    chain: list[TraceNode] = field(default_factory=list)
    source: TraceNode | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "object": self.object.to_dict(),
            "chain": [node.to_dict() for node in self.chain],
            "source": self.source.to_dict() if self.source else None,
        }
