"""Readiness summaries for the workload kinds shown in a WorkloadGroup node."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fluxscope.errors import FluxScopeError
from fluxscope.observability.logging import get_logger

if TYPE_CHECKING:
    from fluxscope.inventory.models import InventoryEntry
    from fluxscope.kube.client import KubeClient

_log = get_logger("graph.workloads")

READY_INDICATOR = "●"
NOT_READY_INDICATOR = "○"
UNKNOWN_INDICATOR = "?"
_UNKNOWN_TEXT = "Unknown"


def _int(section: dict[str, Any], key: str, default: int = 0) -> int:
    value = section.get(key)
    return value if isinstance(value, int) else default


def workload_status(kind: str, obj: dict[str, Any]) -> tuple[bool | None, str | None]:
    """Return ``(ready, status_text)`` for one workload object."""
    spec = obj.get("spec") or {}
    status = obj.get("status") or {}

    match kind:
        case "Deployment":
            desired = _int(spec, "replicas", 1)
            ready = _int(status, "readyReplicas")
            available = _int(status, "availableReplicas")
            return ready == desired and available == desired, f"Replicas: {ready}/{desired}"
        case "StatefulSet":
            desired = _int(spec, "replicas", 1)
            ready = _int(status, "readyReplicas")
            return ready == desired, f"Replicas: {ready}/{desired}"
        case "DaemonSet":
            desired = _int(status, "desiredNumberScheduled")
            ready = _int(status, "numberReady")
            return ready == desired and desired > 0, f"Ready: {ready}/{desired}"
        case "Job":
            succeeded = _int(status, "succeeded")
            failed = _int(status, "failed")
            text = f"Failed: {failed}" if failed > 0 else f"Succeeded: {succeeded}"
            return succeeded > 0, text
        case "CronJob":
            return None, f"Active: {len(status.get('active') or [])}"
        case _:
            return None, None


def indicator(ready: bool | None) -> str:
    if ready is None:
        return UNKNOWN_INDICATOR
    return READY_INDICATOR if ready else NOT_READY_INDICATOR


def format_workload_line(entry: InventoryEntry, ready: bool | None, text: str | None) -> str:
    """``Kind|name|namespace|indicator|status`` as the renderer parses it."""
    return f"{entry.kind}|{entry.name}|{entry.namespace}|{indicator(ready)}|{text or _UNKNOWN_TEXT}"


async def fetch_workload_status(client: KubeClient, entry: InventoryEntry) -> tuple[bool | None, str | None]:
    """Read *entry* live and summarize it; read failures yield ``(None, None)``."""
    try:
        obj = await client.get_workload(entry.kind, entry.namespace, entry.name)
    except FluxScopeError as exc:
        _log.warning(
            "failed to fetch workload status",
            kind=entry.kind,
            namespace=entry.namespace,
            name=entry.name,
            error=str(exc),
        )
        return None, None
    return workload_status(entry.kind, obj)
