"""Pure decoding of Flux inventories.

Kustomization, ResourceSet and FluxInstance record applied objects in
``status.inventory.entries`` as ``{"id": ..., "v": ...}`` pairs where the id
packs namespace, name, group and kind into one underscore-joined string.
ArtifactGenerator uses ``status.inventory`` as a plain list of object
references instead.

Nothing in this module touches the network.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from fluxscope.inventory.models import InventoryEntry, InventoryGroups
from fluxscope.models.kinds import WORKLOAD_KINDS, is_flux_kind
from fluxscope.observability.logging import get_logger
from fluxscope.observability.metrics import inventory_entries_total

_log = get_logger("inventory.decoder")


def parse_inventory_id(inventory_id: str, version: str) -> InventoryEntry | None:
    """Decode one ``status.inventory.entries[].id`` value.

    Shapes:
        ``_<name>__<Kind>``                  cluster-scoped, core group
        ``<ns>_<name>__<Kind>``              namespaced, core group
        ``<ns>_<name>_<group>_<Kind>``       namespaced, grouped

    A double underscore only appears when the group is empty. Names may
    contain underscores. Returns None (and logs) for anything else.
    """
    if "__" in inventory_id:
        parts = inventory_id.split("__")
        if len(parts) == 2 and parts[1]:
            kind = parts[1]
            head = parts[0].split("_")
            if len(head) == 2 and head[0] == "":
                return InventoryEntry(kind=kind, name=head[1], namespace="", api_version=version)
            if len(head) >= 2:
                return InventoryEntry(kind=kind, name="_".join(head[1:]), namespace=head[0], api_version=version)
    else:
        parts = inventory_id.split("_")
        if len(parts) >= 4:
            return InventoryEntry(
                kind=parts[-1],
                name="_".join(parts[1:-2]),
                namespace=parts[0],
                api_version=version,
            )

    _log.warning("unparseable inventory id", inventory_id=inventory_id)
    return None


def _parse_entry(entry: Any) -> InventoryEntry | None:
    if not isinstance(entry, dict):
        return None

    inventory_id = entry.get("id")
    if isinstance(inventory_id, str) and "v" in entry:
        version = entry["v"] if isinstance(entry["v"], str) else "v1"
        return parse_inventory_id(inventory_id, version)

    kind = entry.get("kind")
    name = entry.get("name")
    if isinstance(kind, str) and isinstance(name, str):
        return InventoryEntry(
            kind=kind,
            name=name,
            namespace=entry.get("namespace") or "",
            api_version=entry.get("apiVersion") or "v1",
        )
    return None


def extract_inventory(obj: dict[str, Any]) -> list[InventoryEntry]:
    """Return the objects recorded in *obj*'s inventory. Never raises."""
    inventory = (obj.get("status") or {}).get("inventory")

    if isinstance(inventory, dict) and isinstance(inventory.get("entries"), list):
        raw_entries = inventory["entries"]
    elif isinstance(inventory, list):
        raw_entries = inventory
    else:
        return []

    entries: list[InventoryEntry] = []
    for index, raw in enumerate(raw_entries):
        parsed = _parse_entry(raw)
        if parsed is None:
            _log.warning("skipping malformed inventory entry", index=index, entry=repr(raw)[:200])
            continue
        entries.append(parsed)
    return entries


def group_inventory(entries: list[InventoryEntry]) -> InventoryGroups:
    """Bucket entries: Flux kinds and workloads individually, the rest as counts."""
    groups = InventoryGroups()
    for entry in entries:
        if is_flux_kind(entry.kind):
            groups.flux.append(entry)
            bucket = "flux"
        elif entry.kind in WORKLOAD_KINDS:
            groups.workloads.append(entry)
            bucket = "workloads"
        else:
            groups.resources[entry.kind] = groups.resources.get(entry.kind, 0) + 1
            bucket = "resources"
        inventory_entries_total.labels(bucket=bucket).inc()
    return groups


def extract_upstream(obj: dict[str, Any]) -> tuple[str, str] | None:
    """Return ``(display_name, url)`` from ``status.sourceRef.originURL``.

    The display name is the last path segment without a ``.git`` suffix.
    """
    source_ref = (obj.get("status") or {}).get("sourceRef")
    if not isinstance(source_ref, dict):
        return None
    url = source_ref.get("originURL")
    if not isinstance(url, str) or not url:
        return None

    name = url.rstrip("/").rsplit("/", 1)[-1]
    name = name.removesuffix(".git")
    return (name or url), url


def upstream_kind(url: str) -> str:
    """Label for an upstream node, derived from the repository host."""
    host = (urlparse(url).hostname or url).lower()
    if "github" in host:
        return "GitHub"
    if "gitlab" in host:
        return "GitLab"
    if "bitbucket" in host:
        return "Bitbucket"
    return "Git"
