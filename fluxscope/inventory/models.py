"""Data structures for decoded inventories."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class InventoryEntry:
    """One object applied by a Flux controller."""

    kind: str
    name: str
    namespace: str
    api_version: str

    def to_dict(self) -> dict[str, str]:
        return {
            "kind": self.kind,
            "name": self.name,
            "namespace": self.namespace,
            "apiVersion": self.api_version,
        }


@dataclass
class InventoryGroups:
    """Inventory split into the three buckets the graph renders.

    Flux kinds and workloads are kept individually; every other kind is
    reduced to a count.
    """

    flux: list[InventoryEntry] = field(default_factory=list)
    workloads: list[InventoryEntry] = field(default_factory=list)
    resources: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.flux) + len(self.workloads) + sum(self.resources.values())

    def to_dict(self) -> dict[str, object]:
        return {
            "flux": [entry.to_dict() for entry in self.flux],
            "workloads": [entry.to_dict() for entry in self.workloads],
            "resources": dict(sorted(self.resources.items())),
            "total": self.total,
        }
