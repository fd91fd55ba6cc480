"""API coordinates for a single Kubernetes object."""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class ResourceCoordinate:
    """Where an object lives on the API server.

    ``group`` is empty for the core API group. ``namespace`` is empty for
    cluster-scoped kinds.
    """

    group: str
    version: str
    kind: str
    plural: str
    namespace: str
    name: str

    @property
    def api_version(self) -> str:
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"

    @property
    def display_name(self) -> str:
        if not self.namespace:
            return self.name
        return f"{self.namespace}/{self.name}"

    def with_version(self, version: str) -> ResourceCoordinate:
        return replace(self, version=version)


def split_api_version(api_version: str) -> tuple[str, str]:
    """Split ``group/version`` into its parts; ``v1`` maps to the core group."""
    group, sep, version = api_version.rpartition("/")
    if not sep:
        return "", api_version
    return group, version
