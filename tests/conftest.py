"""Shared fixtures for fluxscope tests.

FakeKubeClient stands in for ``fluxscope.kube.client.KubeClient``: objects
are stored as plain dicts keyed by their API coordinates, so a resource
registered at ``v1beta2`` answers 404 at ``v1`` exactly like a cluster that
does not serve the newer version yet.
"""

from __future__ import annotations

import base64
import copy
from typing import Any

import pytest

from fluxscope.errors import KubeAPIError, NotFoundError
from fluxscope.kube.resolver import guess_plural
from fluxscope.models.coordinates import ResourceCoordinate, split_api_version
from fluxscope.models.kinds import BUILTIN_KINDS, lookup_kind

_Key = tuple[str, str, str, str, str]


def _key(group: str, version: str, plural: str, namespace: str, name: str) -> _Key:
    return (group, version, plural, namespace, name)


class FakeKubeClient:
    """In-memory KubeClient with call recording and error injection."""

    def __init__(self) -> None:
        self._objects: dict[_Key, dict[str, Any]] = {}
        self._errors: dict[_Key, Exception] = {}
        self.calls: list[ResourceCoordinate] = []

    # -- setup ---------------------------------------------------------

    def _key_for(self, kind: str, api_version: str, namespace: str, name: str) -> _Key:
        group, version = split_api_version(api_version)
        spec = lookup_kind(kind)
        plural = spec.plural if spec else guess_plural(kind)
        if spec is not None and not spec.namespaced:
            namespace = ""
        return _key(group, version, plural, namespace, name)

    def add(self, obj: dict[str, Any]) -> dict[str, Any]:
        """Register *obj*; apiVersion defaults to the registry's default version."""
        kind = obj["kind"]
        spec = lookup_kind(kind)
        api_version = obj.setdefault("apiVersion", spec.api_version if spec else "v1")
        metadata = obj.setdefault("metadata", {})
        key = self._key_for(kind, api_version, metadata.get("namespace", ""), metadata["name"])
        self._objects[key] = obj
        return obj

    def fail(self, kind: str, namespace: str, name: str, error: Exception, api_version: str | None = None) -> None:
        """Make reads of one object raise *error*."""
        spec = lookup_kind(kind)
        version = api_version or (spec.api_version if spec else "v1")
        self._errors[self._key_for(kind, version, namespace, name)] = error

    def add_helm_release_secret(self, namespace: str, name: str, release_value: bytes) -> None:
        """Store a Helm storage Secret whose ``release`` key holds *release_value*."""
        self.add(
            {
                "kind": "Secret",
                "metadata": {"name": name, "namespace": namespace},
                "data": {"release": base64.b64encode(release_value).decode()},
            }
        )

    # -- KubeClient surface --------------------------------------------

    async def get(self, coordinate: ResourceCoordinate) -> dict[str, Any]:
        self.calls.append(coordinate)
        key = _key(coordinate.group, coordinate.version, coordinate.plural, coordinate.namespace, coordinate.name)
        if key in self._errors:
            raise self._errors[key]
        if key not in self._objects:
            raise NotFoundError(coordinate)
        return copy.deepcopy(self._objects[key])

    async def get_workload(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        spec = BUILTIN_KINDS.get(kind)
        if spec is None:
            raise KubeAPIError(f"{kind} is not a readable workload kind")
        return await self.get(ResourceCoordinate(spec.group, spec.version, kind, spec.plural, namespace, name))

    async def get_secret_data(self, namespace: str, name: str) -> dict[str, bytes]:
        spec = BUILTIN_KINDS["Secret"]
        secret = await self.get(ResourceCoordinate(spec.group, spec.version, "Secret", spec.plural, namespace, name))
        return {key: base64.b64decode(value) for key, value in (secret.get("data") or {}).items()}

    async def close(self) -> None:
        return None

    # -- assertions ----------------------------------------------------

    def reads_of(self, kind: str) -> list[ResourceCoordinate]:
        return [call for call in self.calls if call.kind == kind]


@pytest.fixture()
def kube() -> FakeKubeClient:
    return FakeKubeClient()
