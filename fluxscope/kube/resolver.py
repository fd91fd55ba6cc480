"""GVK resolution for Flux kinds.

Flux CRDs graduate through versions (v1beta1 -> v1beta2 -> v1, v2beta1 ->
v2) and clusters lag behind. Rather than keeping per-kind version
histories, a 404 on the default version is taken to mean "wrong version"
and a generated list of older versions is tried in order.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from fluxscope.errors import FluxScopeError, NotFoundError, UnknownResourceType
from fluxscope.models.coordinates import ResourceCoordinate, split_api_version
from fluxscope.models.kinds import BUILTIN_KINDS, is_flux_kind, lookup_kind
from fluxscope.observability.logging import get_logger

if TYPE_CHECKING:
    from fluxscope.kube.client import KubeClient

_log = get_logger("kube.resolver")

_VERSION_RE = re.compile(r"^v(?P<major>\d+)(?:(?P<stage>alpha|beta)(?P<minor>\d+))?$")


def resolve_coordinate(kind: str) -> tuple[str, str, str]:
    """Return ``(group, default_version, plural)`` for a registered kind."""
    spec = lookup_kind(kind)
    if spec is None:
        raise UnknownResourceType(kind)
    return spec.group, spec.version, spec.plural


def default_coordinate(kind: str, namespace: str, name: str) -> ResourceCoordinate:
    """Coordinate at the default version; cluster-scoped kinds drop the namespace."""
    spec = lookup_kind(kind)
    if spec is None:
        raise UnknownResourceType(kind)
    return ResourceCoordinate(
        group=spec.group,
        version=spec.version,
        kind=kind,
        plural=spec.plural,
        namespace=namespace if spec.namespaced else "",
        name=name,
    )


def guess_plural(kind: str) -> str:
    """Plural for kinds outside the registry (owner references to third-party CRDs)."""
    lower = kind.lower()
    if lower.endswith(("s", "x", "ch", "sh")):
        return f"{lower}es"
    if lower.endswith("y") and lower[-2:-1] not in ("a", "e", "i", "o", "u"):
        return f"{lower[:-1]}ies"
    return f"{lower}s"


def coordinate_from_api_version(api_version: str, kind: str, namespace: str, name: str) -> ResourceCoordinate:
    group, version = split_api_version(api_version)
    return ResourceCoordinate(group, version, kind, guess_plural(kind), namespace, name)


def generate_fallback_versions(version: str) -> list[str]:
    """Older API versions to try after *version* answered 404.

    >>> generate_fallback_versions("v2")
    ['v2beta2', 'v2beta1', 'v2alpha1', 'v1', 'v1beta2', 'v1beta1']
    """
    match = _VERSION_RE.match(version)
    if match is None:
        return []

    major = int(match["major"])
    stage = match["stage"]
    candidates: list[str] = []

    if stage is None:
        candidates += [f"v{major}beta2", f"v{major}beta1", f"v{major}alpha1"]
        if major > 1:
            prev = major - 1
            candidates += [f"v{prev}", f"v{prev}beta2", f"v{prev}beta1"]
    elif stage == "beta":
        minor = int(match["minor"])
        if minor > 1:
            candidates.append(f"v{major}beta{minor - 1}")
        candidates += [f"v{major}beta1", f"v{major}alpha1"]
        if major > 1:
            candidates.append(f"v{major - 1}")
    else:
        minor = int(match["minor"])
        if minor > 1:
            candidates.append(f"v{major}alpha{minor - 1}")
        candidates.append(f"v{major}alpha1")

    # v2beta2 yields "v2beta1" twice; keep the first occurrence only.
    # The input version itself may appear (v1beta1 -> v1beta1, v1alpha1); _find_served_version skips it.
    return list(dict.fromkeys(candidates))


async def _find_served_version(
    client: KubeClient, default: ResourceCoordinate
) -> tuple[ResourceCoordinate, dict[str, Any] | None]:
    """Find the served version for *default*; return the object too when it was read."""
    try:
        return default, await client.get(default)
    except NotFoundError:
        pass

    for version in generate_fallback_versions(default.version):
        if version == default.version:
            continue
        candidate = default.with_version(version)
        try:
            obj = await client.get(candidate)
        except NotFoundError:
            continue
        except FluxScopeError as exc:
            # Right version, the object itself is unavailable.
            _log.debug("fallback read failed", kind=default.kind, version=version, error=str(exc))
            return candidate, None
        _log.debug("resolved fallback version", kind=default.kind, version=version)
        return candidate, obj

    # Every version 404'd: keep the default so the next read reports a plain not-found.
    return default, None


async def resolve_with_fallback(client: KubeClient, kind: str, namespace: str, name: str) -> ResourceCoordinate:
    """Resolve the API version actually served for *kind* on this cluster.

    Built-in kinds are returned at their default version without any read.
    Non-404 errors on the default version propagate.
    """
    default = default_coordinate(kind, namespace, name)
    if kind in BUILTIN_KINDS:
        return default
    coordinate, _ = await _find_served_version(client, default)
    return coordinate


async def fetch_object(
    client: KubeClient,
    kind: str,
    namespace: str,
    name: str,
    api_version: str | None = None,
) -> dict[str, Any]:
    """Read one object by kind, resolving its API version first.

    *api_version* (typically from an owner reference) is only consulted for
    kinds the registry does not know. Their scope is unknown too, so a
    namespaced 404 is retried as a cluster-scoped read.
    """
    if is_flux_kind(kind):
        coordinate, obj = await _find_served_version(client, default_coordinate(kind, namespace, name))
        if obj is not None:
            return obj
        return await client.get(coordinate)

    if kind in BUILTIN_KINDS:
        return await client.get(default_coordinate(kind, namespace, name))

    if not api_version:
        raise UnknownResourceType(kind)
    coordinate = coordinate_from_api_version(api_version, kind, namespace, name)
    try:
        return await client.get(coordinate)
    except NotFoundError:
        if not namespace:
            raise
    return await client.get(coordinate_from_api_version(api_version, kind, "", name))
