"""Exception hierarchy for fluxscope.

FluxScopeError       -- base class; the CLI maps it to exit code 1.
UnknownResourceType  -- kind is in neither the Flux nor the built-in table.
NotFoundError        -- the API server answered 404 for a read.
KubeAPIError         -- any other API failure (auth, transport, 5xx).
MalformedReference   -- an owner or source reference lacks kind or name.
DataIntegrityError   -- an object violates a structural expectation
                        (invalid ExternalArtifact, undecodable release record).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fluxscope.models.coordinates import ResourceCoordinate


class FluxScopeError(Exception):
    """Base class for every error raised by fluxscope."""


class UnknownResourceType(FluxScopeError):
    """Raised when a kind cannot be mapped to group, version and plural."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"Unknown resource type: {kind}")
        self.kind = kind


class NotFoundError(FluxScopeError):
    """The object does not exist at the requested coordinate."""

    def __init__(self, coordinate: ResourceCoordinate) -> None:
        super().__init__(f"{coordinate.kind} {coordinate.display_name} not found ({coordinate.api_version})")
        self.coordinate = coordinate


class KubeAPIError(FluxScopeError):
    """Non-404 failure talking to the Kubernetes API."""

    def __init__(self, message: str, status: int | None = None, reason: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.reason = reason


class MalformedReference(FluxScopeError):
    """An owner reference or sourceRef is missing its kind or name."""


class DataIntegrityError(FluxScopeError):
    """An object is structurally invalid for the operation requested."""
