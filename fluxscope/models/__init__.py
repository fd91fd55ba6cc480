"""Core data structures for fluxscope."""

from fluxscope.models.config import FluxScopeConfig
from fluxscope.models.coordinates import ResourceCoordinate
from fluxscope.models.kinds import FluxKind, KindRole, KindSpec

__all__ = [
    "FluxKind",
    "FluxScopeConfig",
    "KindRole",
    "KindSpec",
    "ResourceCoordinate",
]
