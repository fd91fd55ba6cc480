"""Kubernetes API access and API version resolution."""

from fluxscope.kube.client import KubeClient
from fluxscope.kube.resolver import fetch_object, generate_fallback_versions, resolve_coordinate, resolve_with_fallback

__all__ = [
    "KubeClient",
    "fetch_object",
    "generate_fallback_versions",
    "resolve_coordinate",
    "resolve_with_fallback",
]
