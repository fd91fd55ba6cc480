"""Registry of the Flux kinds and the built-in kinds fluxscope reads.

The Flux table is closed: every kind the controllers define appears in
``FluxKind`` together with its API group, the version we try first and the
plural used in REST paths. ``KindRole`` drives the source-resolution
dispatch in the tracer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType


class FluxKind(StrEnum):
    """Every custom resource kind defined by the Flux controllers."""

    GIT_REPOSITORY = "GitRepository"
    OCI_REPOSITORY = "OCIRepository"
    HELM_REPOSITORY = "HelmRepository"
    BUCKET = "Bucket"
    HELM_CHART = "HelmChart"
    EXTERNAL_ARTIFACT = "ExternalArtifact"
    ARTIFACT_GENERATOR = "ArtifactGenerator"
    KUSTOMIZATION = "Kustomization"
    HELM_RELEASE = "HelmRelease"
    IMAGE_REPOSITORY = "ImageRepository"
    IMAGE_POLICY = "ImagePolicy"
    IMAGE_UPDATE_AUTOMATION = "ImageUpdateAutomation"
    ALERT = "Alert"
    PROVIDER = "Provider"
    RECEIVER = "Receiver"
    RESOURCE_SET = "ResourceSet"
    RESOURCE_SET_INPUT_PROVIDER = "ResourceSetInputProvider"
    FLUX_REPORT = "FluxReport"
    FLUX_INSTANCE = "FluxInstance"


class KindRole(StrEnum):
    """How a kind participates in source resolution."""

    PATH_RELEASE = "path_release"
    CHART_RELEASE = "chart_release"
    CHART = "chart"
    OTHER = "other"


@dataclass(frozen=True)
class KindSpec:
    """API group, default version and plural of a kind."""

    group: str
    version: str
    plural: str
    namespaced: bool = True

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version


_SOURCE_GROUP = "source.toolkit.fluxcd.io"
_IMAGE_GROUP = "image.toolkit.fluxcd.io"
_NOTIFICATION_GROUP = "notification.toolkit.fluxcd.io"
_CONTROLPLANE_GROUP = "fluxcd.controlplane.io"

FLUX_KINDS: MappingProxyType[FluxKind, KindSpec] = MappingProxyType(
    {
        FluxKind.GIT_REPOSITORY: KindSpec(_SOURCE_GROUP, "v1", "gitrepositories"),
        FluxKind.OCI_REPOSITORY: KindSpec(_SOURCE_GROUP, "v1", "ocirepositories"),
        FluxKind.HELM_REPOSITORY: KindSpec(_SOURCE_GROUP, "v1", "helmrepositories"),
        FluxKind.BUCKET: KindSpec(_SOURCE_GROUP, "v1", "buckets"),
        FluxKind.HELM_CHART: KindSpec(_SOURCE_GROUP, "v1", "helmcharts"),
        FluxKind.EXTERNAL_ARTIFACT: KindSpec(_SOURCE_GROUP, "v1", "externalartifacts"),
        FluxKind.ARTIFACT_GENERATOR: KindSpec("source.extensions.fluxcd.io", "v1beta1", "artifactgenerators"),
        FluxKind.KUSTOMIZATION: KindSpec("kustomize.toolkit.fluxcd.io", "v1", "kustomizations"),
        FluxKind.HELM_RELEASE: KindSpec("helm.toolkit.fluxcd.io", "v2", "helmreleases"),
        FluxKind.IMAGE_REPOSITORY: KindSpec(_IMAGE_GROUP, "v1", "imagerepositories"),
        FluxKind.IMAGE_POLICY: KindSpec(_IMAGE_GROUP, "v1", "imagepolicies"),
        FluxKind.IMAGE_UPDATE_AUTOMATION: KindSpec(_IMAGE_GROUP, "v1", "imageupdateautomations"),
        FluxKind.ALERT: KindSpec(_NOTIFICATION_GROUP, "v1beta3", "alerts"),
        FluxKind.PROVIDER: KindSpec(_NOTIFICATION_GROUP, "v1beta3", "providers"),
        FluxKind.RECEIVER: KindSpec(_NOTIFICATION_GROUP, "v1beta3", "receivers"),
        FluxKind.RESOURCE_SET: KindSpec(_CONTROLPLANE_GROUP, "v1", "resourcesets"),
        FluxKind.RESOURCE_SET_INPUT_PROVIDER: KindSpec(_CONTROLPLANE_GROUP, "v1", "resourcesetinputproviders"),
        FluxKind.FLUX_REPORT: KindSpec(_CONTROLPLANE_GROUP, "v1", "fluxreports"),
        FluxKind.FLUX_INSTANCE: KindSpec(_CONTROLPLANE_GROUP, "v1", "fluxinstances"),
    }
)

# Built-in kinds that show up in owner chains, inventories and workload lookups.
BUILTIN_KINDS: MappingProxyType[str, KindSpec] = MappingProxyType(
    {
        "Service": KindSpec("", "v1", "services"),
        "ConfigMap": KindSpec("", "v1", "configmaps"),
        "Secret": KindSpec("", "v1", "secrets"),
        "Pod": KindSpec("", "v1", "pods"),
        "Namespace": KindSpec("", "v1", "namespaces", namespaced=False),
        "Deployment": KindSpec("apps", "v1", "deployments"),
        "StatefulSet": KindSpec("apps", "v1", "statefulsets"),
        "DaemonSet": KindSpec("apps", "v1", "daemonsets"),
        "ReplicaSet": KindSpec("apps", "v1", "replicasets"),
        "Job": KindSpec("batch", "v1", "jobs"),
        "CronJob": KindSpec("batch", "v1", "cronjobs"),
    }
)

WORKLOAD_KINDS = frozenset({"Deployment", "StatefulSet", "DaemonSet"})

_ROLES: MappingProxyType[FluxKind, KindRole] = MappingProxyType(
    {
        FluxKind.KUSTOMIZATION: KindRole.PATH_RELEASE,
        FluxKind.HELM_RELEASE: KindRole.CHART_RELEASE,
        FluxKind.HELM_CHART: KindRole.CHART,
    }
)

_GRAPH_KINDS = frozenset(
    {
        FluxKind.KUSTOMIZATION,
        FluxKind.HELM_RELEASE,
        FluxKind.ARTIFACT_GENERATOR,
        FluxKind.FLUX_INSTANCE,
        FluxKind.RESOURCE_SET,
    }
)

_ALIASES: dict[str, FluxKind] = {
    "gitrepo": FluxKind.GIT_REPOSITORY,
    "oci": FluxKind.OCI_REPOSITORY,
    "helmrepo": FluxKind.HELM_REPOSITORY,
    "ea": FluxKind.EXTERNAL_ARTIFACT,
    "ag": FluxKind.ARTIFACT_GENERATOR,
    "ks": FluxKind.KUSTOMIZATION,
    "hr": FluxKind.HELM_RELEASE,
    "rset": FluxKind.RESOURCE_SET,
    "rsip": FluxKind.RESOURCE_SET_INPUT_PROVIDER,
    "fr": FluxKind.FLUX_REPORT,
    "fi": FluxKind.FLUX_INSTANCE,
}
for _kind, _spec in FLUX_KINDS.items():
    _ALIASES[_kind.value.lower()] = _kind
    _ALIASES[_spec.plural] = _kind


def parse_kind(kind: str) -> FluxKind | None:
    """Return the FluxKind for an exact kind name, or None."""
    try:
        return FluxKind(kind)
    except ValueError:
        return None


def kind_from_alias(value: str) -> FluxKind | None:
    """Case-insensitive lookup by kind name, plural or short alias (``ks``, ``hr``)."""
    return _ALIASES.get(value.strip().lower())


def is_flux_kind(kind: str) -> bool:
    return parse_kind(kind) is not None


def kind_role(kind: str) -> KindRole:
    flux_kind = parse_kind(kind)
    if flux_kind is None:
        return KindRole.OTHER
    return _ROLES.get(flux_kind, KindRole.OTHER)


def is_release_kind(kind: str) -> bool:
    """True for the kinds that apply manifests: Kustomization and HelmRelease."""
    return kind_role(kind) in (KindRole.PATH_RELEASE, KindRole.CHART_RELEASE)


def supports_graph(kind: str) -> bool:
    """True iff a resource graph can be built with *kind* as its root."""
    flux_kind = parse_kind(kind)
    return flux_kind is not None and flux_kind in _GRAPH_KINDS


def lookup_kind(kind: str) -> KindSpec | None:
    """Return the registry entry for a Flux or built-in kind."""
    flux_kind = parse_kind(kind)
    if flux_kind is not None:
        return FLUX_KINDS[flux_kind]
    return BUILTIN_KINDS.get(kind)
