"""Tests for GVK resolution: static lookup, fallback versions and version lookup."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from fluxscope.errors import KubeAPIError, NotFoundError, UnknownResourceType
from fluxscope.kube.resolver import (
    fetch_object,
    generate_fallback_versions,
    guess_plural,
    resolve_coordinate,
    resolve_with_fallback,
)

if TYPE_CHECKING:
    from tests.conftest import FakeKubeClient


def _kustomization(name: str = "app", namespace: str = "flux-system", api_version: str | None = None) -> dict:
    obj: dict = {"kind": "Kustomization", "metadata": {"name": name, "namespace": namespace}}
    if api_version:
        obj["apiVersion"] = api_version
    return obj


# ---------------------------------------------------------------------------
# resolve_coordinate
# ---------------------------------------------------------------------------


class TestResolveCoordinate:
    def test_flux_kind(self) -> None:
        assert resolve_coordinate("HelmChart") == ("source.toolkit.fluxcd.io", "v1", "helmcharts")

    def test_core_kind(self) -> None:
        assert resolve_coordinate("ConfigMap") == ("", "v1", "configmaps")

    def test_unknown_kind_raises(self) -> None:
        with pytest.raises(UnknownResourceType) as exc_info:
            resolve_coordinate("Widget")
        assert exc_info.value.kind == "Widget"


# ---------------------------------------------------------------------------
# generate_fallback_versions
# ---------------------------------------------------------------------------


class TestFallbackVersions:
    def test_v1(self) -> None:
        assert generate_fallback_versions("v1") == ["v1beta2", "v1beta1", "v1alpha1"]

    def test_v2(self) -> None:
        assert generate_fallback_versions("v2") == ["v2beta2", "v2beta1", "v2alpha1", "v1", "v1beta2", "v1beta1"]

    def test_beta_steps_down(self) -> None:
        assert generate_fallback_versions("v1beta3") == ["v1beta2", "v1beta1", "v1alpha1"]

    def test_beta_of_later_major_includes_previous_stable(self) -> None:
        assert generate_fallback_versions("v2beta2") == ["v2beta1", "v2alpha1", "v1"]

    def test_first_beta_keeps_itself_before_alpha(self) -> None:
        assert generate_fallback_versions("v1beta1") == ["v1beta1", "v1alpha1"]

    def test_alpha(self) -> None:
        assert generate_fallback_versions("v1alpha3") == ["v1alpha2", "v1alpha1"]
        assert generate_fallback_versions("v1alpha1") == ["v1alpha1"]

    @pytest.mark.parametrize("version", ["", "latest", "1", "v1rc1", "vx"])
    def test_unrecognised_versions(self, version: str) -> None:
        assert generate_fallback_versions(version) == []


# ---------------------------------------------------------------------------
# resolve_with_fallback / fetch_object
# ---------------------------------------------------------------------------


class TestResolveWithFallback:
    async def test_default_version_served(self, kube: FakeKubeClient) -> None:
        kube.add(_kustomization())
        coordinate = await resolve_with_fallback(kube, "Kustomization", "flux-system", "app")
        assert coordinate.version == "v1"
        assert len(kube.calls) == 1

    async def test_falls_back_to_older_version(self, kube: FakeKubeClient) -> None:
        kube.add(_kustomization(api_version="kustomize.toolkit.fluxcd.io/v1beta2"))
        coordinate = await resolve_with_fallback(kube, "Kustomization", "flux-system", "app")
        assert coordinate.version == "v1beta2"
        assert [call.version for call in kube.calls] == ["v1", "v1beta2"]

    async def test_all_versions_missing_returns_default(self, kube: FakeKubeClient) -> None:
        coordinate = await resolve_with_fallback(kube, "HelmRelease", "apps", "podinfo")
        assert coordinate.version == "v2"
        assert [call.version for call in kube.calls] == ["v2", "v2beta2", "v2beta1", "v2alpha1", "v1", "v1beta2", "v1beta1"]

    async def test_version_already_tried_is_not_read_twice(self, kube: FakeKubeClient) -> None:
        coordinate = await resolve_with_fallback(kube, "ArtifactGenerator", "flux-system", "gen")
        assert coordinate.version == "v1beta1"
        assert [call.version for call in kube.calls] == ["v1beta1", "v1alpha1"]

    async def test_older_alpha_found_after_first_beta(self, kube: FakeKubeClient) -> None:
        kube.add(
            {
                "apiVersion": "source.extensions.fluxcd.io/v1alpha1",
                "kind": "ArtifactGenerator",
                "metadata": {"name": "gen", "namespace": "flux-system"},
            }
        )
        coordinate = await resolve_with_fallback(kube, "ArtifactGenerator", "flux-system", "gen")
        assert coordinate.version == "v1alpha1"

    async def test_non_404_on_default_propagates(self, kube: FakeKubeClient) -> None:
        kube.fail("Kustomization", "flux-system", "app", KubeAPIError("forbidden", status=403))
        with pytest.raises(KubeAPIError):
            await resolve_with_fallback(kube, "Kustomization", "flux-system", "app")

    async def test_non_404_on_fallback_selects_that_version(self, kube: FakeKubeClient) -> None:
        kube.fail(
            "Kustomization",
            "flux-system",
            "app",
            KubeAPIError("forbidden", status=403),
            api_version="kustomize.toolkit.fluxcd.io/v1beta2",
        )
        coordinate = await resolve_with_fallback(kube, "Kustomization", "flux-system", "app")
        assert coordinate.version == "v1beta2"

    async def test_unexpected_error_on_fallback_propagates(self, kube: FakeKubeClient) -> None:
        kube.fail(
            "Kustomization",
            "flux-system",
            "app",
            RuntimeError("session closed"),
            api_version="kustomize.toolkit.fluxcd.io/v1beta2",
        )
        with pytest.raises(RuntimeError, match="session closed"):
            await resolve_with_fallback(kube, "Kustomization", "flux-system", "app")

    async def test_builtin_kind_is_not_read(self, kube: FakeKubeClient) -> None:
        coordinate = await resolve_with_fallback(kube, "Deployment", "apps", "web")
        assert coordinate.api_version == "apps/v1"
        assert kube.calls == []

    async def test_namespace_is_cluster_scoped(self, kube: FakeKubeClient) -> None:
        coordinate = await resolve_with_fallback(kube, "Namespace", "ignored", "apps")
        assert coordinate.namespace == ""


class TestFetchObject:
    async def test_reads_once_when_default_served(self, kube: FakeKubeClient) -> None:
        kube.add(_kustomization())
        obj = await fetch_object(kube, "Kustomization", "flux-system", "app")
        assert obj["metadata"]["name"] == "app"
        assert len(kube.calls) == 1

    async def test_missing_object_raises_not_found_at_default(self, kube: FakeKubeClient) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await fetch_object(kube, "GitRepository", "flux-system", "missing")
        assert exc_info.value.coordinate.version == "v1"

    async def test_unknown_kind_uses_owner_api_version(self, kube: FakeKubeClient) -> None:
        kube.add(
            {
                "apiVersion": "argoproj.io/v1alpha1",
                "kind": "Rollout",
                "metadata": {"name": "web", "namespace": "apps"},
            }
        )
        obj = await fetch_object(kube, "Rollout", "apps", "web", api_version="argoproj.io/v1alpha1")
        assert obj["kind"] == "Rollout"
        assert kube.calls[0].plural == "rollouts"

    async def test_unknown_core_kind_uses_core_group(self, kube: FakeKubeClient) -> None:
        kube.add({"apiVersion": "v1", "kind": "ReplicationController", "metadata": {"name": "web", "namespace": "apps"}})
        obj = await fetch_object(kube, "ReplicationController", "apps", "web", api_version="v1")
        assert obj["metadata"]["name"] == "web"
        assert (kube.calls[0].group, kube.calls[0].plural) == ("", "replicationcontrollers")

    async def test_unknown_kind_retried_cluster_scoped(self, kube: FakeKubeClient) -> None:
        kube.add({"apiVersion": "example.io/v1", "kind": "Tenant", "metadata": {"name": "team-a"}})
        obj = await fetch_object(kube, "Tenant", "apps", "team-a", api_version="example.io/v1")
        assert obj["metadata"]["name"] == "team-a"
        assert [call.namespace for call in kube.calls] == ["apps", ""]

    async def test_unknown_kind_missing_everywhere(self, kube: FakeKubeClient) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await fetch_object(kube, "Tenant", "apps", "team-a", api_version="example.io/v1")
        assert exc_info.value.coordinate.namespace == ""
        assert len(kube.calls) == 2

    async def test_unknown_kind_without_api_version(self, kube: FakeKubeClient) -> None:
        with pytest.raises(UnknownResourceType):
            await fetch_object(kube, "Rollout", "apps", "web")


class TestGuessPlural:
    @pytest.mark.parametrize(
        ("kind", "plural"),
        [
            ("Rollout", "rollouts"),
            ("Ingress", "ingresses"),
            ("NetworkPolicy", "networkpolicies"),
            ("Gateway", "gateways"),
        ],
    )
    def test_plurals(self, kind: str, plural: str) -> None:
        assert guess_plural(kind) == plural
