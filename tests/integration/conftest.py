"""A small Flux installation seeded into FakeKubeClient.

Layout::

    GitRepository flux-system/flux-system  (github.com/acme/fleet)
      └─ Kustomization flux-system/apps    (inventory below)
           ├─ HelmRelease apps/podinfo     (chart flux-system/apps-podinfo, release in Helm storage)
           ├─ Deployment apps/web          (1/1 ready)
           ├─ StatefulSet apps/db          (not readable)
           ├─ Service apps/web
           └─ ConfigMap apps/settings, apps/dashboards

    HelmRepository flux-system/podinfo
      └─ HelmChart flux-system/apps-podinfo
"""

from __future__ import annotations

import base64
import gzip
import json
from typing import TYPE_CHECKING, Any

import pytest

if TYPE_CHECKING:
    from tests.conftest import FakeKubeClient

_KS_LABELS = {
    "kustomize.toolkit.fluxcd.io/name": "apps",
    "kustomize.toolkit.fluxcd.io/namespace": "flux-system",
}

_PODINFO_MANIFEST = """---
apiVersion: v1
kind: Service
metadata:
  name: podinfo
---
apiVersion: apps/v1
kind: Deployment
metadata:
  name: podinfo
"""


def _ready_condition(status: str = "True", message: str = "Applied revision: main@sha1:abc123") -> dict[str, Any]:
    return {"type": "Ready", "status": status, "message": message}


def _helm_release_record(manifest: str = _PODINFO_MANIFEST) -> bytes:
    raw = json.dumps({"name": "podinfo", "version": 1, "manifest": manifest}).encode()
    return base64.b64encode(gzip.compress(raw))


def _inventory(*ids: tuple[str, str]) -> dict[str, Any]:
    return {"entries": [{"id": id_, "v": version} for id_, version in ids]}


def _seed_flux(kube: FakeKubeClient) -> FakeKubeClient:
    kube.add(
        {
            "kind": "GitRepository",
            "metadata": {"name": "flux-system", "namespace": "flux-system"},
            "spec": {"url": "https://github.com/acme/fleet.git", "ref": {"branch": "main"}},
            "status": {
                "conditions": [_ready_condition(message="stored artifact for revision 'main@sha1:abc123'")],
                "artifact": {"revision": "main@sha1:abc123"},
            },
        }
    )
    kube.add(
        {
            "kind": "Kustomization",
            "metadata": {"name": "apps", "namespace": "flux-system"},
            "spec": {"path": "./apps", "sourceRef": {"kind": "GitRepository", "name": "flux-system"}},
            "status": {
                "conditions": [_ready_condition()],
                "lastAppliedRevision": "main@sha1:abc123",
                "inventory": _inventory(
                    ("apps_podinfo_helm.toolkit.fluxcd.io_HelmRelease", "v2"),
                    ("apps_web_apps_Deployment", "v1"),
                    ("apps_db_apps_StatefulSet", "v1"),
                    ("apps_web__Service", "v1"),
                    ("apps_settings__ConfigMap", "v1"),
                    ("apps_dashboards__ConfigMap", "v1"),
                ),
            },
        }
    )
    kube.add(
        {
            "kind": "HelmRepository",
            "metadata": {"name": "podinfo", "namespace": "flux-system"},
            "spec": {"url": "https://stefanprodan.github.io/podinfo"},
            "status": {"conditions": [_ready_condition()]},
        }
    )
    kube.add(
        {
            "kind": "HelmChart",
            "metadata": {"name": "apps-podinfo", "namespace": "flux-system"},
            "spec": {"chart": "podinfo", "sourceRef": {"kind": "HelmRepository", "name": "podinfo"}},
            "status": {"conditions": [_ready_condition()]},
        }
    )
    kube.add(
        {
            "kind": "HelmRelease",
            "metadata": {"name": "podinfo", "namespace": "apps", "labels": dict(_KS_LABELS)},
            "spec": {"chart": {"spec": {"chart": "podinfo", "sourceRef": {"kind": "HelmRepository", "name": "podinfo"}}}},
            "status": {
                "conditions": [_ready_condition()],
                "helmChart": "flux-system/apps-podinfo",
                "storageNamespace": "apps",
                "history": [{"name": "podinfo", "namespace": "apps", "version": 1}],
            },
        }
    )
    kube.add_helm_release_secret("apps", "sh.helm.release.v1.podinfo.v1", _helm_release_record())
    kube.add(
        {
            "kind": "Deployment",
            "metadata": {"name": "web", "namespace": "apps", "uid": "deploy-uid", "labels": dict(_KS_LABELS)},
            "spec": {"replicas": 1},
            "status": {"readyReplicas": 1, "availableReplicas": 1},
        }
    )
    return kube


@pytest.fixture()
def flux_cluster(kube: FakeKubeClient) -> FakeKubeClient:
    return _seed_flux(kube)
