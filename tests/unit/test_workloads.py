"""Tests for workload readiness summaries."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from fluxscope.graph.workloads import fetch_workload_status, format_workload_line, workload_status
from fluxscope.inventory.models import InventoryEntry

if TYPE_CHECKING:
    from tests.conftest import FakeKubeClient


class TestWorkloadStatus:
    def test_deployment_ready(self) -> None:
        obj = {"spec": {"replicas": 3}, "status": {"readyReplicas": 3, "availableReplicas": 3}}
        assert workload_status("Deployment", obj) == (True, "Replicas: 3/3")

    def test_deployment_not_available(self) -> None:
        obj = {"spec": {"replicas": 3}, "status": {"readyReplicas": 3, "availableReplicas": 2}}
        assert workload_status("Deployment", obj) == (False, "Replicas: 3/3")

    def test_deployment_defaults_to_one_replica(self) -> None:
        assert workload_status("Deployment", {"status": {}}) == (False, "Replicas: 0/1")

    def test_deployment_scaled_to_zero(self) -> None:
        assert workload_status("Deployment", {"spec": {"replicas": 0}}) == (True, "Replicas: 0/0")

    def test_statefulset(self) -> None:
        obj = {"spec": {"replicas": 2}, "status": {"readyReplicas": 1}}
        assert workload_status("StatefulSet", obj) == (False, "Replicas: 1/2")

    def test_daemonset(self) -> None:
        obj = {"status": {"desiredNumberScheduled": 4, "numberReady": 4}}
        assert workload_status("DaemonSet", obj) == (True, "Ready: 4/4")

    def test_daemonset_with_nothing_scheduled_is_not_ready(self) -> None:
        assert workload_status("DaemonSet", {"status": {}}) == (False, "Ready: 0/0")

    def test_job(self) -> None:
        assert workload_status("Job", {"status": {"succeeded": 1}}) == (True, "Succeeded: 1")
        assert workload_status("Job", {"status": {"failed": 2}}) == (False, "Failed: 2")

    def test_cronjob(self) -> None:
        obj = {"status": {"active": [{"name": "a"}, {"name": "b"}]}}
        assert workload_status("CronJob", obj) == (None, "Active: 2")

    def test_other_kind(self) -> None:
        assert workload_status("ReplicaSet", {}) == (None, None)


class TestFormatWorkloadLine:
    @pytest.mark.parametrize(
        ("ready", "text", "expected"),
        [
            (True, "Replicas: 1/1", "Deployment|web|apps|●|Replicas: 1/1"),
            (False, "Replicas: 0/1", "Deployment|web|apps|○|Replicas: 0/1"),
            (None, None, "Deployment|web|apps|?|Unknown"),
        ],
    )
    def test_line(self, ready: bool | None, text: str | None, expected: str) -> None:
        entry = InventoryEntry("Deployment", "web", "apps", "v1")
        assert format_workload_line(entry, ready, text) == expected


class TestFetchWorkloadStatus:
    async def test_live_read(self, kube: FakeKubeClient) -> None:
        kube.add(
            {
                "kind": "StatefulSet",
                "metadata": {"name": "db", "namespace": "apps"},
                "spec": {"replicas": 1},
                "status": {"readyReplicas": 1},
            }
        )
        entry = InventoryEntry("StatefulSet", "db", "apps", "v1")
        assert await fetch_workload_status(kube, entry) == (True, "Replicas: 1/1")

    async def test_failed_read_is_unknown(self, kube: FakeKubeClient) -> None:
        entry = InventoryEntry("Deployment", "gone", "apps", "v1")
        assert await fetch_workload_status(kube, entry) == (None, None)
