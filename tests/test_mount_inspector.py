"""Tests for mount detection and node placement."""

from datetime import UTC, datetime

import pytest

from pv_migrate.core.mount_inspector import (
    MountInfo,
    MountInspector,
    mount_safety_reason,
    supports_multi_node,
)
from pv_migrate.models.request import VolumeLocator
from tests.fakes import make_pvc

LOCATOR = VolumeLocator(context="ctx-a", namespace="apps", name="old-data")


@pytest.fixture
def inspector():
    return MountInspector()


class TestIsMounted:
    """Detection of workloads referencing a claim."""

    @pytest.mark.asyncio
    async def test_unmounted(self, inspector, cluster_a):
        cluster_a.add_workload("apps", "other", "unrelated")

        info = await inspector.is_mounted(cluster_a, LOCATOR)

        assert info == MountInfo(mounted=False)

    @pytest.mark.asyncio
    async def test_running_pod_mounts_claim(self, inspector, cluster_a):
        cluster_a.add_workload("apps", "db-0", "old-data", node="node-7")
        cluster_a.add_workload("apps", "db-1", "old-data", node="node-8", phase="Pending")

        info = await inspector.is_mounted(cluster_a, LOCATOR)

        assert info.mounted
        assert info.node_name == "node-7"
        assert info.pods == ["db-0", "db-1"]

    @pytest.mark.asyncio
    async def test_terminated_pods_ignored(self, inspector, cluster_a):
        cluster_a.add_workload("apps", "job-ok", "old-data", phase="Succeeded")
        cluster_a.add_workload("apps", "job-bad", "old-data", phase="Failed")

        info = await inspector.is_mounted(cluster_a, LOCATOR)

        assert not info.mounted

    @pytest.mark.asyncio
    async def test_terminating_pod_still_mounts_claim(self, inspector, cluster_a):
        cluster_a.add_workload("apps", "db-0", "old-data", node="node-3")
        cluster_a.workloads["apps"][0].metadata.deletion_timestamp = datetime.now(UTC)

        info = await inspector.is_mounted(cluster_a, LOCATOR)

        assert info == MountInfo(mounted=True, node_name="node-3", pods=["db-0"])

    @pytest.mark.asyncio
    async def test_other_namespace_ignored(self, inspector, cluster_a):
        cluster_a.add_workload("other", "db-0", "old-data")

        info = await inspector.is_mounted(cluster_a, LOCATOR)

        assert not info.mounted


class TestNodeConstraint:
    """Which node a claim must be attached on."""

    @pytest.mark.asyncio
    async def test_mount_node_wins(self, inspector, cluster_a):
        cluster_a.add_pvc("apps", "old-data", node="node-1")
        pvc = cluster_a.pvcs[("apps", "old-data")]

        node = await inspector.node_constraint(
            cluster_a, pvc, MountInfo(mounted=True, node_name="node-2", pods=["db-0"])
        )

        assert node == "node-2"

    @pytest.mark.asyncio
    async def test_pv_node_affinity(self, inspector, cluster_a):
        cluster_a.add_pvc("apps", "old-data", node="node-1")
        pvc = cluster_a.pvcs[("apps", "old-data")]

        assert await inspector.node_constraint(cluster_a, pvc, MountInfo(mounted=False)) == "node-1"

    @pytest.mark.asyncio
    async def test_unpinned_volume(self, inspector, cluster_a):
        cluster_a.add_pvc("apps", "old-data")
        pvc = cluster_a.pvcs[("apps", "old-data")]

        assert await inspector.node_constraint(cluster_a, pvc, MountInfo(mounted=False)) is None

    @pytest.mark.asyncio
    async def test_unbound_claim(self, inspector, cluster_a):
        pvc = make_pvc("old-data")

        assert await inspector.node_constraint(cluster_a, pvc, MountInfo(mounted=False)) is None

    @pytest.mark.asyncio
    async def test_multi_node_access_unconstrained(self, inspector, cluster_a):
        cluster_a.add_pvc("apps", "old-data", access_modes=("ReadWriteMany",), node="node-1")
        pvc = cluster_a.pvcs[("apps", "old-data")]

        node = await inspector.node_constraint(
            cluster_a, pvc, MountInfo(mounted=True, node_name="node-2", pods=["db-0"])
        )

        assert node is None


def test_supports_multi_node():
    assert supports_multi_node(make_pvc("a", ("ReadOnlyMany",)))
    assert supports_multi_node(make_pvc("a", ("ReadWriteOnce", "ReadWriteMany")))
    assert not supports_multi_node(make_pvc("a", ("ReadWriteOnce",)))


class TestMountSafetyReason:
    DEST = VolumeLocator(context="ctx-a", namespace="apps", name="new-data")

    def test_nothing_mounted(self):
        assert mount_safety_reason(LOCATOR, MountInfo(False), self.DEST, MountInfo(False)) is None

    def test_names_each_mounted_side(self):
        reason = mount_safety_reason(
            LOCATOR,
            MountInfo(True, "node-1", ["db-0"]),
            self.DEST,
            MountInfo(True, None, ["web-0", "web-1"]),
        )

        assert "source PVC ctx-a/apps/old-data is mounted by pod(s) db-0 on node node-1" in reason
        assert "destination PVC ctx-a/apps/new-data is mounted by pod(s) web-0, web-1" in reason
        assert reason.endswith("(use ignore-mounted to migrate anyway)")
