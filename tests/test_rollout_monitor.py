"""Tests for rollout/monitor.py module."""

import asyncio

import pytest
from fakes import deployment_config

from openshift_pipeline.config import Settings
from openshift_pipeline.errors import ExecutionError
from openshift_pipeline.rollout.monitor import RolloutMonitor, is_converged, snapshot
from openshift_pipeline.types import RolloutTarget

BEFORE = "web\t1\t4\nworker\t1\t2\n"
AFTER = "web\t1\t5\nworker\t1\t2\n"


@pytest.fixture
def resources() -> list[dict]:
    """Resource set with one deployment and one service."""
    return [
        {"kind": "DeploymentConfig", "metadata": {"name": "web"}},
        {"kind": "Service", "metadata": {"name": "web"}},
    ]


class TestIsConverged:
    """Tests for is_converged function."""

    def test_converged(self):
        """All replicas ready and available means converged."""
        assert is_converged(deployment_config("web", replicas=2))

    def test_replicas_pending(self):
        """Not every replica ready means not converged."""
        assert not is_converged(deployment_config("web", replicas=2, ready=1))

    def test_not_available(self):
        """An Available condition that is not True means not converged."""
        assert not is_converged(deployment_config("web", available=False))

    def test_no_status(self):
        """A deployment without status has not converged."""
        assert not is_converged({"spec": {"replicas": 1}})

    def test_scaled_to_zero(self):
        """Zero desired replicas converge once available with none running."""
        dc = deployment_config("web", replicas=0)
        for key in ("replicas", "readyReplicas", "availableReplicas"):
            dc["status"].pop(key)
        assert is_converged(dc)


class TestSnapshot:
    """Tests for snapshot function."""

    async def test_parses_output(self, cluster):
        """Should project deployments to sorted targets."""
        cluster.snapshots = [BEFORE]
        assert await snapshot(cluster, "app=shop") == [
            RolloutTarget("web", 1, 4),
            RolloutTarget("worker", 1, 2),
        ]


class TestApplyAndWait:
    """Tests for RolloutMonitor.apply_and_wait."""

    async def test_unchanged_opens_no_watch(self, cluster, settings, resources):
        """Identical snapshots mean nothing rolled out."""
        cluster.snapshots = [BEFORE, BEFORE]
        report = await RolloutMonitor(cluster, settings=settings).apply_and_wait(
            resources, "shop"
        )

        assert report.changed is False
        assert report.converged is True
        assert cluster.watches == []
        assert cluster.applied == resources

    async def test_waits_for_convergence(self, cluster, settings, resources):
        """Should follow the watch until the deployment converges."""
        cluster.add(deployment_config("web", ready=0))
        cluster.snapshots = [BEFORE, AFTER]
        cluster.watch_events = [
            "web\t1\t0\t1\t5\n",
            lambda: cluster.add(deployment_config("web")),
            "web\t1\t",
            "1\t0\t5\n",
            "worker\t1\t1\t0\t2\n",
        ]

        report = await RolloutMonitor(cluster, settings=settings).apply_and_wait(
            resources, "shop"
        )

        assert report.changed is True
        assert report.converged is True
        assert report.pending == []
        assert report.before != report.after
        stream = cluster.watches[0]
        assert stream.terminated
        assert stream.consumed == 4

    async def test_watch_ends_early(self, cluster, settings, resources):
        """A watch ending before convergence reports the pending targets."""
        cluster.add(deployment_config("web", ready=0))
        cluster.snapshots = [BEFORE, AFTER]
        cluster.watch_events = ["web\t1\t0\t1\t5\n"]

        report = await RolloutMonitor(cluster, settings=settings).apply_and_wait(
            resources, "shop"
        )

        assert report.converged is False
        assert report.pending == ["web"]
        assert cluster.watches[0].terminated

    async def test_failed_watch_raises(self, cluster, settings, resources):
        """A failing watch command surfaces instead of a pending report."""
        cluster.add(deployment_config("web", ready=0))
        cluster.snapshots = [BEFORE, AFTER]

        def _watch_fails():
            raise ExecutionError(["oc", "get", "--watch=true"], 1, stderr="error: forbidden")

        cluster.watch_events = ["web\t1\t0\t1\t5\n", _watch_fails]

        with pytest.raises(ExecutionError, match="forbidden"):
            await RolloutMonitor(cluster, settings=settings).apply_and_wait(resources, "shop")
        assert cluster.watches[0].terminated

    async def test_timeout(self, cluster, resources, tmp_path):
        """The optional timeout stops waiting and reports pending targets."""
        settings = Settings(rollout_timeout=0.05, tmp_dir=tmp_path, _env_file=None)
        cluster.add(deployment_config("web", ready=0))
        cluster.snapshots = [BEFORE, AFTER]

        async def _never_converges(pending, selector):
            await asyncio.sleep(10)

        monitor = RolloutMonitor(cluster, settings=settings)
        monitor.wait_for_rollout = _never_converges
        report = await monitor.apply_and_wait(resources, "shop")

        assert report.changed is True
        assert report.converged is False
        assert report.pending == ["web"]

    async def test_no_deployments_in_set(self, cluster, settings):
        """A change without deployments in the set needs no watch."""
        cluster.snapshots = [BEFORE, AFTER]
        report = await RolloutMonitor(cluster, settings=settings).apply_and_wait(
            [{"kind": "Service", "metadata": {"name": "web"}}], "shop"
        )
        assert report.converged is True
        assert cluster.watches == []

    def test_selector_uses_app_label(self, cluster, settings):
        """Deployments are selected by the configured label."""
        assert RolloutMonitor(cluster, settings=settings).selector("shop") == "app=shop"
