"""Apply a desired-state resource set and wait for its rollout.

This module provides:
- snapshot(): project an application's deployments to
  (name, desired replicas, latest revision)
- is_converged(): the per-deployment convergence predicate
- RolloutMonitor.apply_and_wait(): apply, diff snapshots, and stream
  status until every changed deployment converges

When the before and after snapshots are identical nothing rolled out and
no watch is opened. Without a configured timeout the monitor waits as long
as the watch runs.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from openshift_pipeline.config import get_settings
from openshift_pipeline.resources.identity import DEPLOYMENT_CONFIG
from openshift_pipeline.rollout.stream import (
    SNAPSHOT_TEMPLATE,
    WATCH_TEMPLATE,
    LineBuffer,
    parse_snapshot,
    parse_status_line,
)
from openshift_pipeline.types import RolloutReport, RolloutTarget

if TYPE_CHECKING:
    from openshift_pipeline.client.client import OpenShiftClient
    from openshift_pipeline.config import Settings

logger = logging.getLogger(__name__)

DEPLOYMENT_CONFIG_KIND = "DeploymentConfig"


def is_converged(deployment: dict[str, Any]) -> bool:
    """Check whether a deployment reached its desired state.

    Requires an ``Available`` condition with status ``True``, desired,
    current, ready, and available replica counts all equal, and no
    unavailable replicas. Counts the API omits are zero.
    """
    spec = deployment.get("spec") or {}
    status = deployment.get("status") or {}

    available = any(
        condition.get("type") == "Available" and condition.get("status") == "True"
        for condition in status.get("conditions") or []
    )
    if not available:
        return False

    desired = spec.get("replicas", 1)
    return (
        desired == status.get("replicas", 0)
        and desired == status.get("readyReplicas", 0)
        and desired == status.get("availableReplicas", 0)
        and status.get("unavailableReplicas", 0) == 0
    )


async def snapshot(
    client: OpenShiftClient,
    selector: str,
    namespace: str | None = None,
) -> list[RolloutTarget]:
    """Capture (name, desired replicas, latest revision) per deployment.

    Args:
        client: Cluster client.
        selector: Label selector, e.g. ``app=myapp``.
        namespace: Namespace, or None for the client default.

    Returns:
        Targets sorted by name.
    """
    output = await client.get_jsonpath(
        [DEPLOYMENT_CONFIG],
        SNAPSHOT_TEMPLATE,
        {"selector": selector, "namespace": namespace},
    )
    return parse_snapshot(output)


class RolloutMonitor:
    """Applies resource sets and follows the resulting rollouts.

    Args:
        client: Cluster client.
        namespace: Namespace of the application; defaults to the client's.
        settings: Application settings.
    """

    def __init__(
        self,
        client: OpenShiftClient,
        namespace: str | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.client = client
        self.settings = settings if settings is not None else get_settings()
        self.namespace = namespace or client.namespace or self.settings.namespace

    def selector(self, app_name: str) -> str:
        """Return the label selector of an application's deployments."""
        return f"{self.settings.app_label}={app_name}"

    async def apply_and_wait(
        self,
        resources: Sequence[dict[str, Any]],
        app_name: str,
    ) -> RolloutReport:
        """Apply resources and wait until changed deployments converge.

        Args:
            resources: Desired-state resource manifests.
            app_name: Application whose deployments are monitored.

        Returns:
            RolloutReport; ``pending`` lists deployments that had not
            converged when monitoring stopped.

        Raises:
            ExecutionError: If applying, querying, or watching fails.
        """
        selector = self.selector(app_name)
        before = await snapshot(self.client, selector, self.namespace)
        await self.client.apply(list(resources), {"namespace": self.namespace})
        after = await snapshot(self.client, selector, self.namespace)

        if before == after:
            logger.info("No deployment of %s changed; nothing to roll out", app_name)
            return RolloutReport(changed=False, converged=True, before=before, after=after)

        pending = {
            resource["metadata"]["name"]
            for resource in resources
            if resource.get("kind") == DEPLOYMENT_CONFIG_KIND
        }
        if not pending:
            return RolloutReport(changed=True, converged=True, before=before, after=after)

        logger.info("Waiting for rollout of %s", ", ".join(sorted(pending)))
        timeout = self.settings.rollout_timeout
        try:
            if timeout is None:
                await self.wait_for_rollout(pending, selector)
            else:
                await asyncio.wait_for(self.wait_for_rollout(pending, selector), timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Rollout of %s did not converge within %ss", ", ".join(sorted(pending)), timeout
            )

        return RolloutReport(
            changed=True,
            converged=not pending,
            pending=sorted(pending),
            before=before,
            after=after,
        )

    async def wait_for_rollout(self, pending: set[str], selector: str) -> None:
        """Stream deployment status until ``pending`` is empty.

        Converged deployments are removed from ``pending`` as they are seen.
        The watch is terminated once nothing is pending, or when it ends on
        its own.

        Args:
            pending: Names of deployments to wait for; mutated in place.
            selector: Label selector of the watched deployments.

        Raises:
            ExecutionError: If the watch command exits with an error.
        """
        stream = await self.client.watch(
            [DEPLOYMENT_CONFIG],
            {
                "selector": selector,
                "namespace": self.namespace,
                "output": f"jsonpath={WATCH_TEMPLATE}",
            },
        )
        buffer = LineBuffer()
        async with stream:
            async for chunk in stream:
                for line in buffer.feed(chunk):
                    status = parse_status_line(line)
                    if status is None or status.name not in pending:
                        continue
                    logger.debug("Status of %s: %s", status.name, status)
                    deployments = await self.client.get(
                        self.namespace, [f"{DEPLOYMENT_CONFIG}/{status.name}"]
                    )
                    if deployments and is_converged(deployments[0]):
                        pending.discard(status.name)
                        logger.info("Deployment %s rolled out", status.name)
                if not pending:
                    break

        if pending:
            logger.warning("Watch ended with %s still rolling out", ", ".join(sorted(pending)))


__all__ = ["DEPLOYMENT_CONFIG_KIND", "RolloutMonitor", "is_converged", "snapshot"]
