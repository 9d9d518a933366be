"""Rollout monitoring module.

This module handles:
- Snapshotting an application's deployments before and after apply
- Parsing chunked watch output into status records
- Waiting for changed deployments to converge
"""

from openshift_pipeline.rollout.monitor import RolloutMonitor, is_converged, snapshot

__all__ = ["RolloutMonitor", "is_converged", "snapshot"]
