"""Cluster client collaborators.

This package handles:
- Composing oc command arguments from option mappings
- Executing oc and git as asyncio subprocesses
- Streaming watch output
"""

from openshift_pipeline.client.client import OpenShiftClient
from openshift_pipeline.client.runner import CommandResult, run_command
from openshift_pipeline.client.vcs import GitRepository
from openshift_pipeline.client.watch import WatchStream

__all__ = [
    "CommandResult",
    "GitRepository",
    "OpenShiftClient",
    "WatchStream",
    "run_command",
]
