"""OpenShift Pipeline - build and rollout orchestration for CI/CD.

This package schedules dependent image builds against an OpenShift
cluster, reuses images whose content hash was already built, and watches
deployment rollouts until they converge.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
