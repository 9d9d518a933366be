"""Build orchestration module.

This module handles:
- Linking build definitions through the image streams they read and write
- Content hashing of build inputs
- Reusing existing images or triggering builds
- Dependency-ordered, concurrent dispatch

Submodules are imported directly, e.g. openshift_pipeline.builds.scheduler.
"""

from openshift_pipeline.builds.scheduler import BuildScheduler, ScheduleResult

__all__ = ["BuildScheduler", "ScheduleResult"]
