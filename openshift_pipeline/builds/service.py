"""Build service module.

This module provides the high-level build API:
- start_builds(): fetch build definitions, link them through their image
  streams, and schedule build-or-reuse for each in dependency order
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from openshift_pipeline.builds.dedup import BuildDeduplicator
from openshift_pipeline.builds.graph import link_build_configs
from openshift_pipeline.builds.scheduler import BuildScheduler, ScheduleResult
from openshift_pipeline.client.vcs import GitRepository
from openshift_pipeline.config import get_settings
from openshift_pipeline.resources.cache import ResourceCache
from openshift_pipeline.resources.identity import ResourceRef

if TYPE_CHECKING:
    from openshift_pipeline.client.client import OpenShiftClient
    from openshift_pipeline.config import Settings

logger = logging.getLogger(__name__)


async def start_builds(
    client: OpenShiftClient,
    refs: Sequence[ResourceRef | str],
    settings: Settings | None = None,
    workdir: Path | None = None,
    repository: GitRepository | None = None,
) -> ScheduleResult:
    """Build or reuse images for a set of build definitions.

    This is the main entry point for the build pipeline. It:
    1. Fetches the build definitions into a fresh session cache
    2. Links producers and consumers through shared image streams
    3. Drains the set, dispatching each definition once its producers
       have resolved

    Args:
        client: Cluster client.
        refs: Build definition references (``[namespace/]kind/name``).
        settings: Application settings.
        workdir: Working tree root; defaults to settings or the git top level.
        repository: Git checkout; defaults to one rooted at ``workdir``.

    Returns:
        ScheduleResult with identifiers in arrival order.

    Raises:
        ConfigurationError: If a ref or build definition is malformed.
        NotFoundError: If a build definition or image stream is missing.
    """
    if settings is None:
        settings = get_settings()

    if repository is None:
        repository = GitRepository(workdir or settings.workdir, settings.git_binary)
    if workdir is None:
        workdir = settings.workdir or await repository.toplevel()
        repository.cwd = workdir

    cache = ResourceCache(client.get, default_namespace=client.namespace or settings.namespace)
    entries = await cache.get_many(refs)
    await link_build_configs(cache, entries)

    deduplicator = BuildDeduplicator(client, cache, workdir, repository, settings)
    scheduler = BuildScheduler(
        deduplicator.start_build_if_needed,
        max_concurrent=settings.max_concurrent_builds,
    )
    logger.info("Starting builds for %d build definition(s)", len(entries))
    result = await scheduler.run(entries)
    logger.info(
        "Builds finished: %d dispatched, %d failed, %d stalled",
        len(result.outcomes),
        len(result.failed),
        len(result.stalled),
    )
    return result


__all__ = ["start_builds"]
