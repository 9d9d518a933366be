"""Memoizing store of cluster objects for one scheduling session.

This module handles:
- Canonical keying of fetched objects
- Batched fetching of missing objects, one request per namespace
- Sharing a single in-flight fetch between concurrent requesters of a key
- The mutable CacheEntry records the scheduler resolves in place

Entries are never replaced once created. Dependency edges hold the very
entry objects stored here, so resolving an entry is visible to every holder.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from openshift_pipeline.errors import NotFoundError, PipelineError
from openshift_pipeline.resources.identity import ResourceRef, parse_ref, ref_of
from openshift_pipeline.types import DispatchState

logger = logging.getLogger(__name__)

# (namespace, ["kind/name", ...]) -> objects found
Fetcher = Callable[[str, list[str]], Awaitable[list[dict[str, Any]]]]


@dataclass(eq=False)
class CacheEntry:
    """A fetched cluster object plus scheduling metadata.

    Attributes:
        ref: Canonical identity.
        object: The cluster object as returned by the API.
        dependencies: Image-stream entries this build definition consumes.
        dependents: Build definitions in this session consuming the output
            of this one.
        build_config_entry: On image-stream entries, the build definition
            producing into the stream within this session.
        build_entry: Build triggered for this build definition.
        image_stream_image_entry: Existing image reused for this build
            definition.
        state: Scheduling state.
        error: Failure raised while dispatching, if any.
    """

    ref: ResourceRef
    object: dict[str, Any]
    dependencies: list[CacheEntry] = field(default_factory=list)
    dependents: list[CacheEntry] = field(default_factory=list)
    build_config_entry: CacheEntry | None = None
    build_entry: CacheEntry | None = None
    image_stream_image_entry: CacheEntry | None = None
    state: DispatchState = DispatchState.PENDING
    error: BaseException | None = None

    @property
    def key(self) -> str:
        """Canonical key of this entry."""
        return self.ref.key

    @property
    def resolved(self) -> bool:
        """True once a build or a reused image has been recorded."""
        return self.build_entry is not None or self.image_stream_image_entry is not None

    def record_build(self, build_entry: CacheEntry) -> None:
        """Record the build triggered for this entry.

        Raises:
            PipelineError: If a build was already recorded.
        """
        if self.build_entry is not None and self.build_entry is not build_entry:
            raise PipelineError(
                f"Build already recorded for {self.key}: {self.build_entry.key}",
                code="build_already_recorded",
            )
        self.build_entry = build_entry

    def record_image(self, image_entry: CacheEntry) -> None:
        """Record the existing image reused for this entry.

        Raises:
            PipelineError: If a different image was already recorded.
        """
        if (
            self.image_stream_image_entry is not None
            and self.image_stream_image_entry is not image_entry
        ):
            raise PipelineError(
                f"Image already recorded for {self.key}: "
                f"{self.image_stream_image_entry.key}",
                code="image_already_recorded",
            )
        self.image_stream_image_entry = image_entry

    def __repr__(self) -> str:
        return f"CacheEntry({self.key!r}, state={self.state.value})"


class ResourceCache:
    """Identity-keyed store of cache entries.

    Args:
        fetcher: Coroutine fetching objects of one namespace by ``kind/name``.
        default_namespace: Namespace applied to refs that carry none.
    """

    def __init__(self, fetcher: Fetcher, default_namespace: str | None = None) -> None:
        self._fetcher = fetcher
        self.default_namespace = default_namespace
        self._entries: dict[str, CacheEntry] = {}
        self._in_flight: dict[str, asyncio.Task[None]] = {}

    def __contains__(self, ref: object) -> bool:
        if isinstance(ref, ResourceRef):
            return ref.key in self._entries
        if isinstance(ref, str):
            return self.resolve_ref(ref).key in self._entries
        return False

    def __len__(self) -> int:
        return len(self._entries)

    def resolve_ref(self, ref: ResourceRef | str) -> ResourceRef:
        """Parse a reference string, applying the default namespace."""
        if isinstance(ref, ResourceRef):
            return ref
        return parse_ref(ref, self.default_namespace)

    def get(self, ref: ResourceRef | str) -> CacheEntry | None:
        """Return the cached entry for ``ref`` without fetching."""
        return self._entries.get(self.resolve_ref(ref).key)

    def put(self, objects: Iterable[dict[str, Any]]) -> list[CacheEntry]:
        """Insert or overwrite entries keyed by each object's own identity.

        An existing entry keeps its identity; only its object is replaced.

        Args:
            objects: Cluster objects.

        Returns:
            Entries in input order.
        """
        entries: list[CacheEntry] = []
        for obj in objects:
            ref = ref_of(obj, self.default_namespace)
            entry = self._entries.get(ref.key)
            if entry is None:
                entry = CacheEntry(ref=ref, object=obj)
                self._entries[ref.key] = entry
            else:
                entry.object = obj
            entries.append(entry)
        return entries

    async def get_many(self, refs: Sequence[ResourceRef | str]) -> list[CacheEntry]:
        """Return entries for ``refs``, fetching the ones not yet cached.

        Missing refs are grouped by namespace and fetched with one request
        per namespace. A key already being fetched by another caller is
        awaited rather than requested again.

        Args:
            refs: References or reference strings.

        Returns:
            Entries in input order.

        Raises:
            ConfigurationError: If a reference string is malformed.
            NotFoundError: If any ref is still absent after fetching.
        """
        parsed = [self.resolve_ref(ref) for ref in refs]

        missing: dict[str, list[ResourceRef]] = {}
        for ref in parsed:
            if ref.key in self._entries or ref.key in self._in_flight:
                continue
            group = missing.setdefault(ref.namespace, [])
            if ref not in group:
                group.append(ref)

        for namespace, group in missing.items():
            task = asyncio.ensure_future(self._fetch(namespace, group))
            for ref in group:
                self._in_flight[ref.key] = task

        waits = {self._in_flight[ref.key] for ref in parsed if ref.key in self._in_flight}
        if waits:
            await asyncio.gather(*waits)

        entries: list[CacheEntry] = []
        absent: list[str] = []
        for ref in parsed:
            entry = self._entries.get(ref.key)
            if entry is None:
                absent.append(ref.key)
            else:
                entries.append(entry)
        if absent:
            raise NotFoundError(absent)
        return entries

    async def _fetch(self, namespace: str, refs: list[ResourceRef]) -> None:
        names = [ref.name_ref for ref in refs]
        logger.debug("Fetching %d object(s) from namespace %s", len(names), namespace)
        try:
            objects = await self._fetcher(namespace, names)
            self.put(objects)
        finally:
            for ref in refs:
                self._in_flight.pop(ref.key, None)


__all__ = ["CacheEntry", "Fetcher", "ResourceCache"]
