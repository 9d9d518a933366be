"""Build-or-reuse decision for a single build definition.

This module provides start_build_if_needed(), which:
1. Computes the content hash over source revision, pinned input images,
   and template identity
2. Looks for an image on the output image stream whose recorded
   environment carries the same hash
3. Reuses that image if found, otherwise records the hash on the build
   definition and triggers a new build

The result is recorded on the build definition's cache entry, which is
what unblocks its dependents in the scheduler.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from openshift_pipeline.builds.archive import archive_path_for, pack_context, remove_archive
from openshift_pipeline.builds.build_hash import (
    BuildHashInputs,
    compute_build_hash,
    hash_directory,
    hash_object,
)
from openshift_pipeline.builds.definition import (
    IMAGE_STREAM_IMAGE_KIND,
    IMAGE_STREAM_TAG_KIND,
    context_dir,
    get_input_images,
    get_output_tag,
    get_strategy,
    source_type,
)
from openshift_pipeline.config import Settings, get_settings
from openshift_pipeline.errors import NotFoundError, PipelineError
from openshift_pipeline.resources.identity import (
    BUILD,
    IMAGE_STREAM,
    IMAGE_STREAM_IMAGE,
    IMAGE_STREAM_TAG,
    ResourceRef,
)
from openshift_pipeline.types import DispatchOutcome, SourceType

if TYPE_CHECKING:
    from openshift_pipeline.client.client import OpenShiftClient
    from openshift_pipeline.client.vcs import GitRepository
    from openshift_pipeline.resources.cache import CacheEntry, ResourceCache

logger = logging.getLogger(__name__)

BUILD_NAME_ENV = "OPENSHIFT_BUILD_NAME"
BUILD_NAMESPACE_ENV = "OPENSHIFT_BUILD_NAMESPACE"


def image_env(image: dict[str, Any]) -> dict[str, str]:
    """Parse the environment recorded in an image-stream image's metadata."""
    config = ((image.get("image") or {}).get("dockerImageMetadata") or {}).get("Config") or {}
    env: dict[str, str] = {}
    for line in config.get("Env") or []:
        key, sep, value = line.partition("=")
        if sep:
            env[key] = value
    return env


def shape_hash(build_config: dict[str, Any], build_hash_env: str) -> str:
    """Hash a build definition's spec without its input images or stored hash.

    Input images are hashed separately by digest, and the stored hash
    changes with every build, so both are left out of the shape.
    """
    spec_copy = {"spec": copy.deepcopy(build_config.get("spec") or {})}
    strategy = get_strategy(spec_copy)
    strategy.pop("from", None)
    if strategy.get("env"):
        strategy["env"] = [e for e in strategy["env"] if e.get("name") != build_hash_env]
    source = spec_copy["spec"].get("source") or {}
    for source_image in source.get("images") or []:
        source_image.pop("from", None)
    return hash_object(spec_copy["spec"])


class BuildDeduplicator:
    """Triggers builds only when no image with the same content exists.

    Args:
        client: Cluster client.
        cache: Session cache the results are recorded in.
        workdir: Working tree root holding build sources.
        repository: Git checkout used for source revisions.
        settings: Application settings.
    """

    def __init__(
        self,
        client: OpenShiftClient,
        cache: ResourceCache,
        workdir: Path,
        repository: GitRepository,
        settings: Settings | None = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.workdir = workdir
        self.repository = repository
        self.settings = settings if settings is not None else get_settings()

    def template_hash(self, build_config: dict[str, Any]) -> str:
        """Return the template identity of a build definition.

        Uses the template hash label when the definition carries one,
        otherwise the hash of its shape.
        """
        labels = (build_config.get("metadata") or {}).get("labels") or {}
        label = labels.get(self.settings.template_hash_label)
        if label:
            return label
        return shape_hash(build_config, self.settings.build_hash_env)

    async def source_revision(self, build_config: dict[str, Any]) -> str:
        """Return the source token of a build definition.

        Binary sources hash the local context directory and inline
        Dockerfile sources hash the Dockerfile text. Git and other sources
        use the git object id of the context directory at HEAD.
        """
        ctx = context_dir(build_config)
        kind = source_type(build_config)
        if kind == SourceType.BINARY.value:
            directory = self.workdir / ctx if ctx else self.workdir
            return await asyncio.to_thread(hash_directory, directory)
        if kind == SourceType.DOCKERFILE.value:
            source = (build_config.get("spec") or {}).get("source") or {}
            return hash_object(source.get("dockerfile") or "")
        if kind != SourceType.GIT.value:
            name = (build_config.get("metadata") or {}).get("name")
            logger.debug("Source type %s of %s treated as git", kind, name)
        return await self.repository.revision(ctx)

    async def pin_input_images(self, entry: CacheEntry) -> list[str]:
        """Resolve image-stream tag inputs to their current image.

        Each image-stream tag reference is rewritten in place on the build
        definition to the image-stream image it points at. Other references
        are kept as they are.

        Returns:
            ``namespace/kind/name`` of every input, in declaration order.

        Raises:
            NotFoundError: If a tag does not point at any image.
        """
        pinned: list[str] = []
        for image in get_input_images(entry.object):
            namespace = image.get("namespace") or entry.ref.namespace
            if image.get("kind") == IMAGE_STREAM_TAG_KIND:
                image_name = await self.client.image_digest(namespace, image["name"])
                if not image_name:
                    raise NotFoundError([f"{namespace}/{IMAGE_STREAM_TAG}/{image['name']}"])
                stream_image = f"{image['name'].split(':')[0]}@{image_name}"
                logger.info(
                    "Rewriting reference from '%s/%s' to '%s/%s'",
                    IMAGE_STREAM_TAG_KIND,
                    image["name"],
                    IMAGE_STREAM_IMAGE_KIND,
                    stream_image,
                )
                image["kind"] = IMAGE_STREAM_IMAGE_KIND
                image["name"] = stream_image
            pinned.append(f"{namespace}/{image.get('kind')}/{image['name']}")
        return pinned

    async def find_existing_image(
        self,
        namespace: str,
        stream_name: str,
        build_hash: str,
    ) -> tuple[CacheEntry, list[str]] | None:
        """Look for an image on a stream that was built with ``build_hash``.

        Tags are inspected in the order the stream reports them, each tag's
        history newest first.

        Returns:
            The image entry and its originating build identifier(s), or None.
        """
        streams = await self.client.get(namespace, [f"{IMAGE_STREAM}/{stream_name}"])
        if not streams:
            return None
        tags = (streams[0].get("status") or {}).get("tags") or []

        for tag in tags:
            names = [
                f"{IMAGE_STREAM_IMAGE}/{stream_name}@{item['image']}"
                for item in tag.get("items") or []
                if item.get("image")
            ]
            if not names:
                continue
            for image in await self.client.get(namespace, names):
                env = image_env(image)
                if env.get(self.settings.build_hash_env) != build_hash:
                    continue
                image.setdefault("metadata", {}).setdefault("namespace", namespace)
                image_entry = self.cache.put([image])[0]
                build_ids: list[str] = []
                build_name = env.get(BUILD_NAME_ENV)
                if build_name:
                    build_namespace = env.get(BUILD_NAMESPACE_ENV) or namespace
                    build_ids.append(ResourceRef(build_namespace, BUILD, build_name).key)
                return image_entry, build_ids
        return None

    async def start_build_if_needed(self, entry: CacheEntry) -> DispatchOutcome:
        """Reuse an identical image or trigger a build for a build definition.

        Args:
            entry: Build definition entry; its image references are pinned
                in place and its result is recorded on it.

        Returns:
            DispatchOutcome describing the reuse or the triggered build.

        Raises:
            ConfigurationError: If the output is not an image-stream tag.
            ArchiveError: If packing a binary context fails.
            ExecutionError: If an oc or git command fails.
            NotFoundError: If an input tag or the resulting build is missing.
        """
        build_config = entry.object
        output_to = get_output_tag(build_config, entry.key)
        output_namespace = output_to.get("namespace") or entry.ref.namespace
        stream_name = output_to["name"].split(":")[0]

        definition_hash = hash_object(build_config)
        template_hash = self.template_hash(build_config)
        source_revision = await self.source_revision(build_config)
        input_images = await self.pin_input_images(entry)

        inputs = BuildHashInputs(
            source_revision=source_revision,
            input_image_digests=input_images,
            template_hash=template_hash,
        )
        build_hash = compute_build_hash(inputs)
        logger.debug("%s > hash inputs: %s", entry.key, inputs.to_dict())
        logger.info("Computed build hash for %s: %s", entry.key, build_hash[:23])

        existing = await self.find_existing_image(output_namespace, stream_name, build_hash)
        if existing is not None:
            image_entry, build_ids = existing
            entry.record_image(image_entry)
            logger.info("Reusing %s for %s", image_entry.key, entry.key)
            return DispatchOutcome(
                entry_key=entry.key,
                reused=True,
                identifiers=build_ids or [image_entry.key],
                image=image_entry.key,
                build_hash=build_hash,
            )

        return await self._trigger_build(
            entry, build_hash, definition_hash, output_namespace, stream_name
        )

    async def _trigger_build(
        self,
        entry: CacheEntry,
        build_hash: str,
        definition_hash: str,
        output_namespace: str,
        stream_name: str,
    ) -> DispatchOutcome:
        build_config = entry.object
        await self.client.set_env(entry.ref, {self.settings.build_hash_env: build_hash})

        wait = self.settings.wait_for_builds
        if not wait and entry.dependents:
            # dependents pin the output tag once this entry is resolved
            logger.info(
                "Waiting for %s regardless of settings: %s consume its output",
                entry.key,
                ", ".join(d.key for d in entry.dependents),
            )
            wait = True
        options: dict[str, Any] = {"wait": wait}
        archive: Path | None = None
        if source_type(build_config) == SourceType.BINARY.value:
            archive = archive_path_for(self.settings.tmp_dir, definition_hash)
            await asyncio.to_thread(pack_context, self.workdir, context_dir(build_config), archive)
            options["from-archive"] = str(archive)

        try:
            build_ids = await self.client.start_build(entry.ref, options)
        finally:
            if archive is not None:
                remove_archive(archive)

        if not build_ids:
            raise PipelineError(f"No build started for {entry.key}", code="build_not_started")

        build_entries = await self.cache.get_many(build_ids)
        entry.record_build(build_entries[0])

        digest = (
            ((build_entries[0].object.get("status") or {}).get("output") or {}).get("to") or {}
        ).get("imageDigest")
        image = (
            f"{output_namespace}/{IMAGE_STREAM_IMAGE}/{stream_name}@{digest}" if digest else None
        )
        logger.info("Triggered %s for %s", ", ".join(b.key for b in build_entries), entry.key)
        return DispatchOutcome(
            entry_key=entry.key,
            reused=False,
            identifiers=[b.key for b in build_entries],
            image=image,
            build_hash=build_hash,
        )


__all__ = ["BUILD_NAME_ENV", "BUILD_NAMESPACE_ENV", "BuildDeduplicator", "image_env", "shape_hash"]
