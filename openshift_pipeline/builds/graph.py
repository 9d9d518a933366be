"""Producer/consumer linking between build definitions.

Build definitions are connected through the image streams they write and
read. Each output image stream gets a back-reference to the build
definition producing into it; each build definition lists the image
streams it consumes as its dependencies. A dependency whose stream has no
producer in the batch is already satisfied.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from openshift_pipeline.builds.definition import (
    IMAGE_STREAM_TAG_KIND,
    get_input_images,
    get_output_tag,
    image_stream_of,
)
from openshift_pipeline.resources.cache import CacheEntry, ResourceCache

logger = logging.getLogger(__name__)


async def _resolve_streams(
    cache: ResourceCache, entry: CacheEntry
) -> tuple[CacheEntry, list[CacheEntry]]:
    build_config = entry.object
    namespace = entry.ref.namespace
    output_ref = image_stream_of(get_output_tag(build_config, entry.key), namespace)

    input_refs = [
        image_stream_of(image, namespace)
        for image in get_input_images(build_config)
        if image.get("kind") == IMAGE_STREAM_TAG_KIND
    ]
    streams = await cache.get_many([output_ref, *input_refs])
    return streams[0], streams[1:]


async def link_build_configs(cache: ResourceCache, entries: Sequence[CacheEntry]) -> None:
    """Link build definition entries through their image streams.

    Stream lookups for all entries run concurrently. Back-references are
    assigned in input order afterwards, so when two build definitions write
    the same stream the later one wins. Each producer then lists the
    entries consuming its stream as dependents.

    Args:
        cache: Session cache holding ``entries``.
        entries: Build definition entries, mutated in place.

    Raises:
        ConfigurationError: If an output is not an image-stream tag.
        NotFoundError: If a referenced image stream does not exist.
    """
    resolved = await asyncio.gather(*(_resolve_streams(cache, entry) for entry in entries))

    for entry, (output_stream, dependencies) in zip(entries, resolved, strict=True):
        previous = output_stream.build_config_entry
        if previous is not None and previous is not entry:
            logger.warning(
                "%s and %s both produce %s; using %s",
                previous.key,
                entry.key,
                output_stream.key,
                entry.key,
            )
        output_stream.build_config_entry = entry
        entry.dependencies = list(dependencies)
        logger.debug(
            "%s produces %s and consumes %s",
            entry.key,
            output_stream.key,
            [dep.key for dep in dependencies] or "nothing tracked",
        )

    for entry in entries:
        for stream in entry.dependencies:
            producer = stream.build_config_entry
            if producer is not None and producer is not entry and entry not in producer.dependents:
                producer.dependents.append(entry)


__all__ = ["link_build_configs"]
