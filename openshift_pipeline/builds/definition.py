"""Accessors for build definition (BuildConfig) objects."""

from __future__ import annotations

from typing import Any

from openshift_pipeline.errors import ConfigurationError
from openshift_pipeline.resources.identity import IMAGE_STREAM, ResourceRef
from openshift_pipeline.types import ImageReference

IMAGE_STREAM_TAG_KIND = "ImageStreamTag"
IMAGE_STREAM_IMAGE_KIND = "ImageStreamImage"

STRATEGY_FIELDS = ("sourceStrategy", "dockerStrategy", "customStrategy")


def get_strategy(build_config: dict[str, Any]) -> dict[str, Any]:
    """Return the build strategy block, whichever type it is."""
    strategy = (build_config.get("spec") or {}).get("strategy") or {}
    for name in STRATEGY_FIELDS:
        if strategy.get(name):
            return strategy[name]
    return {}


def get_input_images(build_config: dict[str, Any]) -> list[ImageReference]:
    """Return every input image reference of a build definition.

    The strategy's base image comes first, then each source image. The
    returned dicts are the ones inside ``build_config``, so rewriting them
    rewrites the build definition.
    """
    result: list[ImageReference] = []
    base = get_strategy(build_config).get("from")
    if base:
        result.append(base)
    source = (build_config.get("spec") or {}).get("source") or {}
    for source_image in source.get("images") or []:
        image_from = source_image.get("from")
        if image_from:
            result.append(image_from)
    return result


def get_output_tag(build_config: dict[str, Any], build_config_name: str) -> ImageReference:
    """Return the output reference, which must be an image-stream tag.

    Raises:
        ConfigurationError: If the output is missing or not an image-stream tag.
    """
    output_to = ((build_config.get("spec") or {}).get("output") or {}).get("to")
    if not output_to:
        raise ConfigurationError(f"{build_config_name}.spec.output.to is not set")
    if output_to.get("kind") != IMAGE_STREAM_TAG_KIND:
        raise ConfigurationError(
            f"Expected '{IMAGE_STREAM_TAG_KIND}' but found '{output_to.get('kind')}' "
            f"in {build_config_name}.spec.output.to"
        )
    return output_to


def image_stream_of(image: ImageReference, default_namespace: str) -> ResourceRef:
    """Return the image stream owning an image-stream tag or image reference."""
    name = image["name"]
    stream_name = name.split("@")[0].split(":")[0]
    return ResourceRef(
        namespace=image.get("namespace") or default_namespace,
        kind=IMAGE_STREAM,
        name=stream_name,
    )


def source_type(build_config: dict[str, Any]) -> str | None:
    """Return ``spec.source.type``."""
    return ((build_config.get("spec") or {}).get("source") or {}).get("type")


def context_dir(build_config: dict[str, Any]) -> str | None:
    """Return ``spec.source.contextDir``."""
    return ((build_config.get("spec") or {}).get("source") or {}).get("contextDir")


__all__ = [
    "IMAGE_STREAM_IMAGE_KIND",
    "IMAGE_STREAM_TAG_KIND",
    "context_dir",
    "get_input_images",
    "get_output_tag",
    "get_strategy",
    "image_stream_of",
    "source_type",
]
