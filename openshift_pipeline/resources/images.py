"""Promotion of images between namespaces.

An image stream of the resource set receives the image a tag in another
namespace points at, under a new tag. The image is imported twice through
temporary tags: once from the source reference, once from the target
stream's own repository at the same digest, so that the final tag resolves
locally. The temporary tags are removed afterwards.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from openshift_pipeline.errors import NotFoundError
from openshift_pipeline.resources.identity import IMAGE_STREAM, IMAGE_STREAM_TAG, normalize_kind

if TYPE_CHECKING:
    from openshift_pipeline.client.client import OpenShiftClient

logger = logging.getLogger(__name__)


async def import_image_streams(
    client: OpenShiftClient,
    resources: list[dict[str, Any]],
    target_tag: str,
    source_namespace: str,
    source_tag: str,
) -> list[dict[str, Any]]:
    """Tag every image stream of a resource set with an image from elsewhere.

    Args:
        client: Cluster client.
        resources: Resource manifests; only image streams are considered.
        target_tag: Tag to create on each image stream.
        source_namespace: Namespace holding the source image streams.
        source_tag: Tag to promote from, on the stream of the same name.

    Returns:
        The same list.

    Raises:
        NotFoundError: If a source tag does not resolve to an image.
        ExecutionError: If an import or tag command fails.
    """
    for resource in resources:
        if normalize_kind(resource.get("kind") or "") != IMAGE_STREAM:
            continue
        name = resource["metadata"]["name"]
        namespace = resource["metadata"].get("namespace") or client.namespace

        source_tag_ref = f"{IMAGE_STREAM_TAG}/{name}:{source_tag}"
        source_image = (
            await client.get_jsonpath(
                [source_tag_ref],
                "{.image.dockerImageReference}",
                {"namespace": source_namespace},
            )
        ).strip()
        _, _, digest = source_image.partition("@")
        if not digest:
            raise NotFoundError([f"{source_namespace}/{source_tag_ref}"])

        logger.info(
            "Promoting %s/%s:%s to %s:%s", source_namespace, name, source_tag, name, target_tag
        )
        first_tag = f"{name}:temp1-{target_tag}"
        second_tag = f"{name}:temp2-{target_tag}"
        options = {"confirm": True, "insecure": True, "namespace": namespace}

        await client.raw("import-image", [first_tag], {"from": source_image, **options})
        repository = (
            await client.get_jsonpath(
                [f"{IMAGE_STREAM}/{name}"],
                "{.status.dockerImageRepository}",
                {"namespace": namespace},
            )
        ).strip()
        await client.raw(
            "import-image", [second_tag], {"from": f"{repository}@{digest}", **options}
        )

        await client.raw(
            "tag", [f"{name}@{digest}", f"{name}:{target_tag}"], {"namespace": namespace}
        )
        for temporary in (first_tag, second_tag):
            await client.raw("tag", [temporary], {"delete": True, "namespace": namespace})

    return resources


__all__ = ["import_image_streams"]
