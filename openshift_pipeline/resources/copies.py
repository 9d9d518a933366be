"""Populate secrets, config maps, and routes from existing cluster objects.

Annotations drive the copy:

- ``as-copy-of``: a Secret or ConfigMap takes its ``data`` from the named
  object of the same kind.
- ``as-copy-of/preserve``: a Secret keeps that data field from its own
  current version in the cluster, if one exists.
- ``tls/secretName``: a Route merges the named secret's decoded data into
  ``spec.tls``.
"""

from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING, Any

from openshift_pipeline.errors import NotFoundError
from openshift_pipeline.resources.labels import get_annotation

if TYPE_CHECKING:
    from openshift_pipeline.client.client import OpenShiftClient

logger = logging.getLogger(__name__)

COPY_OF_ANNOTATION = "as-copy-of"
PRESERVE_ANNOTATION = "as-copy-of/preserve"
TLS_SECRET_ANNOTATION = "tls/secretName"


async def _get_one(
    client: OpenShiftClient, namespace: str, name: str
) -> dict[str, Any] | None:
    objects = await client.get(namespace, [name])
    return objects[0] if objects else None


async def copy_secrets_and_config_maps(
    client: OpenShiftClient,
    resources: list[dict[str, Any]],
    namespace: str,
) -> list[dict[str, Any]]:
    """Fill annotated resources from the objects they reference.

    Args:
        client: Cluster client.
        resources: Resource manifests, modified in place.
        namespace: Namespace the referenced objects live in.

    Returns:
        The same list.

    Raises:
        NotFoundError: If a referenced source object does not exist.
    """
    for resource in resources:
        kind = resource.get("kind")
        if kind in ("Secret", "ConfigMap"):
            source_name = get_annotation(resource, COPY_OF_ANNOTATION)
            if source_name is None:
                continue
            source = await _get_one(client, namespace, f"{kind}/{source_name}")
            if source is None:
                raise NotFoundError([f"{namespace}/{kind}/{source_name}"])
            logger.debug("Copying %s/%s into %s", kind, source_name, resource["metadata"]["name"])

            resource["data"] = dict(source.get("data") or {})
            string_data = resource.get("stringData") or {}
            resource["stringData"] = {}
            if kind == "Secret" and string_data.get("metadata.name"):
                resource["stringData"]["metadata.name"] = resource["metadata"]["name"]

            preserve_field = get_annotation(resource, PRESERVE_ANNOTATION)
            if kind == "Secret" and preserve_field:
                existing = await _get_one(
                    client, namespace, f"{kind}/{resource['metadata']['name']}"
                )
                if existing is not None and preserve_field in (existing.get("data") or {}):
                    resource["data"][preserve_field] = existing["data"][preserve_field]

        elif kind == "Route":
            secret_name = get_annotation(resource, TLS_SECRET_ANNOTATION)
            if secret_name is None:
                continue
            secret = await _get_one(client, namespace, f"Secret/{secret_name}")
            if secret is None:
                raise NotFoundError([f"{namespace}/Secret/{secret_name}"])
            decoded = {
                key: base64.b64decode(value).decode("ascii")
                for key, value in (secret.get("data") or {}).items()
            }
            spec = resource.setdefault("spec", {})
            spec.setdefault("tls", {}).update(decoded)

    return resources


__all__ = [
    "COPY_OF_ANNOTATION",
    "PRESERVE_ANNOTATION",
    "TLS_SECRET_ANNOTATION",
    "copy_secrets_and_config_maps",
]
