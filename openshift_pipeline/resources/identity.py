"""Canonical identity for cluster objects.

A reference is ``namespace/kind/name``. Kinds are normalized to their
fully qualified resource form so that short aliases (``is``, ``bc``,
``ImageStream``) and the qualified form produce the same key.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from openshift_pipeline.errors import ConfigurationError

IMAGE_STREAM = "imagestream.image.openshift.io"
IMAGE_STREAM_TAG = "imagestreamtag.image.openshift.io"
IMAGE_STREAM_IMAGE = "imagestreamimage.image.openshift.io"
BUILD_CONFIG = "buildconfig.build.openshift.io"
BUILD = "build.build.openshift.io"
DEPLOYMENT_CONFIG = "deploymentconfig.apps.openshift.io"

KIND_ALIASES: dict[str, str] = {
    "imagestream": IMAGE_STREAM,
    "imagestreams": IMAGE_STREAM,
    "is": IMAGE_STREAM,
    "imagestreamtag": IMAGE_STREAM_TAG,
    "imagestreamtags": IMAGE_STREAM_TAG,
    "istag": IMAGE_STREAM_TAG,
    "imagestreamimage": IMAGE_STREAM_IMAGE,
    "imagestreamimages": IMAGE_STREAM_IMAGE,
    "isimage": IMAGE_STREAM_IMAGE,
    "buildconfig": BUILD_CONFIG,
    "buildconfigs": BUILD_CONFIG,
    "bc": BUILD_CONFIG,
    "build": BUILD,
    "builds": BUILD,
    "deploymentconfig": DEPLOYMENT_CONFIG,
    "deploymentconfigs": DEPLOYMENT_CONFIG,
    "dc": DEPLOYMENT_CONFIG,
}

# [namespace/]kind/name; names may carry ':tag' or '@digest'
REF_PATTERN = re.compile(r"^(?:([^/]+?)/)?(([^/]+?)/(.+))$")


def normalize_kind(kind: str) -> str:
    """Return the qualified lower-case form of a kind or alias."""
    lowered = kind.strip().lower()
    return KIND_ALIASES.get(lowered, lowered)


@dataclass(frozen=True, eq=False)
class ResourceRef:
    """Identity of a cluster object.

    Equality and hashing use the canonical key, so two refs naming the same
    object through different kind aliases are equal.
    """

    namespace: str
    kind: str
    name: str

    @property
    def key(self) -> str:
        """Canonical ``namespace/kind/name`` string."""
        return f"{self.namespace}/{normalize_kind(self.kind)}/{self.name}"

    @property
    def name_ref(self) -> str:
        """``kind/name`` form accepted by oc within a namespace."""
        return f"{normalize_kind(self.kind)}/{self.name}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResourceRef):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return self.key


def parse_ref(name: str, default_namespace: str | None = None) -> ResourceRef:
    """Parse a ``[namespace/]kind/name`` string.

    Args:
        name: Reference string.
        default_namespace: Namespace applied when the string has none.

    Returns:
        Parsed ResourceRef.

    Raises:
        ConfigurationError: If the string is malformed or no namespace
            can be determined.
    """
    match = REF_PATTERN.match(name.strip()) if name else None
    if match is None:
        raise ConfigurationError(
            f"Invalid resource reference '{name}': expected [namespace/]kind/name"
        )
    namespace, _, kind, obj_name = match.groups()
    if "/" in obj_name:
        raise ConfigurationError(
            f"Invalid resource reference '{name}': too many path segments"
        )
    namespace = namespace or default_namespace
    if not namespace:
        raise ConfigurationError(
            f"Invalid resource reference '{name}': no namespace given and no default"
        )
    return ResourceRef(namespace=namespace, kind=kind, name=obj_name)


def ref_of(obj: dict[str, Any], default_namespace: str | None = None) -> ResourceRef:
    """Build the reference of a cluster object from its own metadata.

    Raises:
        ConfigurationError: If kind, name, or namespace is missing.
    """
    metadata = obj.get("metadata") or {}
    kind = obj.get("kind")
    name = metadata.get("name")
    namespace = metadata.get("namespace") or default_namespace
    if not kind or not name or not namespace:
        raise ConfigurationError(
            f"Object lacks kind, name, or namespace: kind={kind!r} name={name!r} "
            f"namespace={namespace!r}"
        )
    return ResourceRef(namespace=namespace, kind=kind, name=name)


__all__ = [
    "BUILD",
    "BUILD_CONFIG",
    "DEPLOYMENT_CONFIG",
    "IMAGE_STREAM",
    "IMAGE_STREAM_IMAGE",
    "IMAGE_STREAM_TAG",
    "KIND_ALIASES",
    "ResourceRef",
    "normalize_kind",
    "parse_ref",
    "ref_of",
]
