"""Label and annotation helpers for resource manifests."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def _metadata_map(resource: dict[str, Any], field: str) -> dict[str, str]:
    metadata = resource.setdefault("metadata", {})
    values = metadata.get(field)
    if values is None:
        values = metadata[field] = {}
    return values


def get_label(resource: dict[str, Any], name: str) -> str | None:
    """Return a label value, or None if unset."""
    return _metadata_map(resource, "labels").get(name)


def set_label(
    resource: dict[str, Any],
    name: str | Mapping[str, str],
    value: str | None = None,
) -> None:
    """Set one label, or merge a mapping of labels."""
    labels = _metadata_map(resource, "labels")
    if isinstance(name, Mapping):
        labels.update(name)
    else:
        labels[name] = value if value is not None else ""


def get_annotation(resource: dict[str, Any], name: str) -> str | None:
    """Return an annotation value, or None if unset."""
    return _metadata_map(resource, "annotations").get(name)


def set_annotation(
    resource: dict[str, Any],
    name: str | Mapping[str, str],
    value: str | None = None,
) -> None:
    """Set one annotation, or merge a mapping of annotations."""
    annotations = _metadata_map(resource, "annotations")
    if isinstance(name, Mapping):
        annotations.update(name)
    else:
        annotations[name] = value if value is not None else ""


def apply_recommended_labels(
    resources: list[dict[str, Any]],
    app_name: str,
    env_name: str,
    env_id: str,
    instance: str | None = None,
) -> list[dict[str, Any]]:
    """Label resources with application and environment identity.

    Resources labelled ``shared=true`` are used by every environment and
    only receive the ``app-name`` label.

    Args:
        resources: Resource manifests, modified in place.
        app_name: Application name.
        env_name: Environment name, e.g. ``dev`` or ``pr``.
        env_id: Environment instance id, e.g. a pull request number.
        instance: Value of the ``app`` label; defaults to
            ``<app_name>-<env_name>-<env_id>``.

    Returns:
        The same list.
    """
    common_labels = {"app-name": app_name}
    all_labels = {
        "app": instance or f"{app_name}-{env_name}-{env_id}",
        **common_labels,
        "env-name": env_name,
        "env-id": env_id,
    }
    for resource in resources:
        if get_label(resource, "shared") == "true":
            set_label(resource, common_labels)
        else:
            set_label(resource, all_labels)
    return resources


__all__ = [
    "apply_recommended_labels",
    "get_annotation",
    "get_label",
    "set_annotation",
    "set_label",
]
