"""Loading of resource manifests from YAML/JSON files.

A manifest file holds a single object, a sequence of objects, a ``List``
object, or several YAML documents. Every form is flattened to a plain list
of objects ready to be applied.
"""

import json
from pathlib import Path
from typing import Any

import yaml

from openshift_pipeline.errors import ConfigurationError


def _flatten(data: Any, path: Path) -> list[dict[str, Any]]:
    if data is None:
        return []
    if isinstance(data, list):
        resources: list[dict[str, Any]] = []
        for item in data:
            resources.extend(_flatten(item, path))
        return resources
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"{path}: expected a mapping or a list, got {type(data).__name__}"
        )
    if data.get("kind") == "List":
        return _flatten(data.get("items") or [], path)
    return [data]


def load_manifests(path: Path) -> list[dict[str, Any]]:
    """Load resource manifests from a YAML or JSON file.

    Args:
        path: Path to the manifest file; ``.json`` files are parsed as JSON,
            anything else as (multi-document) YAML.

    Returns:
        Resource objects in file order.

    Raises:
        ConfigurationError: If the file is missing, cannot be parsed, or
            contains something other than objects.
    """
    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix == ".json":
                documents = [json.load(f)]
            else:
                documents = list(yaml.safe_load_all(f))
    except OSError as e:
        raise ConfigurationError(f"Cannot read manifest file {path}: {e}") from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Invalid manifest file {path}: {e}") from e

    return _flatten(documents, path)


__all__ = ["load_manifests"]
