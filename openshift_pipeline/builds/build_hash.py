"""Content hashing for build deduplication.

This module handles:
- Canonical representation of the inputs that determine a build's output
- Deterministic hashing of those inputs
- Hashing a local build context directory

Identical inputs always produce the same hash; changing any single
component changes it. The hash is stored in the built image's environment
and later matched to reuse the image instead of rebuilding.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from openshift_pipeline.errors import ConfigurationError

# Bump when the hash format changes; invalidates every stored hash
BUILD_HASH_SCHEMA_VERSION = "1"

HASH_CHUNK_SIZE = 64 * 1024


@dataclass
class BuildHashInputs:
    """Canonical representation of everything that affects a build.

    Attributes:
        source_revision: VCS object id of the source directory, or the
            directory hash for binary sources.
        input_image_digests: Pinned references of every input image, in
            declaration order.
        template_hash: Identity of the build definition's own shape.
        schema_version: Version of the hash format.
    """

    source_revision: str
    input_image_digests: list[str] = field(default_factory=list)
    template_hash: str = ""
    schema_version: str = BUILD_HASH_SCHEMA_VERSION

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


def hash_object(obj: Any) -> str:
    """Return the SHA-256 hex digest of an object's canonical JSON form.

    Args:
        obj: JSON serializable value.

    Returns:
        Hex digest.
    """
    canonical_json = json.dumps(obj, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()


def compute_build_hash(inputs: BuildHashInputs) -> str:
    """Compute the content hash of a build.

    Args:
        inputs: BuildHashInputs instance.

    Returns:
        Hash string (sha256:...).
    """
    return f"sha256:{hash_object(inputs.to_dict())}"


def compute_file_hash(file_path: Path, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """Compute SHA-256 hash of a file.

    Args:
        file_path: Path to the file.
        chunk_size: Size of chunks for streaming hash.

    Returns:
        SHA-256 hex digest.
    """
    sha256 = hashlib.sha256()
    with file_path.open("rb") as f:
        while chunk := f.read(chunk_size):
            sha256.update(chunk)
    return sha256.hexdigest()


def hash_directory(directory: Path) -> str:
    """Compute a deterministic hash of a directory tree.

    The hash covers the sorted list of (relative POSIX path, content hash)
    pairs of every regular file, so it does not depend on the order the
    filesystem lists entries in, nor on timestamps or modes.

    Args:
        directory: Directory to hash.

    Returns:
        SHA-256 hex digest of the tree.

    Raises:
        ConfigurationError: If the directory does not exist.
    """
    if not directory.is_dir():
        raise ConfigurationError(f"Build context directory not found: {directory}")

    entries: list[tuple[str, str]] = []
    for path in directory.rglob("*"):
        if not path.is_file():
            continue
        rel_path = path.relative_to(directory).as_posix()
        entries.append((rel_path, compute_file_hash(path)))
    entries.sort()

    hasher = hashlib.sha256()
    for rel_path, file_hash in entries:
        # Hash: path\0content-hash\0
        hasher.update(rel_path.encode("utf-8"))
        hasher.update(b"\0")
        hasher.update(file_hash.encode("ascii"))
        hasher.update(b"\0")
    return hasher.hexdigest()


__all__ = [
    "BUILD_HASH_SCHEMA_VERSION",
    "BuildHashInputs",
    "compute_build_hash",
    "compute_file_hash",
    "hash_directory",
    "hash_object",
]
