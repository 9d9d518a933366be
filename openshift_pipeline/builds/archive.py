"""Packing binary build contexts.

A binary build streams the local context directory to the cluster as a
tar archive. The archive lives at a fixed path per build definition; any
file already there is removed before packing. Removal after the build is
best effort.
"""

from __future__ import annotations

import logging
import tarfile
from pathlib import Path

from openshift_pipeline.errors import ArchiveError

logger = logging.getLogger(__name__)


def archive_path_for(tmp_dir: Path, definition_hash: str) -> Path:
    """Return the fixed archive path for a build definition."""
    return tmp_dir / f"{definition_hash}.tar"


def pack_context(workdir: Path, context_dir: str | None, archive_path: Path) -> Path:
    """Pack a build context directory into a tar archive.

    Symlinks are dereferenced so the archive holds file contents. Members
    are stored under the context directory's path relative to ``workdir``.

    Args:
        workdir: Working tree root.
        context_dir: Context directory relative to ``workdir``; empty for
            the root itself.
        archive_path: Destination archive file.

    Returns:
        The archive path.

    Raises:
        ArchiveError: If the context is missing or packing fails.
    """
    source = workdir / context_dir if context_dir else workdir
    if not source.is_dir():
        raise ArchiveError(f"Build context directory not found: {source}")

    try:
        archive_path.parent.mkdir(parents=True, exist_ok=True)
        if archive_path.exists():
            archive_path.unlink()
        logger.debug("Packing %s into %s", source, archive_path)
        with tarfile.open(archive_path, "w", dereference=True) as tar:
            tar.add(source, arcname=context_dir or ".")
    except (OSError, tarfile.TarError) as e:
        raise ArchiveError(f"Failed to pack {source} into {archive_path}: {e}") from e

    return archive_path


def remove_archive(archive_path: Path) -> None:
    """Delete an archive if present."""
    try:
        archive_path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Failed to remove archive %s: %s", archive_path, e)


__all__ = ["archive_path_for", "pack_context", "remove_archive"]
