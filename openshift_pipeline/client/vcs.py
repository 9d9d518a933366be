"""Git queries used to identify build sources."""

from __future__ import annotations

from pathlib import Path

from openshift_pipeline.client.runner import run_command


class GitRepository:
    """Read-only view of the local git checkout."""

    def __init__(self, cwd: Path | None = None, executable: str = "git") -> None:
        self.cwd = cwd
        self.executable = executable

    async def revision(self, path: str | None) -> str:
        """Return the object id of ``path`` in the tree at HEAD.

        Args:
            path: Path relative to the repository root; empty for the root.

        Returns:
            Object id of the tree or blob.

        Raises:
            ExecutionError: If git cannot resolve the path.
        """
        result = await run_command(
            [self.executable, "rev-parse", f"HEAD:{path or ''}"],
            cwd=self.cwd,
        )
        return result.stdout.strip()

    async def toplevel(self) -> Path:
        """Return the root directory of the working tree."""
        result = await run_command(
            [self.executable, "rev-parse", "--show-toplevel"],
            cwd=self.cwd,
        )
        return Path(result.stdout.strip())


__all__ = ["GitRepository"]
