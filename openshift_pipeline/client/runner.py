"""Subprocess execution for oc and git commands.

This module handles:
- Running commands as asyncio subprocesses with captured output
- Logging each command with its exit status and duration
- Raising ExecutionError with the full invocation context on failure
- Spawning long running processes for watch streams
"""

from __future__ import annotations

import asyncio
import logging
import shlex
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from openshift_pipeline.errors import ExecutionError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result of a finished command.

    Attributes:
        args: Full command line, executable included.
        exit_status: Process exit code.
        stdout: Decoded standard output.
        stderr: Decoded standard error.
        duration: Wall clock seconds.
    """

    args: list[str]
    exit_status: int
    stdout: str
    stderr: str
    duration: float


async def run_command(
    args: Sequence[str],
    input: str | None = None,
    cwd: Path | None = None,
    check: bool = True,
) -> CommandResult:
    """Run a command to completion.

    Args:
        args: Command line, executable first.
        input: Optional text written to the process stdin.
        cwd: Working directory.
        check: Raise on non-zero exit status.

    Returns:
        CommandResult with captured output.

    Raises:
        ExecutionError: If the command cannot start or exits non-zero
            while ``check`` is set.
    """
    cmd = list(args)
    cmd_str = shlex.join(cmd)
    logger.debug("> %s", cmd_str)

    started = time.monotonic()
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )
    except OSError as e:
        raise ExecutionError(cmd, None, stderr=str(e)) from e

    stdout, stderr = await process.communicate(
        input.encode("utf-8") if input is not None else None
    )
    duration = time.monotonic() - started
    exit_status = process.returncode if process.returncode is not None else -1
    logger.info("%s # (%d) [%.1fs]", cmd_str, exit_status, duration)

    result = CommandResult(
        args=cmd,
        exit_status=exit_status,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
        duration=duration,
    )
    if check and exit_status != 0:
        raise ExecutionError(cmd, exit_status, result.stdout, result.stderr)
    return result


async def spawn_command(
    args: Sequence[str],
    cwd: Path | None = None,
) -> asyncio.subprocess.Process:
    """Start a long running command with a piped stdout.

    Args:
        args: Command line, executable first.
        cwd: Working directory.

    Returns:
        The running process.

    Raises:
        ExecutionError: If the command cannot start.
    """
    cmd = list(args)
    logger.info("Watching: %s", shlex.join(cmd))
    try:
        return await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )
    except OSError as e:
        raise ExecutionError(cmd, None, stderr=str(e)) from e


__all__ = ["CommandResult", "run_command", "spawn_command"]
