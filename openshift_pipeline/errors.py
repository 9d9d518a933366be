"""Error types shared across openshift_pipeline.

Every error carries a stable ``code`` for programmatic handling, the way
the CLI reports it. Errors abort only the operation that raised them.
"""

from __future__ import annotations

from collections.abc import Sequence

CONFIGURATION_ERROR = "configuration_error"
NOT_FOUND_ERROR = "not_found"
EXECUTION_ERROR = "execution_error"
ARCHIVE_ERROR = "archive_error"


class PipelineError(Exception):
    """Base error for pipeline operations."""

    def __init__(self, message: str, code: str = "pipeline_error") -> None:
        super().__init__(message)
        self.code = code


class ConfigurationError(PipelineError):
    """Raised for malformed references or unsupported build definitions."""

    def __init__(self, message: str, code: str = CONFIGURATION_ERROR) -> None:
        super().__init__(message, code=code)


class NotFoundError(PipelineError):
    """Raised when cluster objects are still missing after a fetch."""

    def __init__(self, refs: Sequence[str], code: str = NOT_FOUND_ERROR) -> None:
        super().__init__(f"Missing object(s): {', '.join(refs)}", code=code)
        self.refs = list(refs)


class ExecutionError(PipelineError):
    """Raised when an underlying command fails.

    The message holds the full command line and the diagnostic output
    verbatim so pipeline logs show exactly what was run.
    """

    def __init__(
        self,
        command: Sequence[str],
        exit_status: int | None,
        stdout: str = "",
        stderr: str = "",
        code: str = EXECUTION_ERROR,
    ) -> None:
        command_line = " ".join(command)
        super().__init__(
            f"command: {command_line}\nexit status: {exit_status}\nstderr: {stderr}",
            code=code,
        )
        self.command = list(command)
        self.exit_status = exit_status
        self.stdout = stdout
        self.stderr = stderr


class ArchiveError(PipelineError):
    """Raised when packing a build context directory fails."""

    def __init__(self, message: str, code: str = ARCHIVE_ERROR) -> None:
        super().__init__(message, code=code)


__all__ = [
    "ARCHIVE_ERROR",
    "CONFIGURATION_ERROR",
    "EXECUTION_ERROR",
    "NOT_FOUND_ERROR",
    "ArchiveError",
    "ConfigurationError",
    "ExecutionError",
    "NotFoundError",
    "PipelineError",
]
