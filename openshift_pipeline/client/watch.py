"""Streaming access to long running watch commands."""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import logging
from collections.abc import AsyncIterator, Sequence
from types import TracebackType

from openshift_pipeline.errors import ExecutionError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 4096


class WatchStream:
    """Cancellable stream of text chunks from a watch process.

    Chunks are decoded incrementally, so a multi-byte character split
    across reads is never mangled. Chunks may still end mid-line.

    When the output ends because the process exited on its own with a
    non-zero status, iteration raises ExecutionError carrying the command
    line and the process's standard error.
    """

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        args: Sequence[str] = (),
    ) -> None:
        self._process = process
        self._chunk_size = chunk_size
        self._args = list(args)
        self._terminated = False

    @property
    def returncode(self) -> int | None:
        """Exit status of the watch process, None while running."""
        return self._process.returncode

    def __aiter__(self) -> AsyncIterator[str]:
        return self._chunks()

    async def _chunks(self) -> AsyncIterator[str]:
        stdout = self._process.stdout
        if stdout is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            data = await stdout.read(self._chunk_size)
            if not data:
                tail = decoder.decode(b"", final=True)
                if tail:
                    yield tail
                await self._check_exit()
                return
            text = decoder.decode(data)
            if text:
                yield text

    async def _check_exit(self) -> None:
        if self._terminated:
            return
        exit_status = await self._process.wait()
        if exit_status == 0:
            return
        stderr = ""
        if self._process.stderr is not None:
            stderr = (await self._process.stderr.read()).decode("utf-8", errors="replace")
        raise ExecutionError(self._args, exit_status, stderr=stderr)

    async def terminate(self) -> None:
        """Stop the watch process and reap it."""
        if self._process.returncode is None:
            logger.debug("Terminating watch process %s", self._process.pid)
            self._terminated = True
            with contextlib.suppress(ProcessLookupError):
                self._process.terminate()
        await self._process.wait()

    async def __aenter__(self) -> WatchStream:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.terminate()


__all__ = ["DEFAULT_CHUNK_SIZE", "WatchStream"]
