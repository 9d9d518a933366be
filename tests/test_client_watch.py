"""Tests for client/watch.py module."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from openshift_pipeline.client.runner import spawn_command
from openshift_pipeline.client.watch import WatchStream
from openshift_pipeline.errors import ExecutionError


def _process(data: list[bytes]) -> MagicMock:
    reader = asyncio.StreamReader()
    for chunk in data:
        reader.feed_data(chunk)
    reader.feed_eof()
    process = MagicMock()
    process.stdout = reader
    process.returncode = None
    process.wait = AsyncMock(return_value=0)
    return process


class TestWatchStream:
    """Tests for WatchStream."""

    async def test_decodes_split_characters(self):
        """A multi-byte character split across reads is decoded intact."""
        text = "café\tready\n".encode()
        process = _process([text])
        stream = WatchStream(process, chunk_size=4)

        chunks = [chunk async for chunk in stream]

        assert "".join(chunks) == "café\tready\n"
        assert all("�" not in chunk for chunk in chunks)

    async def test_context_manager_terminates(self):
        """Leaving the context terminates and reaps the process."""
        process = _process([b"web\t1\n"])
        async with WatchStream(process) as stream:
            async for _ in stream:
                break

        process.terminate.assert_called_once()
        process.wait.assert_awaited_once()

    async def test_terminate_finished_process(self):
        """An already finished process is only reaped."""
        process = _process([])
        process.returncode = 0
        stream = WatchStream(process)
        await stream.terminate()
        process.terminate.assert_not_called()
        assert stream.returncode == 0

    async def test_terminate_vanished_process(self):
        """A process that exited meanwhile is not an error."""
        process = _process([])
        process.terminate.side_effect = ProcessLookupError
        await WatchStream(process).terminate()
        process.wait.assert_awaited_once()

    async def test_failed_command_raises(self):
        """A watch command exiting non-zero raises with its stderr."""
        args = ["sh", "-c", "echo 'error: forbidden' >&2; exit 1"]
        stream = WatchStream(await spawn_command(args), args=args)

        with pytest.raises(ExecutionError) as exc_info:
            async with stream:
                async for _ in stream:
                    pass

        assert exc_info.value.exit_status == 1
        assert "error: forbidden" in exc_info.value.stderr
        assert exc_info.value.command == args

    async def test_finished_command_ends_quietly(self):
        """A watch command exiting zero just ends the stream."""
        args = ["sh", "-c", "printf 'web\\t1\\n'"]
        async with WatchStream(await spawn_command(args), args=args) as stream:
            chunks = [chunk async for chunk in stream]

        assert "".join(chunks) == "web\t1\n"
        assert stream.returncode == 0

    async def test_terminated_command_ends_quietly(self):
        """Stopping the watch ourselves is not a failure."""
        args = ["sh", "-c", "echo started; exec sleep 30"]
        stream = WatchStream(await spawn_command(args), args=args)
        async with stream:
            async for chunk in stream:
                assert "started" in chunk
                await stream.terminate()

        assert stream.returncode != 0
