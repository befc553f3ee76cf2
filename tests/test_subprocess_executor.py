import asyncio
import subprocess
import time

import pytest
from conftest import posix_only

from freshgit.utils import InteractivePromptError, SubprocessExecutor

pytestmark = posix_only


@pytest.mark.asyncio
async def test_run_captures_output() -> None:
    result = await SubprocessExecutor.run("sh", "-c", "echo out; echo err >&2; exit 3")

    assert result.returncode == 3
    assert result.stdout == b"out\n"
    assert result.stderr == b"err\n"


@pytest.mark.asyncio
async def test_run_check_raises() -> None:
    with pytest.raises(subprocess.CalledProcessError):
        await SubprocessExecutor.run("sh", "-c", "exit 1", check=True)


@pytest.mark.asyncio
async def test_timeout_kills_whole_process_group() -> None:
    start = time.monotonic()
    with pytest.raises(asyncio.TimeoutError):
        # The inner sleep is a grandchild holding the pipes open
        await SubprocessExecutor.run("sh", "-c", "sleep 10 & sleep 10", timeout=0.3)
    assert time.monotonic() - start < 5


@pytest.mark.asyncio
async def test_abort_marker_without_newline() -> None:
    with pytest.raises(InteractivePromptError) as exc_info:
        await SubprocessExecutor.run(
            "sh", "-c", "printf 'Password for x: ' >&2; sleep 10", timeout=5, abort_markers=("Password for",)
        )
    assert exc_info.value.marker == "Password for"
    assert b"Password for" in exc_info.value.stderr


@pytest.mark.asyncio
async def test_cancel_kills_process() -> None:
    task = asyncio.create_task(SubprocessExecutor.run("sh", "-c", "sleep 10"))
    await asyncio.sleep(0.2)
    task.cancel()
    start = time.monotonic()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert time.monotonic() - start < 5


@pytest.mark.asyncio
async def test_stdin_is_closed() -> None:
    result = await SubprocessExecutor.run("sh", "-c", "cat", timeout=5)
    assert result.returncode == 0
    assert result.stdout == b""
