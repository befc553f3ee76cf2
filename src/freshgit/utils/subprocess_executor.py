"""Subprocess execution utilities with automatic logging."""

import asyncio
import os
import signal
import subprocess
from collections.abc import Sequence
from pathlib import Path

from freshgit.logger import get_logger

logger = get_logger(__name__)

READ_CHUNK = 4096


class InteractivePromptError(Exception):
    """Raised when a subprocess asks for interactive input and was killed."""

    def __init__(self, marker: str, stdout: bytes, stderr: bytes) -> None:
        super().__init__(marker)
        self.marker = marker
        self.stdout = stdout
        self.stderr = stderr


async def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill the process (and its process group on POSIX) and reap it."""
    if process.returncode is not None:
        return
    try:
        if os.name == "posix":
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass
    await process.wait()


class SubprocessExecutor:
    """Executes subprocess commands with automatic debug logging."""

    @staticmethod
    async def run(
        *args: str,
        cwd: Path | str | None = None,
        env: dict[str, str] | None = None,
        check: bool = False,
        timeout: float | None = None,
        abort_markers: Sequence[str] = (),
    ) -> subprocess.CompletedProcess[bytes]:
        """
        Execute a subprocess command with automatic debug logging.

        stdin is connected to /dev/null. On POSIX the child gets its own session so
        that killing it also kills helpers it spawned (e.g. git-remote-https).

        Args:
            *args: Command arguments
            cwd: Working directory
            env: Environment variables
            check: Whether to raise exception on non-zero exit code
            timeout: Timeout in seconds
            abort_markers: Substrings which, once seen on stdout or stderr, make the
                process get killed immediately

        Returns:
            CompletedProcess-like object with returncode, stdout, stderr

        Raises:
            subprocess.CalledProcessError: If check=True and returncode != 0
            asyncio.TimeoutError: If timeout is exceeded (the process is killed)
            InteractivePromptError: If an abort marker was seen (the process is killed)
            OSError: If the executable cannot be started
        """
        cmd_str = " ".join(args)
        logger.debug(f"Executing subprocess: {cmd_str}")
        if cwd:
            logger.debug(f"Working directory: {cwd}")

        process = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            env=env,
            start_new_session=os.name == "posix",
        )

        stdout_buf = bytearray()
        stderr_buf = bytearray()
        seen_marker: list[str] = []
        aborted = asyncio.Event()
        encoded_markers = [(m, m.encode()) for m in abort_markers]
        overlap = max((len(b) for _, b in encoded_markers), default=0)

        async def _reader(stream: asyncio.StreamReader, sink: bytearray) -> None:
            while chunk := await stream.read(READ_CHUNK):
                sink.extend(chunk)
                window = bytes(sink[-(len(chunk) + overlap) :])
                for marker, raw in encoded_markers:
                    if raw in window:
                        seen_marker.append(marker)
                        aborted.set()
                        return

        async def _communicate() -> None:
            streams = ((process.stdout, stdout_buf), (process.stderr, stderr_buf))
            readers = [_reader(stream, sink) for stream, sink in streams if stream is not None]
            await asyncio.gather(*readers)
            await process.wait()

        waiter = asyncio.create_task(_communicate())
        abort_waiter = asyncio.create_task(aborted.wait())
        try:
            done, _ = await asyncio.wait({waiter, abort_waiter}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
            if waiter not in done:
                await _kill(process)
                if aborted.is_set():
                    logger.warning(f"Subprocess asked for input, killed: {cmd_str}", marker=seen_marker[0])
                    raise InteractivePromptError(seen_marker[0], bytes(stdout_buf), bytes(stderr_buf))
                logger.error(f"Subprocess timeout after {timeout}s: {cmd_str}")
                raise asyncio.TimeoutError
            # Surface reader errors
            waiter.result()
        except asyncio.CancelledError:
            logger.warning(f"Subprocess cancelled, killing: {cmd_str}")
            await _kill(process)
            raise
        finally:
            for task in (waiter, abort_waiter):
                if not task.done():
                    task.cancel()
            await asyncio.gather(waiter, abort_waiter, return_exceptions=True)

        stdout = bytes(stdout_buf)
        stderr = bytes(stderr_buf)

        # Log outputs at debug level
        if stdout:
            logger.debug(f"Subprocess stdout: {stdout.decode('utf-8', errors='replace')}")
        if stderr:
            logger.debug(f"Subprocess stderr: {stderr.decode('utf-8', errors='replace')}")

        returncode = await process.wait()
        result = subprocess.CompletedProcess(list(args), returncode, stdout, stderr)

        if check and returncode != 0:
            raise subprocess.CalledProcessError(returncode, list(args), stdout, stderr)

        return result
