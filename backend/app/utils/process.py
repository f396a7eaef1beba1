"""
Async subprocess helper for the external media tools (ffprobe, ffmpeg).

The child process is bound to the awaiting task: if the task times out or is
cancelled, the process is killed and reaped before the exception propagates.
"""

import asyncio
import logging

from dataclasses import dataclass


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Exit status and captured output of a finished tool run."""

    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def output_text(self) -> str:
        """Captured output decoded for logs and error messages."""
        return (self.stdout + self.stderr).decode("utf-8", errors="replace").strip()


async def run_tool(
    *args: str,
    timeout: float | None = None,
    merge_stderr: bool = False,
) -> ProcessResult:
    """
    Run an executable to completion and capture its output.

    Args:
        *args: Executable followed by its arguments (no shell involved).
        timeout: Seconds to wait before killing the process.
        merge_stderr: Send stderr into the stdout pipe.

    Returns:
        ProcessResult: Exit code and captured output.

    Raises:
        FileNotFoundError: If the executable does not exist.
        TimeoutError: If the process outlives ``timeout``.
        asyncio.CancelledError: If the awaiting task is cancelled.
    """
    process = await asyncio.create_subprocess_exec(
        *args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT if merge_stderr else asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except (TimeoutError, asyncio.CancelledError):
        if process.returncode is None:
            logger.warning(f"Killing {args[0]} (pid {process.pid})")
            process.kill()
            await process.wait()
        raise

    return ProcessResult(process.returncode, stdout or b"", stderr or b"")
