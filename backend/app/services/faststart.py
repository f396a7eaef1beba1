"""
Fast-start remux service for Tubely videos.

Rewrites an MP4 so its ``moov`` index precedes the media data, which lets
players start progressive playback before the whole file has downloaded.
Streams are copied, never re-encoded.
"""

import logging

from pathlib import Path
from typing import Protocol

from app.utils.process import run_tool


logger = logging.getLogger(__name__)


class RemuxError(Exception):
    """
    Raised when ffmpeg fails to produce the remuxed file.

    Attributes:
        output: Captured stderr, kept for logging only
    """

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


def processing_output_path(path: Path) -> Path:
    """Sibling output path: ``foo.mp4`` becomes ``foo.processing.mp4``."""
    return path.with_name(f"{path.stem}.processing{path.suffix}")


class FastStartTransformer(Protocol):
    """Anything that can produce a fast-start copy of a video file."""

    async def remux(self, path: Path) -> Path: ...


class FFmpegFastStartTransformer:
    """
    FastStartTransformer backed by the ``ffmpeg`` executable.

    The exit status is the only success signal; the output file is not
    inspected.
    """

    def __init__(self, ffmpeg_path: str = "ffmpeg", timeout: float = 300.0) -> None:
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout

    def command(self, source: Path, output: Path) -> list[str]:
        return [
            self.ffmpeg_path,
            "-y",
            "-loglevel",
            "error",
            "-i",
            str(source),
            "-c",
            "copy",
            "-movflags",
            "faststart",
            "-f",
            "mp4",
            str(output),
        ]

    async def remux(self, path: Path) -> Path:
        """
        Remux ``path`` into ``processing_output_path(path)``.

        The caller owns the output file and must remove it, including when
        this call fails part way.

        Raises:
            RemuxError: On spawn failure, timeout, or non-zero exit.
        """
        output = processing_output_path(path)
        try:
            result = await run_tool(*self.command(path, output), timeout=self.timeout)
        except FileNotFoundError as e:
            raise RemuxError(f"ffmpeg executable not found: {self.ffmpeg_path}") from e
        except TimeoutError as e:
            raise RemuxError(f"ffmpeg timed out after {self.timeout:.0f}s") from e

        if not result.ok:
            raise RemuxError(
                f"ffmpeg exited with status {result.returncode}",
                result.stderr.decode("utf-8", errors="replace").strip(),
            )

        logger.info(f"Remuxed {path.name} for fast start")
        return output
