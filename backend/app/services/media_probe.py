"""
Media probing service for Tubely videos.

Classifies an uploaded video by display orientation so it can be filed under
the matching object-key prefix. Dimensions come from ``ffprobe``'s JSON
stream report; only the first stream is consulted.

Classification:
- landscape: width/height within 0.01 of 16/9
- portrait: width/height within 0.01 of 9/16
- other: everything else
"""

import json
import logging
import math

from enum import Enum
from pathlib import Path
from typing import Protocol

from app.utils.process import run_tool


logger = logging.getLogger(__name__)

# Absolute tolerance on width/height when matching a target ratio
ASPECT_TOLERANCE = 0.01

LANDSCAPE_RATIO = 16 / 9
PORTRAIT_RATIO = 9 / 16


class AspectRatio(str, Enum):
    """Orientation class of a video; the value is also its object-key prefix."""

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


class ProbeError(Exception):
    """
    Raised when ffprobe fails or its report cannot be used.

    Attributes:
        output: Captured tool output, kept for logging only
    """

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


def classify_aspect_ratio(width: int, height: int) -> AspectRatio:
    """
    Classify dimensions into an orientation class.

    Args:
        width: Frame width in pixels (positive).
        height: Frame height in pixels (positive).

    Raises:
        ValueError: If either dimension is not positive.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Dimensions must be positive, got {width}x{height}")

    ratio = width / height
    if math.fabs(ratio - LANDSCAPE_RATIO) < ASPECT_TOLERANCE:
        return AspectRatio.LANDSCAPE
    if math.fabs(ratio - PORTRAIT_RATIO) < ASPECT_TOLERANCE:
        return AspectRatio.PORTRAIT
    return AspectRatio.OTHER


def parse_dimensions(report: str) -> tuple[int, int]:
    """
    Extract the first stream's width and height from an ffprobe JSON report.

    Raises:
        ProbeError: If the report is not JSON, lists no streams, or the first
            stream lacks positive integer dimensions.
    """
    try:
        data = json.loads(report)
    except json.JSONDecodeError as e:
        raise ProbeError("ffprobe output is not valid JSON", report) from e

    streams = data.get("streams") if isinstance(data, dict) else None
    if not streams or not isinstance(streams, list):
        raise ProbeError("ffprobe reported no streams", report)

    first = streams[0]
    if not isinstance(first, dict):
        raise ProbeError("First stream is not an object", report)
    width = first.get("width")
    height = first.get("height")
    # bool is an int subclass
    if not all(isinstance(v, int) and not isinstance(v, bool) for v in (width, height)):
        raise ProbeError("First stream has no usable dimensions", report)
    if width <= 0 or height <= 0:
        raise ProbeError(f"First stream has invalid dimensions {width}x{height}", report)

    return width, height


class AspectClassifier(Protocol):
    """Anything that can classify the orientation of a video file."""

    async def classify(self, path: Path) -> AspectRatio: ...


class FFprobeAspectClassifier:
    """
    AspectClassifier backed by the ``ffprobe`` executable.

    Attributes:
        ffprobe_path: Executable name or path
        timeout: Seconds before the probe is killed
    """

    def __init__(self, ffprobe_path: str = "ffprobe", timeout: float = 300.0) -> None:
        self.ffprobe_path = ffprobe_path
        self.timeout = timeout

    def command(self, path: Path) -> list[str]:
        return [
            self.ffprobe_path,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_streams",
            str(path),
        ]

    async def classify(self, path: Path) -> AspectRatio:
        """
        Probe ``path`` and classify its first stream.

        Raises:
            ProbeError: On spawn failure, timeout, non-zero exit, or an
                unusable report.
        """
        try:
            result = await run_tool(*self.command(path), timeout=self.timeout, merge_stderr=True)
        except FileNotFoundError as e:
            raise ProbeError(f"ffprobe executable not found: {self.ffprobe_path}") from e
        except TimeoutError as e:
            raise ProbeError(f"ffprobe timed out after {self.timeout:.0f}s") from e

        output = result.output_text()
        if not result.ok:
            raise ProbeError(f"ffprobe exited with status {result.returncode}", output)

        width, height = parse_dimensions(output)
        aspect = classify_aspect_ratio(width, height)
        logger.info(f"Probed {path.name}: {width}x{height} -> {aspect.value}")
        return aspect
