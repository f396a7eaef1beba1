"""
Utilities Package for the Tubely ingestion backend.

Modules:
--------
logger:
    Structured logging configuration (JSON and plain formatters, Uvicorn and
    third-party logger levels, request-scoped context adapter).

security:
    Random asset names drawn from the OS CSPRNG and path-safety checks.

process:
    Running external tools (ffprobe, ffmpeg) with a timeout and guaranteed
    process cleanup.
"""

from app.utils.logger import add_log_context, setup_logging
from app.utils.process import ProcessResult, run_tool
from app.utils.security import generate_asset_name, is_safe_asset_name


__all__ = [
    "ProcessResult",
    "add_log_context",
    "generate_asset_name",
    "is_safe_asset_name",
    "run_tool",
    "setup_logging",
]
