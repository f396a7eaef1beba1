"""
Security utilities module for Tubely.

This module provides the random identifiers used to name uploaded assets:
- Cryptographically secure asset names (URL-safe base64, unpadded)
- Path-safety checks for names before they touch the filesystem

Asset names are never derived from client input, so two uploads of the same
file never collide and a name reveals nothing about its content.
"""

import logging
import secrets

# Configure logger for security operations
logger = logging.getLogger(__name__)

# ==============================================================================
# ASSET NAMING
# ==============================================================================

# Number of random bytes behind each asset identifier
ASSET_ID_BYTES = 32


def generate_asset_name(extension: str) -> str:
    """
    Generate a fresh asset file name.

    Draws ``ASSET_ID_BYTES`` bytes from the OS CSPRNG and encodes them as
    URL-safe base64 without padding (43 characters), then appends the
    extension.

    Args:
        extension: File extension without the leading dot (e.g. ``"png"``).

    Returns:
        str: A name such as ``"5Nq2...x0A.png"``.

    Raises:
        ValueError: If the extension is empty or contains a path separator or dot.

    Example:
        >>> name = generate_asset_name("mp4")
        >>> name.endswith(".mp4")
        True
    """
    if not extension or not extension.isalnum():
        raise ValueError(f"Invalid asset extension: {extension!r}")

    return f"{secrets.token_urlsafe(ASSET_ID_BYTES)}.{extension}"


def is_safe_asset_name(name: str) -> bool:
    """Check that a name is a single path component with no traversal."""
    return bool(name) and name not in {".", ".."} and "/" not in name and "\\" not in name
