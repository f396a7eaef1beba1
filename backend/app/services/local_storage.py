"""
Local filesystem asset store for Tubely thumbnails.

Thumbnails are small, so they are written straight into the assets root that
the static file server exposes under ``/assets``. Writes replace any existing
file of the same name and are not fsynced.
"""

import logging

from pathlib import Path

import aiofiles

from app.utils.security import is_safe_asset_name


logger = logging.getLogger(__name__)


class LocalStorageError(Exception):
    """Raised when an asset cannot be written to the assets root."""


class LocalAssetStore:
    """
    Writes asset bytes under a root directory and reports their public URL.

    Attributes:
        root: Directory assets are written to
        public_base_url: Scheme, host and port the asset server answers on
    """

    def __init__(self, root: Path, public_base_url: str) -> None:
        self.root = root
        self.public_base_url = public_base_url.rstrip("/")

    def path_for(self, name: str) -> Path:
        """Resolve the on-disk path for an asset name."""
        if not is_safe_asset_name(name):
            raise LocalStorageError(f"Refusing unsafe asset name: {name!r}")
        return self.root / name

    def url_for(self, name: str) -> str:
        return f"{self.public_base_url}/assets/{name}"

    async def put(self, data: bytes, name: str) -> str:
        """
        Write ``data`` to ``{root}/{name}`` and return its public URL.

        Raises:
            LocalStorageError: If the name is unsafe or the write fails.
        """
        path = self.path_for(name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)
        except OSError as e:
            logger.error(f"Failed to write asset {path}: {e}")
            raise LocalStorageError(f"Failed to write asset {name}") from e

        logger.info(f"Stored local asset {name} ({len(data)} bytes)")
        return self.url_for(name)
