"""
S3-compatible object storage service for Tubely.

This module wraps the boto3 S3 client used to publish processed videos.
Compatible with both MinIO (development) and AWS S3 (production) environments.

Key Features:
- Single ``put_object`` per video with the body streamed from disk
- Canonical ``https://{bucket}.{region_host}/{key}`` object URLs
- Client-side retries delegated to botocore (standard mode, 3 attempts)
- Async-wrapped operations for non-blocking I/O
- A process-wide service instance created during application startup
"""

import asyncio
import logging
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from app.config import Settings

# Set up module-level logger for tracking S3 operations
logger = logging.getLogger(__name__)

# Type variable for generic async wrapper
T = TypeVar("T")

# Retry policy applied by botocore to every call
RETRY_CONFIG = {"max_attempts": 3, "mode": "standard"}


def async_wrap(func: Callable[..., T]) -> Callable[..., "asyncio.Future[T]"]:
    """
    Decorator to wrap synchronous boto3 operations for async execution.

    Uses asyncio.to_thread to run blocking boto3 operations in a separate
    thread pool, preventing event loop blocking during S3 operations.

    Args:
        func: The synchronous function to wrap

    Returns:
        An async function that executes the original in a thread pool
    """
    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(func, *args, **kwargs)
    return wrapper


class StorageServiceError(Exception):
    """Base exception for storage service errors."""
    pass


class StorageConnectionError(StorageServiceError):
    """Raised when the S3 client cannot be created."""
    pass


class StorageCredentialsError(StorageServiceError):
    """Raised when storage credentials are missing or invalid."""
    pass


class StorageOperationError(StorageServiceError):
    """Raised when a storage operation fails after the client's retries."""
    pass


class StorageService:
    """
    S3-compatible storage service for publishing video objects.

    Attributes:
        bucket_name: Bucket every object is written to
        region_name: AWS region of the bucket
        url_host: Host suffix used to build canonical object URLs

    Example:
        >>> service = StorageService(
        ...     bucket_name="tubely-videos",
        ...     region_name="us-east-2",
        ... )
        >>> url = await service.put_object("landscape/abc.mp4", path, "video/mp4")
    """

    def __init__(
        self,
        bucket_name: str,
        region_name: str = "us-east-2",
        url_host: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        client: Any = None,
    ) -> None:
        """
        Initialize the storage service.

        Args:
            bucket_name: Bucket for all operations
            region_name: AWS region (default: us-east-2)
            url_host: Host suffix of object URLs (default: s3.<region>.amazonaws.com)
            endpoint_url: S3-compatible endpoint URL (None for AWS S3 default)
            access_key: Access key ID (None falls back to the default AWS chain)
            secret_key: Secret access key
            client: Pre-built boto3 S3 client (tests inject a mock here)

        Raises:
            StorageCredentialsError: If credentials are missing or invalid
            StorageConnectionError: If the client cannot be created
        """
        self.bucket_name = bucket_name
        self.region_name = region_name
        self.url_host = url_host or f"s3.{region_name}.amazonaws.com"

        if client is not None:
            self._client = client
            return

        logger.info(
            f"Initializing StorageService with bucket={bucket_name}, "
            f"endpoint={endpoint_url or 'AWS S3 default'}"
        )

        try:
            client_config: Dict[str, Any] = {
                "service_name": "s3",
                "region_name": region_name,
                "config": Config(retries=RETRY_CONFIG),
            }

            # MinIO or other S3-compatible storage
            if endpoint_url:
                client_config["endpoint_url"] = endpoint_url

            # Otherwise use environment/IAM role
            if access_key and secret_key:
                client_config["aws_access_key_id"] = access_key
                client_config["aws_secret_access_key"] = secret_key

            self._client = boto3.client(**client_config)

            logger.info("StorageService S3 client initialized successfully")

        except NoCredentialsError as e:
            error_msg = (
                "S3 credentials not found. Configure S3_ACCESS_KEY_ID and "
                "S3_SECRET_ACCESS_KEY or the default AWS credential chain."
            )
            logger.error(f"Credential configuration error: {error_msg}")
            raise StorageCredentialsError(error_msg) from e

        except BotoCoreError as e:
            error_msg = f"Failed to initialize S3 client: {str(e)}"
            logger.error(error_msg)
            raise StorageConnectionError(error_msg) from e

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorageService":
        return cls(
            bucket_name=settings.s3_bucket_name,
            region_name=settings.s3_region,
            url_host=settings.object_url_host,
            endpoint_url=settings.s3_endpoint_url,
            access_key=settings.s3_access_key_id,
            secret_key=settings.s3_secret_access_key,
        )

    def object_url(self, key: str) -> str:
        """Canonical retrieval URL for an object key."""
        return f"https://{self.bucket_name}.{self.url_host}/{key}"

    async def put_object(self, key: str, file_path: Path, content_type: str) -> str:
        """
        Upload a file as a single object and return its canonical URL.

        The body is streamed from ``file_path``; nothing is buffered in
        memory. Transient failures are retried by the boto3 client itself.

        Args:
            key: Object key, e.g. ``landscape/<name>.mp4``
            file_path: Local file holding the object body
            content_type: Content-Type stored with the object

        Returns:
            str: ``https://{bucket}.{url_host}/{key}``

        Raises:
            StorageOperationError: If the put fails terminally
        """
        logger.info(f"Putting object key={key} into bucket={self.bucket_name}")

        @async_wrap
        def _put_object() -> Dict[str, Any]:
            with open(file_path, "rb") as body:
                return self._client.put_object(
                    Bucket=self.bucket_name,
                    Key=key,
                    Body=body,
                    ContentType=content_type,
                )

        try:
            await _put_object()
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            error_msg = f"Failed to put object {key}: {error_code}"
            logger.error(f"{error_msg} ({e})")
            raise StorageOperationError(error_msg) from e
        except (BotoCoreError, OSError) as e:
            error_msg = f"Failed to put object {key}: {str(e)}"
            logger.error(error_msg)
            raise StorageOperationError(error_msg) from e

        url = self.object_url(key)
        logger.info(f"Successfully stored object {key}")
        return url


class _StorageServiceContainer:
    """Container for the storage service singleton to avoid global statements."""

    service: StorageService | None = None


_container = _StorageServiceContainer()


def init_storage_service(settings: Settings) -> StorageService:
    """Create the process-wide storage service (called from the lifespan)."""
    if _container.service is None:
        _container.service = StorageService.from_settings(settings)
    return _container.service


def close_storage_service() -> None:
    _container.service = None


def get_storage_service() -> StorageService:
    """
    Get the process-wide storage service.

    Raises:
        RuntimeError: If the service has not been initialized.
    """
    if _container.service is None:
        raise RuntimeError(
            "Storage service not initialized. Call init_storage_service() during startup."
        )
    return _container.service
