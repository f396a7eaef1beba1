"""
Video metadata repository for Tubely.

Reads and writes video records in the MongoDB ``videos`` collection. The
upload pipeline only ever needs two operations: load a record to check its
owner, and write back the retrieval URL fields once an asset is stored.

Updates are field-scoped ``$set`` operations rather than whole-document
replacement, so concurrent thumbnail and video uploads for the same record
do not clobber each other's URL. There is no compare-and-set: for the same
field, the last writer wins.
"""

import logging
import uuid

from collections.abc import Iterable
from datetime import UTC, datetime

from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from app.models.video import URL_FIELDS, Video


logger = logging.getLogger(__name__)


class VideoRepositoryError(Exception):
    """Base exception for video repository errors."""


class VideoNotFoundError(VideoRepositoryError):
    """Raised when no video record exists for an ID."""


class VideoUpdateError(VideoRepositoryError):
    """Raised when a video record could not be updated."""


class VideoRepository:
    """
    Data access for video metadata records.

    Attributes:
        collection: Motor collection holding video documents
    """

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self.collection = collection

    async def get_video(self, video_id: uuid.UUID) -> Video:
        """
        Load a video record by ID.

        Raises:
            VideoNotFoundError: If no record exists.
            VideoRepositoryError: If the driver fails or the stored document
                is not a valid record.
        """
        try:
            document = await self.collection.find_one({"_id": str(video_id)})
        except PyMongoError as e:
            logger.error(f"Failed to load video {video_id}: {e}")
            raise VideoRepositoryError(f"Failed to load video {video_id}") from e

        if document is None:
            raise VideoNotFoundError(f"Video {video_id} not found")

        try:
            return Video.from_document(document)
        except ValidationError as e:
            logger.error(f"Stored video {video_id} is not a valid record: {e}")
            raise VideoRepositoryError(f"Stored video {video_id} is malformed") from e

    async def update_video(self, video: Video, fields: Iterable[str]) -> None:
        """
        Persist the named URL fields of ``video``.

        Only ``thumbnail_url`` and ``video_url`` may be written; ``updated_at``
        is refreshed alongside them. The owner and descriptive fields are
        never touched.

        Args:
            video: Record carrying the new field values.
            fields: Names of the fields to write.

        Raises:
            ValueError: If a field outside the URL fields is named.
            VideoUpdateError: If the write fails or no record matched.
        """
        fields = tuple(fields)
        disallowed = [f for f in fields if f not in URL_FIELDS]
        if disallowed:
            raise ValueError(f"Fields not writable by uploads: {', '.join(disallowed)}")

        video.updated_at = datetime.now(UTC)
        changes = {name: getattr(video, name) for name in fields}
        changes["updated_at"] = video.updated_at

        try:
            result = await self.collection.update_one({"_id": str(video.id)}, {"$set": changes})
        except PyMongoError as e:
            logger.error(f"Failed to update video {video.id}: {e}")
            raise VideoUpdateError(f"Failed to update video {video.id}") from e

        if result.matched_count == 0:
            logger.warning(f"Update matched no document for video {video.id}")
            raise VideoUpdateError(f"Video {video.id} no longer exists")

        logger.info(f"Updated video {video.id}: {', '.join(fields)}")
