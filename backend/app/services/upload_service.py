"""
Tubely Upload Service Module

This module composes the upload pipeline for the two asset kinds a video
record can carry:

- Thumbnails: authenticated, size-capped image part written to the local
  assets root; the record's ``thumbnail_url`` points at the asset server.
- Videos: the record's owner is checked before the body is read, the part is
  streamed to a scratch file, probed for orientation, remuxed for fast-start
  playback, and put to the object store under ``{orientation}/{name}.mp4``;
  the record's ``video_url`` is the canonical object URL.

The service integrates with:
- MultipartIntake: streamed, capped multipart parsing
- AspectClassifier / FastStartTransformer: ffprobe and ffmpeg wrappers
- LocalAssetStore / StorageService: thumbnail and video backing stores
- VideoRepository: the MongoDB metadata record

Every temporary artifact of a video upload is registered on a per-request
``AsyncExitStack`` as soon as it exists, so scratch files are removed on
success, failure, and cancellation alike. Lower-level failures are logged in
full and surfaced to the client as terse 500 responses.
"""

import logging
import os
import tempfile
import uuid

from contextlib import AsyncExitStack
from pathlib import Path

from starlette.requests import Request

from app.config import Settings
from app.core.auth import get_bearer_token, validate_jwt
from app.core.exceptions import (
    BadRequestError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    PayloadTooLargeError,
)
from app.models.video import THUMBNAIL_URL_FIELD, VIDEO_URL_FIELD, Video
from app.services.faststart import FastStartTransformer, RemuxError, processing_output_path
from app.services.intake import (
    THUMBNAIL_MEDIA_TYPES,
    VIDEO_MEDIA_TYPES,
    MultipartIntake,
    extension_for,
)
from app.services.local_storage import LocalAssetStore, LocalStorageError
from app.services.media_probe import AspectClassifier, ProbeError
from app.services.storage_service import StorageOperationError, StorageService
from app.services.video_repository import (
    VideoNotFoundError,
    VideoRepository,
    VideoRepositoryError,
    VideoUpdateError,
)
from app.utils.security import generate_asset_name


# Configure module logger
logger = logging.getLogger(__name__)

THUMBNAIL_FIELD = "thumbnail"
VIDEO_FIELD = "video"
VIDEO_CONTENT_TYPE = "video/mp4"
SCRATCH_PREFIX = "tubely-upload-"


def parse_video_id(raw: str) -> uuid.UUID:
    """
    Parse a path-supplied video ID.

    Raises:
        BadRequestError: If the value is not a UUID.
    """
    try:
        return uuid.UUID(raw)
    except (ValueError, AttributeError) as e:
        raise BadRequestError("Invalid video ID") from e


def remove_scratch_file(path: Path) -> None:
    """Delete a scratch file if it exists; failures are logged."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to remove scratch file {path}: {e}")


class UploadService:
    """
    Upload pipeline orchestrator for thumbnails and videos.

    Attributes:
        settings: Immutable application settings
        repository: Video metadata repository
        local_store: Thumbnail store under the assets root
        object_store: S3 storage service for videos
        classifier: Video orientation classifier
        transformer: Fast-start remuxer
        intake: Multipart body reader

    Example:
        ```python
        service = UploadService(
            settings=settings,
            repository=VideoRepository(db.get_videos_collection()),
            local_store=LocalAssetStore(settings.assets_root, settings.public_base_url),
            object_store=get_storage_service(),
            classifier=FFprobeAspectClassifier(settings.ffprobe_path),
            transformer=FFmpegFastStartTransformer(settings.ffmpeg_path),
        )
        video = await service.upload_thumbnail(request, video_id)
        ```
    """

    def __init__(
        self,
        settings: Settings,
        repository: VideoRepository,
        local_store: LocalAssetStore,
        object_store: StorageService,
        classifier: AspectClassifier,
        transformer: FastStartTransformer,
        intake: MultipartIntake | None = None,
    ) -> None:
        self.settings = settings
        self.repository = repository
        self.local_store = local_store
        self.object_store = object_store
        self.classifier = classifier
        self.transformer = transformer
        self.intake = intake or MultipartIntake()

    # =========================================================================
    # Shared stages
    # =========================================================================

    def authenticate(self, request: Request) -> uuid.UUID:
        """Verify the request's bearer credential and return the caller ID."""
        token = get_bearer_token(request.headers)
        return validate_jwt(token, self.settings.jwt_secret, self.settings.jwt_issuer)

    async def load_owned_video(self, video_id: uuid.UUID, user_id: uuid.UUID) -> Video:
        """
        Load a video record and check that ``user_id`` owns it.

        Raises:
            NotFoundError: If the record does not exist.
            ForbiddenError: If the caller is not the owner.
            InternalError: If the metadata store fails.
        """
        try:
            video = await self.repository.get_video(video_id)
        except VideoNotFoundError as e:
            raise NotFoundError("Video not found") from e
        except VideoRepositoryError as e:
            logger.error(f"Failed to load video {video_id}: {e}")
            raise InternalError("Couldn't get video") from e

        if video.user_id != user_id:
            logger.warning(f"User {user_id} attempted to modify video {video_id} owned by another user")
            raise ForbiddenError(
                "You don't have permission to modify this video",
                status_code=self.settings.owner_mismatch_status_code,
            )
        return video

    async def commit(self, video: Video, field: str) -> None:
        try:
            await self.repository.update_video(video, [field])
        except VideoUpdateError as e:
            logger.error(f"Failed to commit {field} for video {video.id}: {e}")
            raise InternalError("Couldn't update video") from e

    def check_declared_length(self, request: Request, size_limit: int) -> None:
        """Reject a request whose Content-Length already exceeds the cap."""
        declared = request.headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > size_limit:
            raise PayloadTooLargeError(f"Request body exceeds {size_limit} bytes")

    # =========================================================================
    # Thumbnail upload
    # =========================================================================

    async def upload_thumbnail(self, request: Request, raw_video_id: str) -> Video:
        """
        Store a thumbnail for a video and record its public URL.

        Stage order: parse ID, authenticate, read the ``thumbnail`` part
        (10 MiB cap), check the media type, check ownership, name and write
        the asset, then commit ``thumbnail_url``.

        Returns:
            Video: The updated record.
        """
        video_id = parse_video_id(raw_video_id)
        user_id = self.authenticate(request)

        logger.info(f"Uploading thumbnail for video {video_id} by user {user_id}")

        async with AsyncExitStack() as stack:
            part = await self.intake.accept(
                request, THUMBNAIL_FIELD, self.settings.thumbnail_max_bytes
            )
            stack.push_async_callback(part.close)

            extension = extension_for(part.media_type, THUMBNAIL_MEDIA_TYPES)
            video = await self.load_owned_video(video_id, user_id)

            try:
                data = await part.read()
            except OSError as e:
                logger.error(f"Failed to read thumbnail part for video {video_id}: {e}")
                raise InternalError("Couldn't read thumbnail") from e

        name = generate_asset_name(extension)
        try:
            url = await self.local_store.put(data, name)
        except LocalStorageError as e:
            logger.error(f"Failed to store thumbnail for video {video_id}: {e}")
            raise InternalError("Couldn't save thumbnail") from e

        video.thumbnail_url = url
        await self.commit(video, THUMBNAIL_URL_FIELD)

        logger.info(f"Thumbnail stored for video {video_id}: {name}")
        return video

    # =========================================================================
    # Video upload
    # =========================================================================

    async def upload_video(self, request: Request, raw_video_id: str) -> Video:
        """
        Process and publish a video file and record its object URL.

        Stage order: enforce the 1 GiB cap, parse ID, authenticate, load the
        record and check ownership before touching the body, read the
        ``video`` part, check the media type, stream it to a scratch file,
        probe orientation, remux for fast start, put the object, then commit
        ``video_url``.

        Returns:
            Video: The updated record.
        """
        size_limit = self.settings.video_max_bytes
        self.check_declared_length(request, size_limit)

        video_id = parse_video_id(raw_video_id)
        user_id = self.authenticate(request)
        video = await self.load_owned_video(video_id, user_id)

        logger.info(f"Uploading video for video {video_id} by user {user_id}")

        async with AsyncExitStack() as stack:
            part = await self.intake.accept(request, VIDEO_FIELD, size_limit)
            stack.push_async_callback(part.close)

            extension = extension_for(part.media_type, VIDEO_MEDIA_TYPES)

            scratch = self._create_scratch_file(extension)
            stack.callback(remove_scratch_file, scratch)

            try:
                written = await part.copy_to(scratch)
            except OSError as e:
                logger.error(f"Failed to write scratch file {scratch}: {e}")
                raise InternalError("Couldn't write file to disk") from e
            logger.debug(f"Wrote {written} bytes to scratch file {scratch}")

            try:
                aspect = await self.classifier.classify(scratch)
            except ProbeError as e:
                logger.error(f"Probe failed for video {video_id}: {e}; output: {e.output}")
                raise InternalError("Couldn't determine video aspect ratio") from e

            # Registered before the remux runs so a partial output is removed too
            stack.callback(remove_scratch_file, processing_output_path(scratch))
            try:
                processed = await self.transformer.remux(scratch)
            except RemuxError as e:
                logger.error(f"Remux failed for video {video_id}: {e}; stderr: {e.output}")
                raise InternalError("Couldn't process video") from e
            if processed != processing_output_path(scratch):
                stack.callback(remove_scratch_file, processed)

            key = f"{aspect.value}/{generate_asset_name('mp4')}"
            try:
                url = await self.object_store.put_object(key, processed, VIDEO_CONTENT_TYPE)
            except StorageOperationError as e:
                logger.error(f"Object put failed for video {video_id}: {e}")
                raise InternalError("Couldn't upload video") from e

            video.video_url = url
            await self.commit(video, VIDEO_URL_FIELD)

        logger.info(f"Video stored for video {video_id}: {key}")
        return video

    def _create_scratch_file(self, extension: str) -> Path:
        scratch_dir = self.settings.scratch_dir
        try:
            if scratch_dir is not None:
                scratch_dir.mkdir(parents=True, exist_ok=True)
            fd, name = tempfile.mkstemp(
                prefix=SCRATCH_PREFIX,
                suffix=f".{extension}",
                dir=scratch_dir,
            )
            os.close(fd)
        except OSError as e:
            logger.error(f"Failed to create scratch file: {e}")
            raise InternalError("Couldn't create temp file") from e
        return Path(name)
