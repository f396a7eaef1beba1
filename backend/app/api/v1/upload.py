"""
FastAPI Upload Router for Tubely

This module exposes the two media ingestion endpoints:
- POST /thumbnail_upload/{video_id} - Image thumbnail for a video (JPEG or PNG, 10 MiB)
- POST /video_upload/{video_id} - Video payload for a video (MP4, 1 GiB)

Both endpoints authenticate with a bearer access token, only allow the
video's owner to write, and answer with the updated video record. The body
is read by the upload service itself rather than through ``File(...)`` so the
video endpoint can check ownership before any of the payload is consumed.

Errors are raised as ``UploadError`` subclasses and rendered by the
application's exception handler as ``{"error": "<message>"}``.
"""

import logging

from fastapi import APIRouter, Depends, Request, status

from app.config import Settings, get_settings
from app.core.database import get_db_client
from app.models.video import Video
from app.services.faststart import FFmpegFastStartTransformer
from app.services.local_storage import LocalAssetStore
from app.services.media_probe import FFprobeAspectClassifier
from app.services.storage_service import get_storage_service
from app.services.upload_service import UploadService
from app.services.video_repository import VideoRepository


# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"description": "Invalid video ID, malformed body, or unsupported media type"},
    401: {"description": "Missing or invalid credential, or caller does not own the video"},
    404: {"description": "Video not found"},
    413: {"description": "Request body too large"},
    500: {"description": "Storage, processing, or metadata failure"},
}


# ============================================================================
# Dependency Injection
# ============================================================================


def get_upload_service(settings: Settings = Depends(get_settings)) -> UploadService:
    """
    Build the upload service for a request.

    Long-lived clients (MongoDB, S3) come from the containers initialized in
    the application lifespan; the per-request objects are cheap wrappers.
    """
    return UploadService(
        settings=settings,
        repository=VideoRepository(get_db_client().get_videos_collection()),
        local_store=LocalAssetStore(settings.assets_root, settings.public_base_url),
        object_store=get_storage_service(),
        classifier=FFprobeAspectClassifier(
            settings.ffprobe_path, settings.media_tool_timeout_seconds
        ),
        transformer=FFmpegFastStartTransformer(
            settings.ffmpeg_path, settings.media_tool_timeout_seconds
        ),
    )


# ============================================================================
# Upload Endpoints
# ============================================================================


@router.post(
    "/thumbnail_upload/{video_id}",
    response_model=Video,
    status_code=status.HTTP_200_OK,
    summary="Upload a video thumbnail",
    description="Store a JPEG or PNG thumbnail (max 10 MiB) and set the video's thumbnail_url.",
    responses=ERROR_RESPONSES,
)
async def upload_thumbnail(
    video_id: str,
    request: Request,
    upload_service: UploadService = Depends(get_upload_service),
) -> Video:
    """
    Upload a thumbnail image for a video.

    Expects a multipart body with a ``thumbnail`` file part.

    Args:
        video_id: UUID of the target video (validated by the service so a bad
            value yields 400).
        request: Raw request; the body is streamed by the service.
        upload_service: Injected upload service.

    Returns:
        Video: The updated video record.
    """
    logger.info(f"Thumbnail upload request for video {video_id}")
    return await upload_service.upload_thumbnail(request, video_id)


@router.post(
    "/video_upload/{video_id}",
    response_model=Video,
    status_code=status.HTTP_200_OK,
    summary="Upload a video file",
    description=(
        "Store an MP4 video (max 1 GiB), remuxed for fast start and filed by "
        "orientation, and set the video's video_url."
    ),
    responses=ERROR_RESPONSES,
)
async def upload_video(
    video_id: str,
    request: Request,
    upload_service: UploadService = Depends(get_upload_service),
) -> Video:
    """
    Upload the video payload for a video.

    Expects a multipart body with a ``video`` file part.
    """
    logger.info(f"Video upload request for video {video_id}")
    return await upload_service.upload_video(request, video_id)
