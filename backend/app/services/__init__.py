"""
Services module for the Tubely ingestion backend.

This package contains the upload pipeline and the collaborators it is built
from:

- upload_service: Thumbnail and video upload orchestration
- intake: Size-capped multipart parsing and media type checks
- media_probe: ffprobe-based aspect ratio classification
- faststart: ffmpeg fast-start remuxing
- local_storage: Thumbnail writes under the assets root
- storage_service: S3-compatible object storage for videos
- video_repository: Video metadata reads and URL updates in MongoDB

Collaborators are passed to UploadService explicitly so tests can swap any of
them for a fake.
"""
