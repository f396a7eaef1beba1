"""
Models Package for Tubely Ingest.

Models Overview:
    - Video: Video metadata record with its thumbnail and video URLs

Example Usage:
    ```python
    from app.models import Video

    video = Video.from_document(document)
    video.thumbnail_url = url
    ```
"""

from app.models.video import (
    THUMBNAIL_URL_FIELD,
    URL_FIELDS,
    VIDEO_URL_FIELD,
    Video,
)


__all__ = [
    "THUMBNAIL_URL_FIELD",
    "URL_FIELDS",
    "VIDEO_URL_FIELD",
    "Video",
]
