"""
Video Pydantic model for Tubely.

A video record is created by the catalogue side of the service; the upload
pipeline only reads it to check ownership and writes back the two retrieval
URL fields. Descriptive fields, and any other stored fields, are carried
through verbatim.
"""

import uuid

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# Fields the upload pipeline is allowed to write
THUMBNAIL_URL_FIELD = "thumbnail_url"
VIDEO_URL_FIELD = "video_url"
URL_FIELDS: tuple[str, ...] = (THUMBNAIL_URL_FIELD, VIDEO_URL_FIELD)


class Video(BaseModel):
    """
    Pydantic model for a video metadata record.

    Attributes:
        id: Video identifier (stored as the string ``_id`` in MongoDB)
        user_id: Owner of the video; never written by the upload pipeline
        title: Display title
        description: Free-form description
        thumbnail_url: Public URL of the uploaded thumbnail, if any
        video_url: Canonical object URL of the processed video, if any
        created_at: Creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)
    """

    id: uuid.UUID = Field(..., description="Video identifier")

    user_id: uuid.UUID = Field(..., description="Owning user's identifier")

    title: str = Field(default="", description="Display title")

    description: str = Field(default="", description="Free-form description")

    thumbnail_url: str | None = Field(default=None, description="Public thumbnail URL")

    video_url: str | None = Field(default=None, description="Canonical video object URL")

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Creation timestamp (UTC)"
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Last modification timestamp (UTC)"
    )

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "id": "6f1c1c3e-6f1a-4f0e-9d53-5d8a9b3f1e27",
                "user_id": "0b8b4c8e-1d1f-4a7e-9a64-0b7d41a4c2b5",
                "title": "Boots on the ground",
                "description": "A walk through the old town",
                "thumbnail_url": "http://localhost:8091/assets/Zm9v.png",
                "video_url": "https://tubely-videos.s3.us-east-2.amazonaws.com/landscape/YmFy.mp4",
                "created_at": "2026-01-15T10:30:00Z",
                "updated_at": "2026-01-15T10:30:00Z",
            }
        },
    )

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Video":
        """Build a Video from a MongoDB document keyed by ``_id``."""
        data = dict(document)
        data["id"] = data.pop("_id")
        return cls.model_validate(data)

    def to_document(self) -> dict[str, Any]:
        """Serialize to a MongoDB document with string UUIDs."""
        data = self.model_dump()
        data["_id"] = str(data.pop("id"))
        data["user_id"] = str(data["user_id"])
        return data
