"""
Tubely API v1 Router Aggregator.

This module combines the v1 endpoint routers into a single APIRouter for
registration with the main FastAPI application, which mounts it under the
``/api`` prefix.

Router Structure:
    - /thumbnail_upload/{video_id}: Thumbnail image upload
    - /video_upload/{video_id}: Video payload upload
"""

import logging

from fastapi import APIRouter

from app.api.v1.upload import router as upload_router


# Configure logger
logger = logging.getLogger(__name__)

# Create the main API v1 router
api_router = APIRouter()

# Track which routers were loaded
loaded_routers: list[str] = []


# ==============================================================================
# Router Registration
# ==============================================================================

api_router.include_router(upload_router, tags=["upload"])
loaded_routers.append("upload")
logger.debug("Loaded upload router")


# ==============================================================================
# Exports
# ==============================================================================

__all__ = ["api_router", "loaded_routers"]
