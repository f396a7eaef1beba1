"""
Tubely Ingest Backend Application Package

This package contains the FastAPI application that receives media for Tubely
videos. Owners upload a thumbnail image or a video payload for a video record
they own; the service stores it and records the resulting URL on the record.

- Bearer token authentication (HS256, issuer ``tubely-access``)
- Streamed multipart intake with per-endpoint size caps
- Fast-start remuxing and orientation filing of videos (ffmpeg / ffprobe)
- Thumbnails on local disk, videos in S3-compatible object storage
- Video metadata in MongoDB

Package Structure:
- api/: REST API endpoints organized by version (v1)
- core/: Core infrastructure (auth, database, error taxonomy)
- models/: Pydantic data models
- services/: Upload pipeline and its collaborators
- utils/: Logging, asset naming and subprocess helpers
"""

__version__ = "1.0.0"
__app_name__ = "tubely-ingest"
