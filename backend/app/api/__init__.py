"""
Tubely Ingest API Package.

Package Structure:
    - v1/: Version 1 API endpoints, mounted under ``/api``
        - upload.py: Thumbnail and video upload endpoints
"""
