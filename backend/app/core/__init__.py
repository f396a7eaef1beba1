"""
Core infrastructure for the Tubely ingestion backend.

- auth: Bearer token extraction and HS256 JWT validation
- database: MongoDB async client with Motor driver and connection pooling
- exceptions: Upload error taxonomy and its JSON error rendering
"""
