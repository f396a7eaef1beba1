"""
HTTP-mapped error taxonomy for the upload pipeline.

Every failure the upload endpoints can report is one of the classes below.
Lower layers (probe, remux, storage, metadata) raise their own service errors;
the orchestrator translates them into this taxonomy, and the exception handler
registered in ``app.main`` renders them as ``{"error": "<message>"}``.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse


class UploadError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class BadRequestError(UploadError):
    """Malformed video ID, malformed multipart body, or missing form part."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class UnsupportedMediaTypeError(UploadError):
    """Declared media type is outside the endpoint's allow-list."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Unsupported media type"


class PayloadTooLargeError(UploadError):
    """Request body exceeds the endpoint's cap."""

    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_message = "Request body too large"


class MissingCredentialError(UploadError):
    """No bearer credential, or a malformed Authorization header."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Couldn't find JWT"


class InvalidCredentialError(UploadError):
    """Bearer credential failed signature or claim verification."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Couldn't validate JWT"


class ForbiddenError(UploadError):
    """Authenticated caller is not the owner of the target video."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You don't have permission to modify this video"


class NotFoundError(UploadError):
    """Target video does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Video not found"


class InternalError(UploadError):
    """Storage, subprocess, object-store, or metadata failure."""


async def upload_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Render an UploadError as the service's JSON error body."""
    if not isinstance(exc, UploadError):
        raise exc
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})
