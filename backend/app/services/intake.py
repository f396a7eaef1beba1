"""
Multipart intake for Tubely uploads.

Accepts one named file part from a ``multipart/form-data`` request body while
enforcing a hard cap on the number of body bytes read. The body is parsed as
it streams in with Starlette's ``MultiPartParser``; file parts spool to a
temporary file past 1 MiB, so even a 1 GiB video is never held in memory.

Key Features:
- Content-Length pre-check and streamed byte counting against the cap
- Exactly ``size_limit`` bytes accepted, one more rejected with 413
- Declared media type normalization (lower-cased, parameters stripped)
- Allow-list checks and media-type to extension mapping
"""

import logging

from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path

import aiofiles

from starlette.datastructures import FormData, UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser
from starlette.requests import ClientDisconnect, Request

from app.core.exceptions import (
    BadRequestError,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
)


logger = logging.getLogger(__name__)

# Chunk size used when copying a spooled part to disk
COPY_CHUNK_SIZE = 1024 * 1024

# Admitted media types per endpoint, mapped to the stored file extension
MEDIA_TYPE_EXTENSIONS: dict[str, str] = {
    "image/jpeg": "jpeg",
    "image/png": "png",
    "video/mp4": "mp4",
}

THUMBNAIL_MEDIA_TYPES = frozenset({"image/jpeg", "image/png"})
VIDEO_MEDIA_TYPES = frozenset({"video/mp4"})


def normalize_media_type(content_type: str | None) -> str:
    """Lower-case a Content-Type value and drop its parameters."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def extension_for(media_type: str, allowed: frozenset[str]) -> str:
    """
    Map an admitted media type to its file extension.

    Raises:
        UnsupportedMediaTypeError: If the type is not in ``allowed``.
    """
    if media_type not in allowed or media_type not in MEDIA_TYPE_EXTENSIONS:
        raise UnsupportedMediaTypeError(f"Unsupported media type: {media_type or 'none'}")
    return MEDIA_TYPE_EXTENSIONS[media_type]


@dataclass
class ReceivedPart:
    """
    A file part taken from a parsed multipart body.

    Attributes:
        field_name: Form field the part arrived under
        upload: Starlette upload wrapper around the spooled part
        form: The parsed form, closed together with the part
    """

    field_name: str
    upload: UploadFile
    form: FormData

    @property
    def media_type(self) -> str:
        return normalize_media_type(self.upload.content_type)

    @property
    def size(self) -> int | None:
        return self.upload.size

    async def read(self) -> bytes:
        """Read the whole part into memory (thumbnails only)."""
        await self.upload.seek(0)
        return await self.upload.read()

    async def copy_to(self, path: Path) -> int:
        """
        Stream the part into ``path`` and return the number of bytes written.

        Raises:
            OSError: If the destination cannot be written.
        """
        await self.upload.seek(0)
        written = 0
        async with aiofiles.open(path, "wb") as out:
            while chunk := await self.upload.read(COPY_CHUNK_SIZE):
                await out.write(chunk)
                written += len(chunk)
        return written

    async def close(self) -> None:
        await self.form.close()


class MultipartIntake:
    """Reads one named file part from a size-capped multipart request."""

    async def accept(self, request: Request, field_name: str, size_limit: int) -> ReceivedPart:
        """
        Parse the request body and return the file part named ``field_name``.

        The caller must ``close()`` the returned part.

        Args:
            request: Incoming request whose body has not been read yet.
            field_name: Form field holding the file.
            size_limit: Maximum number of body bytes accepted.

        Raises:
            BadRequestError: Not multipart, malformed body, or the field is
                missing or not a file.
            PayloadTooLargeError: The body exceeds ``size_limit`` bytes.
        """
        content_type = request.headers.get("content-type", "")
        if normalize_media_type(content_type) != "multipart/form-data":
            raise BadRequestError("Request must be multipart/form-data")
        if "boundary=" not in content_type:
            raise BadRequestError("Missing multipart boundary")

        declared_length = request.headers.get("content-length")
        if declared_length is not None:
            try:
                if int(declared_length) > size_limit:
                    raise PayloadTooLargeError(f"Request body exceeds {size_limit} bytes")
            except ValueError as e:
                raise BadRequestError("Invalid Content-Length header") from e

        parser = MultiPartParser(request.headers, self._capped_stream(request, size_limit))
        try:
            form = await parser.parse()
        except MultiPartException as e:
            raise BadRequestError(f"Malformed multipart body: {e.message}") from e
        except ClientDisconnect as e:
            raise BadRequestError("Client disconnected during upload") from e
        except ValueError as e:
            # python-multipart parse errors
            raise BadRequestError("Malformed multipart body") from e

        part = form.get(field_name)
        if not isinstance(part, UploadFile):
            await form.close()
            if part is None:
                raise BadRequestError(f"Missing form file: {field_name}")
            raise BadRequestError(f"Form field is not a file: {field_name}")

        logger.debug(
            f"Accepted part {field_name} ({part.size} bytes, {part.content_type or 'no type'})"
        )
        return ReceivedPart(field_name=field_name, upload=part, form=form)

    @staticmethod
    async def _capped_stream(request: Request, size_limit: int) -> AsyncIterator[bytes]:
        received = 0
        async for chunk in request.stream():
            received += len(chunk)
            if received > size_limit:
                logger.warning(f"Request body exceeded {size_limit} bytes, aborting read")
                raise PayloadTooLargeError(f"Request body exceeds {size_limit} bytes")
            yield chunk
