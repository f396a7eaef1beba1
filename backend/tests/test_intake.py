"""
Tubely Multipart Intake Test Suite

Tests for MultipartIntake.accept and the media type helpers, driven with
hand-built Starlette requests so body chunking and headers are exact.
"""

from pathlib import Path

import pytest

from app.core.exceptions import (
    BadRequestError,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
)
from app.services.intake import (
    THUMBNAIL_MEDIA_TYPES,
    VIDEO_MEDIA_TYPES,
    MultipartIntake,
    extension_for,
    normalize_media_type,
)
from conftest import MP4_BYTES, PNG_BYTES, build_multipart, make_request


# =============================================================================
# Media Type Helpers
# =============================================================================


class TestMediaTypes:
    """normalize_media_type and extension_for."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("image/png", "image/png"),
            ("IMAGE/JPEG", "image/jpeg"),
            ("video/mp4; codecs=avc1", "video/mp4"),
            ("  video/MP4 ;x=y", "video/mp4"),
            (None, ""),
            ("", ""),
        ],
    )
    def test_normalize(self, raw, expected) -> None:
        assert normalize_media_type(raw) == expected

    def test_extensions(self) -> None:
        assert extension_for("image/jpeg", THUMBNAIL_MEDIA_TYPES) == "jpeg"
        assert extension_for("image/png", THUMBNAIL_MEDIA_TYPES) == "png"
        assert extension_for("video/mp4", VIDEO_MEDIA_TYPES) == "mp4"

    @pytest.mark.parametrize(
        ("media_type", "allowed"),
        [
            ("video/mp4", THUMBNAIL_MEDIA_TYPES),
            ("image/png", VIDEO_MEDIA_TYPES),
            ("image/gif", THUMBNAIL_MEDIA_TYPES),
            ("", VIDEO_MEDIA_TYPES),
        ],
    )
    def test_disallowed(self, media_type, allowed) -> None:
        with pytest.raises(UnsupportedMediaTypeError) as exc_info:
            extension_for(media_type, allowed)

        assert exc_info.value.status_code == 400


# =============================================================================
# Intake
# =============================================================================


def multipart_request(field="thumbnail", payload=PNG_BYTES, content_type="image/png", **kw):
    body, header = build_multipart(field, payload, content_type)
    headers = {"Content-Type": header}
    if kw.pop("with_length", True):
        headers["Content-Length"] = str(len(body))
    return body, make_request(body, headers, **kw)


class TestMultipartIntake:
    """MultipartIntake.accept."""

    @pytest.mark.asyncio
    async def test_accepts_named_file_part(self) -> None:
        _, request = multipart_request()

        part = await MultipartIntake().accept(request, "thumbnail", 1024)
        try:
            assert part.media_type == "image/png"
            assert await part.read() == PNG_BYTES
        finally:
            await part.close()

    @pytest.mark.asyncio
    async def test_copy_to_streams_to_disk(self, tmp_path: Path) -> None:
        _, request = multipart_request("video", MP4_BYTES, "video/mp4", chunk_size=7)
        target = tmp_path / "scratch.mp4"

        part = await MultipartIntake().accept(request, "video", 4096)
        try:
            written = await part.copy_to(target)
        finally:
            await part.close()

        assert written == len(MP4_BYTES)
        assert target.read_bytes() == MP4_BYTES

    @pytest.mark.asyncio
    async def test_body_exactly_at_limit_without_length(self) -> None:
        body, request = multipart_request(with_length=False, chunk_size=5)

        part = await MultipartIntake().accept(request, "thumbnail", len(body))
        await part.close()

    @pytest.mark.asyncio
    async def test_body_one_byte_over_limit_without_length(self) -> None:
        body, request = multipart_request(with_length=False, chunk_size=5)

        with pytest.raises(PayloadTooLargeError) as exc_info:
            await MultipartIntake().accept(request, "thumbnail", len(body) - 1)

        assert exc_info.value.status_code == 413

    @pytest.mark.asyncio
    async def test_declared_length_over_limit(self) -> None:
        body, request = multipart_request()

        with pytest.raises(PayloadTooLargeError):
            await MultipartIntake().accept(request, "thumbnail", len(body) - 1)

    @pytest.mark.asyncio
    async def test_not_multipart(self) -> None:
        request = make_request(PNG_BYTES, {"Content-Type": "image/png"})

        with pytest.raises(BadRequestError):
            await MultipartIntake().accept(request, "thumbnail", 1024)

    @pytest.mark.asyncio
    async def test_missing_boundary(self) -> None:
        request = make_request(PNG_BYTES, {"Content-Type": "multipart/form-data"})

        with pytest.raises(BadRequestError, match="boundary"):
            await MultipartIntake().accept(request, "thumbnail", 1024)

    @pytest.mark.asyncio
    async def test_missing_field(self) -> None:
        _, request = multipart_request(field="image")

        with pytest.raises(BadRequestError, match="thumbnail"):
            await MultipartIntake().accept(request, "thumbnail", 1024)

    @pytest.mark.asyncio
    async def test_plain_field_is_not_a_file(self) -> None:
        boundary = "b"
        body = (
            f"--{boundary}\r\n"
            'Content-Disposition: form-data; name="thumbnail"\r\n\r\n'
            "just text\r\n"
            f"--{boundary}--\r\n"
        ).encode()
        request = make_request(body, {"Content-Type": f"multipart/form-data; boundary={boundary}"})

        with pytest.raises(BadRequestError, match="not a file"):
            await MultipartIntake().accept(request, "thumbnail", 1024)

    @pytest.mark.asyncio
    async def test_invalid_content_length(self) -> None:
        body, header = build_multipart("thumbnail", PNG_BYTES, "image/png")
        request = make_request(body, {"Content-Type": header, "Content-Length": "lots"})

        with pytest.raises(BadRequestError):
            await MultipartIntake().accept(request, "thumbnail", 1024)
