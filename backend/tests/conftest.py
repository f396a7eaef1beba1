"""
Pytest Configuration and Test Fixtures for Tubely Ingest

This module provides the shared fixtures for the backend test suite:
- Settings pointing the assets root and scratch directory at tmp_path
- In-memory video repository and fakes for the ffprobe/ffmpeg capabilities
- A StorageService wired to a MagicMock boto3 client
- Access token factories for owners, strangers, and expired sessions
- A FastAPI TestClient with the upload service injected via dependency_overrides
- Helpers for building raw multipart bodies and Starlette requests
"""

import uuid
from collections.abc import Iterator
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from app.api.v1.upload import get_upload_service
from app.config import Settings
from app.core.auth import make_jwt
from app.main import app
from app.models.video import Video
from app.services.faststart import RemuxError, processing_output_path
from app.services.local_storage import LocalAssetStore
from app.services.media_probe import AspectRatio, ProbeError
from app.services.storage_service import StorageService
from app.services.upload_service import UploadService
from app.services.video_repository import VideoNotFoundError, VideoUpdateError


TEST_JWT_SECRET = "test-secret-key-for-jwt-signing-minimum-32-chars"
TEST_BUCKET = "tubely-test-videos"
MULTIPART_BOUNDARY = "tubely-test-boundary"

# 200 bytes, the size of a small real thumbnail
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 192
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64
MP4_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 256


# ==============================================================================
# Pytest Configuration
# ==============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as endpoint-level test")


# ==============================================================================
# Fakes
# ==============================================================================


class FakeVideoRepository:
    """
    In-memory stand-in for VideoRepository.

    ``get_video`` hands out copies so a failed request can never mutate the
    stored record; only ``update_video`` writes back.
    """

    def __init__(self) -> None:
        self.videos: Dict[uuid.UUID, Video] = {}
        self.updates: List[Tuple[uuid.UUID, Tuple[str, ...]]] = []
        self.fail_updates = False

    def add(self, video: Video) -> Video:
        self.videos[video.id] = video.model_copy(deep=True)
        return video

    async def get_video(self, video_id: uuid.UUID) -> Video:
        if video_id not in self.videos:
            raise VideoNotFoundError(f"Video {video_id} not found")
        return self.videos[video_id].model_copy(deep=True)

    async def update_video(self, video: Video, fields) -> None:
        fields = tuple(fields)
        if self.fail_updates:
            raise VideoUpdateError(f"Failed to update video {video.id}")
        stored = self.videos[video.id]
        for name in fields:
            setattr(stored, name, getattr(video, name))
        self.updates.append((video.id, fields))


class FakeAspectClassifier:
    """AspectClassifier returning a fixed class, or raising a configured error."""

    def __init__(self, aspect: AspectRatio = AspectRatio.LANDSCAPE) -> None:
        self.aspect = aspect
        self.error: Optional[BaseException] = None
        self.calls: List[Path] = []
        self.seen_bytes: List[bytes] = []

    async def classify(self, path: Path) -> AspectRatio:
        self.calls.append(path)
        self.seen_bytes.append(path.read_bytes())
        if self.error is not None:
            raise self.error
        return self.aspect


class FakeFastStartTransformer:
    """
    FastStartTransformer that writes a marked copy of its input.

    With ``fail`` set, it leaves a partial output behind before raising, the
    way a crashing ffmpeg would.
    """

    MARKER = b"faststart:"

    def __init__(self) -> None:
        self.fail = False
        self.calls: List[Path] = []

    async def remux(self, path: Path) -> Path:
        self.calls.append(path)
        output = processing_output_path(path)
        if self.fail:
            output.write_bytes(b"partial")
            raise RemuxError("ffmpeg exited with status 1", "moov atom not found")
        output.write_bytes(self.MARKER + path.read_bytes())
        return output


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings with tmp_path-backed directories and test credentials."""
    return Settings(
        _env_file=None,
        app_env="testing",
        app_name="tubely-ingest-test",
        jwt_secret=TEST_JWT_SECRET,
        assets_root=tmp_path / "assets",
        scratch_dir=tmp_path / "scratch",
        public_scheme="http",
        public_host="localhost",
        port=8091,
        s3_bucket_name=TEST_BUCKET,
        s3_region="us-east-2",
    )


# ==============================================================================
# Service Fixtures
# ==============================================================================


@pytest.fixture
def fake_repository() -> FakeVideoRepository:
    return FakeVideoRepository()


@pytest.fixture
def fake_classifier() -> FakeAspectClassifier:
    return FakeAspectClassifier()


@pytest.fixture
def fake_transformer() -> FakeFastStartTransformer:
    return FakeFastStartTransformer()


@pytest.fixture
def mock_s3_client() -> MagicMock:
    """
    MagicMock boto3 client whose put_object captures the streamed body.

    Captured bodies are available as ``mock_s3_client.bodies[key]``.
    """
    client = MagicMock()
    client.bodies = {}

    def _put_object(**kwargs: Any) -> Dict[str, Any]:
        client.bodies[kwargs["Key"]] = kwargs["Body"].read()
        return {"ETag": '"etag"'}

    client.put_object.side_effect = _put_object
    return client


@pytest.fixture
def storage_service(mock_s3_client: MagicMock) -> StorageService:
    return StorageService(bucket_name=TEST_BUCKET, region_name="us-east-2", client=mock_s3_client)


@pytest.fixture
def upload_service(
    test_settings: Settings,
    fake_repository: FakeVideoRepository,
    storage_service: StorageService,
    fake_classifier: FakeAspectClassifier,
    fake_transformer: FakeFastStartTransformer,
) -> UploadService:
    return UploadService(
        settings=test_settings,
        repository=fake_repository,
        local_store=LocalAssetStore(test_settings.assets_root, test_settings.public_base_url),
        object_store=storage_service,
        classifier=fake_classifier,
        transformer=fake_transformer,
    )


# ==============================================================================
# Identity Fixtures
# ==============================================================================


@pytest.fixture
def owner_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def stranger_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def owned_video(fake_repository: FakeVideoRepository, owner_id: uuid.UUID) -> Video:
    """A draft video owned by ``owner_id`` with no URLs set."""
    return fake_repository.add(
        Video(id=uuid.uuid4(), user_id=owner_id, title="Boots on the ground", description="draft")
    )


@pytest.fixture
def auth_headers():
    """Factory building an Authorization header for a user ID."""

    def _headers(user_id: uuid.UUID, expires_in: timedelta = timedelta(hours=1)) -> Dict[str, str]:
        token = make_jwt(user_id, TEST_JWT_SECRET, expires_in=expires_in)
        return {"Authorization": f"Bearer {token}"}

    return _headers


# ==============================================================================
# Client Fixtures
# ==============================================================================


@pytest.fixture
def test_client(upload_service: UploadService) -> Iterator[TestClient]:
    """
    TestClient with the upload service replaced by the fake-backed one.

    The lifespan is not entered, so no MongoDB or S3 connection is attempted.
    """
    app.dependency_overrides[get_upload_service] = lambda: upload_service
    yield TestClient(app)
    app.dependency_overrides.clear()


# ==============================================================================
# Request Helpers
# ==============================================================================


def build_multipart(
    field: str,
    payload: bytes,
    content_type: str,
    filename: str = "upload.bin",
    boundary: str = MULTIPART_BOUNDARY,
) -> Tuple[bytes, str]:
    """Build a single-part multipart body and its Content-Type header."""
    head = (
        f"--{boundary}\r\n"
        f'Content-Disposition: form-data; name="{field}"; filename="{filename}"\r\n'
        f"Content-Type: {content_type}\r\n\r\n"
    ).encode()
    tail = f"\r\n--{boundary}--\r\n".encode()
    return head + payload + tail, f"multipart/form-data; boundary={boundary}"


def make_request(body: bytes, headers: Dict[str, str], chunk_size: int = 64) -> Request:
    """Build a Starlette request whose body arrives in ``chunk_size`` pieces."""
    chunks = [body[i : i + chunk_size] for i in range(0, len(body), chunk_size)] or [b""]
    messages = [
        {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
        for i, chunk in enumerate(chunks)
    ]

    async def receive() -> Dict[str, Any]:
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
    }
    return Request(scope, receive)
