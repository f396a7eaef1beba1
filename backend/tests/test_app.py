"""
Tubely Application Wiring Test Suite

Tests for the pieces around the upload pipeline:
- Settings validation and derived values
- Health and readiness endpoints
- Error rendering for framework and unexpected errors
- JSON log formatting with request context
"""

import json
import logging

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from app.config import THUMBNAIL_MAX_BYTES, VIDEO_MAX_BYTES, Settings
from app.main import app
from app.utils.logger import JSONFormatter, add_log_context


# =============================================================================
# Settings
# =============================================================================


class TestSettings:
    """Settings defaults, validators and derived values."""

    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)

        assert settings.thumbnail_max_bytes == THUMBNAIL_MAX_BYTES == 10 * 1024 * 1024
        assert settings.video_max_bytes == VIDEO_MAX_BYTES == 1024 * 1024 * 1024
        assert settings.owner_mismatch_status_code == 401
        assert settings.object_url_host == "s3.us-east-2.amazonaws.com"
        assert settings.public_base_url == "http://localhost:8091"

    def test_public_port_overrides_port(self) -> None:
        settings = Settings(_env_file=None, public_scheme="HTTPS", public_host="cdn", public_port=443)

        assert settings.public_base_url == "https://cdn:443"

    def test_region_host_override(self) -> None:
        settings = Settings(_env_file=None, s3_region_host="minio.local:9000")

        assert settings.object_url_host == "minio.local:9000"

    def test_settings_are_frozen(self) -> None:
        settings = Settings(_env_file=None)

        with pytest.raises(ValidationError):
            settings.port = 9000

    @pytest.mark.parametrize(
        "overrides",
        [
            {"owner_mismatch_status_code": 404},
            {"log_level": "verbose"},
            {"app_env": "qa"},
            {"public_scheme": "ftp"},
            {"jwt_secret": "short"},
        ],
    )
    def test_invalid_values(self, overrides) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **overrides)

    def test_cors_origins_from_comma_list(self) -> None:
        settings = Settings(_env_file=None, cors_origins="http://a.test, http://b.test")

        assert settings.cors_origins == ["http://a.test", "http://b.test"]


# =============================================================================
# Endpoints
# =============================================================================


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


class TestCoreEndpoints:
    """/health, /ready and error rendering."""

    def test_health(self, client) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers
        assert response.headers["X-Process-Time"].endswith("ms")

    def test_request_id_is_propagated(self, client) -> None:
        response = client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    def test_ready_without_database(self, client) -> None:
        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json()["ready"] is False
        assert response.json()["checks"] == {"mongodb": False}

    def test_unknown_route_uses_error_shape(self, client) -> None:
        response = client.get("/api/nope")

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}

    def test_wrong_method(self, client) -> None:
        response = client.get("/api/video_upload/6f1c1c3e-6f1a-4f0e-9d53-5d8a9b3f1e27")

        assert response.status_code == 405
        assert "error" in response.json()


# =============================================================================
# Logging
# =============================================================================


class TestJSONFormatter:
    """JSONFormatter output."""

    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord(
            "app.services.upload_service", logging.INFO, __file__, 1, "stored %s", ("abc",), None
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_core_fields(self) -> None:
        entry = json.loads(JSONFormatter().format(self._record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "app.services.upload_service"
        assert entry["message"] == "stored abc"
        assert "extra" not in entry

    def test_extra_fields(self) -> None:
        entry = json.loads(JSONFormatter().format(self._record(request_id="req-1")))

        assert entry["extra"] == {"request_id": "req-1"}

    def test_context_adapter_merges_extra(self, caplog) -> None:
        logger = logging.getLogger("tests.context")
        ctx_logger = add_log_context(logger, request_id="req-9")

        with caplog.at_level(logging.INFO, logger="tests.context"):
            ctx_logger.info("hello", extra={"video_id": "v1"})

        record = caplog.records[-1]
        assert record.request_id == "req-9"
        assert record.video_id == "v1"
