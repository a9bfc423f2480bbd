# ABOUTME: Tests for the public bulletin endpoint and the health check.
# ABOUTME: Verifies validation, rate limiting, status mapping, and response headers.

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from ward_bulletin.config import Settings
from ward_bulletin.errors import (
    ERROR_MESSAGES,
    DatabaseError,
    NotFoundError,
    OperationTimeoutError,
)
from ward_bulletin.models import BulletinDocument, StoredBulletin
from ward_bulletin.services.records import RemoteRecordService
from ward_bulletin.web.app import create_app
from ward_bulletin.web.dependencies import client_identifier, get_record_service


@pytest.fixture
def mock_public_records():
    """Create a mock record service for the public endpoint."""
    return AsyncMock(spec=RemoteRecordService)


@pytest.fixture
def client(mock_settings: Settings, mock_public_records):
    """Create a test client whose record service is mocked."""
    app = create_app(mock_settings)
    app.dependency_overrides[get_record_service] = lambda: mock_public_records
    return TestClient(app, raise_server_exceptions=False)


def _stored(document: BulletinDocument) -> StoredBulletin:
    return StoredBulletin(
        id="b-1",
        slug="owner-00-2025-03-09-1741500000000",
        owner_id="owner-0001-aaaa",
        meeting_date="2025-03-09",
        meeting_type="sacrament",
        created_at=datetime(2025, 3, 8, 18, 0, tzinfo=UTC),
        profile_slug="maple-grove",
        document=document,
    )


class TestPublicBulletin:
    """Tests for GET /api/bulletin."""

    def test_returns_bulletin_with_cache_headers(
        self, client, mock_public_records, sample_document, mock_settings
    ):
        mock_public_records.resolve_public_bulletin.return_value = _stored(sample_document)

        response = client.get("/api/bulletin", params={"profileSlug": "maple-grove"})

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == "b-1"
        assert body["profile_slug"] == "maple-grove"
        assert body["document"]["ward_name"] == "Maple Grove Ward"
        assert response.headers["cache-control"] == mock_settings.public_cache_control
        assert response.headers["x-content-type-options"] == "nosniff"
        mock_public_records.resolve_public_bulletin.assert_awaited_once_with("maple-grove")

    def test_missing_slug(self, client, mock_public_records):
        response = client.get("/api/bulletin")

        assert response.status_code == 400
        assert response.json() == {"error": "Missing profileSlug"}
        mock_public_records.resolve_public_bulletin.assert_not_awaited()

    @pytest.mark.parametrize("slug", ["../etc", "Maple-Grove", "x" * 51])
    def test_invalid_slug_never_reaches_backend(self, client, mock_public_records, slug):
        response = client.get("/api/bulletin", params={"profileSlug": slug})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid profileSlug"}
        mock_public_records.resolve_public_bulletin.assert_not_awaited()

    @pytest.mark.parametrize(
        "message", ["User not found", "Bulletin not found", "No bulletins found"]
    )
    def test_not_found_messages(self, client, mock_public_records, message):
        mock_public_records.resolve_public_bulletin.side_effect = NotFoundError(message)

        response = client.get("/api/bulletin", params={"profileSlug": "maple-grove"})

        assert response.status_code == 404
        assert response.json() == {"error": message}

    def test_timeout_is_server_error(self, client, mock_public_records):
        mock_public_records.resolve_public_bulletin.side_effect = OperationTimeoutError()

        response = client.get("/api/bulletin", params={"profileSlug": "maple-grove"})

        assert response.status_code == 500
        assert response.json() == {"error": "Operation timed out"}

    def test_backend_failure_hides_details(self, client, mock_public_records):
        mock_public_records.resolve_public_bulletin.side_effect = DatabaseError(
            "relation users does not exist"
        )

        response = client.get("/api/bulletin", params={"profileSlug": "maple-grove"})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    def test_rate_limited(self, mock_settings, mock_public_records, sample_document):
        settings = mock_settings.model_copy(update={"lenient_rate_limit_requests": 2})
        app = create_app(settings)
        app.dependency_overrides[get_record_service] = lambda: mock_public_records
        client = TestClient(app, raise_server_exceptions=False)
        mock_public_records.resolve_public_bulletin.return_value = _stored(sample_document)

        response = None
        statuses = []
        for _ in range(3):
            response = client.get("/api/bulletin", params={"profileSlug": "maple-grove"})
            statuses.append(response.status_code)

        assert statuses == [200, 200, 429]
        assert response.json() == {"error": ERROR_MESSAGES["RATE_LIMIT_EXCEEDED"]}
        assert response.headers["x-content-type-options"] == "nosniff"

    def test_forwarded_header_does_not_reset_window(
        self, mock_settings, mock_public_records, sample_document
    ):
        """A client rotating X-Forwarded-For values still shares one window."""
        settings = mock_settings.model_copy(update={"lenient_rate_limit_requests": 2})
        app = create_app(settings)
        app.dependency_overrides[get_record_service] = lambda: mock_public_records
        client = TestClient(app, raise_server_exceptions=False)
        mock_public_records.resolve_public_bulletin.return_value = _stored(sample_document)

        statuses = [
            client.get(
                "/api/bulletin",
                params={"profileSlug": "maple-grove"},
                headers={"X-Forwarded-For": f"10.0.0.{i}"},
            ).status_code
            for i in range(10)
        ]

        assert statuses[:2] == [200, 200]
        assert set(statuses[2:]) == {429}


    def test_unconfigured_database(self, tmp_path):
        settings = Settings(_env_file=None, db_host="", data_dir=tmp_path / "data")
        client = TestClient(create_app(settings), raise_server_exceptions=False)

        response = client.get("/api/bulletin", params={"profileSlug": "maple-grove"})

        assert response.status_code == 500
        assert response.json() == {"error": "Database not configured"}


class TestHealth:
    def test_health_reports_database(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": "0.1.0", "database": True}

    def test_health_without_database(self, tmp_path):
        settings = Settings(_env_file=None, db_host="", data_dir=tmp_path / "data")
        client = TestClient(create_app(settings))

        assert client.get("/api/health").json()["database"] is False


class TestClientIdentifier:
    def _request(self, client, headers=()):
        return Request({"type": "http", "client": client, "headers": list(headers)})

    def test_uses_peer_address(self):
        request = self._request(("5.6.7.8", 50000), [(b"x-forwarded-for", b"1.2.3.4")])

        assert client_identifier(request) == "5.6.7.8"

    def test_distinct_peers_get_distinct_keys(self):
        assert client_identifier(self._request(("5.6.7.8", 1))) != client_identifier(
            self._request(("9.9.9.9", 1))
        )

    def test_missing_peer(self):
        assert client_identifier(self._request(None)) == "unknown"
