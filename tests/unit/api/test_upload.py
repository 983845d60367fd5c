"""Tests for the publish endpoint."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_publish_pipeline
from app.core.exceptions import (
    CredentialNotFoundError,
    DatabaseError,
    FetchError,
    QuotaExceededError,
)
from app.main import app
from app.models.publish import PrivacyStatus, PublishOutcome
from app.services.uploader.pipeline import PublishPipeline

BODY = {
    "video_url": "https://example.com/a.mp4",
    "title": "T",
    "privacy_status": "private",
}


@pytest.fixture
def store(credential_record):
    store = MagicMock()
    store.get = AsyncMock(return_value=credential_record)
    return store


@pytest.fixture
def fetcher():
    return MagicMock()


@pytest.fixture
def pipeline(store, fetcher):
    return PublishPipeline(
        credential_store=store,
        fetcher=fetcher,
        stager=MagicMock(),
        publisher=MagicMock(),
    )


@pytest.fixture
def client(pipeline):
    app.dependency_overrides[get_publish_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestUploadSuccess:
    """Successful publish responses."""

    @pytest.fixture
    def pipeline(self):
        pipeline = MagicMock()
        pipeline.run = AsyncMock(
            return_value=PublishOutcome(
                run_id="run-1",
                video_id="yt_abc123",
                url="https://youtu.be/yt_abc123",
            )
        )
        return pipeline

    def test_success_body(self, client, pipeline):
        response = client.post("/upload", params={"userId": "sub-123"}, json=BODY)

        assert response.status_code == 200
        assert response.json() == {
            "videoId": "yt_abc123",
            "message": "Video uploaded successfully",
            "url": "https://youtu.be/yt_abc123",
        }

    def test_request_is_passed_to_pipeline(self, client, pipeline):
        client.post(
            "/upload",
            params={"userId": "sub-123"},
            json={**BODY, "tags": ["a", "b"], "description": "About"},
        )

        subject_id, request = pipeline.run.call_args.args
        assert subject_id == "sub-123"
        assert request.video_url == "https://example.com/a.mp4"
        assert request.metadata.title == "T"
        assert request.metadata.description == "About"
        assert request.metadata.tags == ["a", "b"]
        assert request.metadata.privacy_status == PrivacyStatus.PRIVATE

    def test_defaults_fill_omitted_metadata(self, client, pipeline):
        client.post(
            "/upload",
            params={"userId": "sub-123"},
            json={"video_url": "https://example.com/a.mp4"},
        )

        request = pipeline.run.call_args.args[1]
        assert request.metadata.category_id == "22"
        assert request.metadata.privacy_status == PrivacyStatus.PRIVATE


class TestUploadFailures:
    """Error statuses and bodies."""

    def test_missing_user_id(self, client, store):
        response = client.post("/upload", json=BODY)

        assert response.status_code == 401
        assert response.json() == {"error": "User not authenticated"}
        store.get.assert_not_called()

    def test_missing_video_url(self, client, store):
        response = client.post("/upload", params={"userId": "sub-123"}, json={"title": "T"})

        assert response.status_code == 400
        assert response.json() == {"error": "Video URL is required"}
        store.get.assert_not_called()

    def test_missing_user_id_wins_over_missing_url(self, client):
        response = client.post("/upload", json={"title": "T"})

        assert response.status_code == 401

    def test_unknown_user(self, client, store, fetcher):
        store.get.side_effect = CredentialNotFoundError("nobody")

        response = client.post("/upload", params={"userId": "nobody"}, json=BODY)

        assert response.status_code == 401
        assert response.json() == {"error": "User not found"}
        fetcher.open.assert_not_called()

    def test_fetch_failure_carries_details(self, client, fetcher):
        fetcher.open.side_effect = FetchError(
            "Video source responded with HTTP 404",
            source_url=BODY["video_url"],
            status_code=404,
            details={"status": 404, "body": "not found"},
        )

        response = client.post("/upload", params={"userId": "sub-123"}, json=BODY)

        assert response.status_code == 500
        assert response.json() == {
            "error": "Video source responded with HTTP 404",
            "details": {"status": 404, "body": "not found"},
        }

    def test_store_outage_hides_driver_text(self, client, store, fetcher):
        store.get.side_effect = DatabaseError(
            "Credential store unavailable",
            context={"error": "(psycopg.OperationalError) connection refused [SQL: SELECT ...]"},
            operation="get",
        )

        response = client.post("/upload", params={"userId": "sub-123"}, json=BODY)

        assert response.status_code == 500
        assert response.json() == {"error": "Credential store unavailable"}
        fetcher.open.assert_not_called()

    def test_quota_failure(self, client):
        pipeline = MagicMock()
        pipeline.run = AsyncMock(side_effect=QuotaExceededError(details={"error": {"code": 403}}))
        app.dependency_overrides[get_publish_pipeline] = lambda: pipeline

        response = client.post("/upload", params={"userId": "sub-123"}, json=BODY)

        assert response.status_code == 500
        assert response.json()["error"] == "YouTube API quota exceeded"
        assert response.json()["details"] == {"error": {"code": 403}}

    def test_invalid_privacy_status(self, client):
        response = client.post(
            "/upload",
            params={"userId": "sub-123"},
            json={**BODY, "privacy_status": "secret"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"
        assert response.json()["details"][0]["loc"] == ["body", "privacy_status"]

    def test_unhandled_error(self):
        pipeline = MagicMock()
        pipeline.run = AsyncMock(side_effect=RuntimeError("boom"))
        app.dependency_overrides[get_publish_pipeline] = lambda: pipeline
        client = TestClient(app, raise_server_exceptions=False)

        try:
            response = client.post("/upload", params={"userId": "sub-123"}, json=BODY)
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json() == {"error": "boom"}
