"""
API tests through FastAPI's TestClient.

The app runs with in-memory storage and database; the ffmpeg processor is
swapped for the fake through dependency_overrides.
"""

from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from tubely.api.dependencies import (
    get_storage_client,
    get_video_processor,
    open_video_repository,
)
from tubely.config.settings import Settings
from tubely.core.media.models import StoredReference
from tubely.infrastructure.auth.tokens import make_jwt
from tubely.main import create_app

from .fakes import VALID_VIDEO, FailingStorage, FakeVideoProcessor

SECRET = "api-test-secret"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        jwt_secret=SECRET,
        s3_bucket="tubely-test",
        s3_mock_mode=True,
        snowflake_mock_mode=True,
        video_processor_mock_mode=True,
        assets_root=tmp_path / "assets",
        scratch_dir=tmp_path / "scratch",
        public_base_url="http://testserver",
        max_video_upload_bytes=4096,
        max_thumbnail_upload_mb=1,
    )


@pytest.fixture
def processor() -> FakeVideoProcessor:
    return FakeVideoProcessor(width=1280, height=720)


@pytest.fixture
def app(settings, processor):
    app = create_app(settings)
    app.dependency_overrides[get_video_processor] = lambda: processor
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def user_id():
    return uuid4()


def _auth(user_id) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_jwt(user_id, SECRET)}"}


def _create_video(client, user_id, title="Intro") -> dict:
    response = client.post("/api/videos", json={"title": title}, headers=_auth(user_id))
    assert response.status_code == 201
    return response.json()


def _upload_video(client, video_id, user_id, data=VALID_VIDEO, content_type="video/mp4"):
    return client.post(
        f"/api/video_upload/{video_id}",
        files={"video": ("clip.mp4", data, content_type)},
        headers=_auth(user_id),
    )


class TestVideoMetadata:
    def test_create_and_get(self, client, user_id):
        created = _create_video(client, user_id)

        response = client.get(f"/api/videos/{created['id']}")

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Intro"
        assert body["user_id"] == str(user_id)
        assert body["video_url"] is None

    def test_create_requires_token(self, client):
        response = client.post("/api/videos", json={"title": "Intro"})

        assert response.status_code == 401

    def test_forged_token_is_rejected(self, client, user_id):
        token = make_jwt(user_id, "not-the-secret")
        response = client.get("/api/videos", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_list_returns_only_callers_videos(self, client, user_id):
        _create_video(client, user_id, "Mine")
        _create_video(client, uuid4(), "Theirs")

        response = client.get("/api/videos", headers=_auth(user_id))

        assert response.status_code == 200
        assert [v["title"] for v in response.json()] == ["Mine"]

    def test_invalid_id(self, client):
        response = client.get("/api/videos/not-a-uuid")

        assert response.status_code == 400
        assert "Invalid video ID" in response.json()["detail"]

    def test_unknown_id(self, client):
        response = client.get(f"/api/videos/{uuid4()}")

        assert response.status_code == 404

    def test_delete(self, client, user_id):
        created = _create_video(client, user_id)

        response = client.delete(f"/api/videos/{created['id']}", headers=_auth(user_id))

        assert response.status_code == 204
        assert client.get(f"/api/videos/{created['id']}").status_code == 404

    def test_delete_missing_video(self, client, user_id):
        response = client.delete(f"/api/videos/{uuid4()}", headers=_auth(user_id))

        assert response.status_code == 404

    def test_delete_by_non_owner(self, client, user_id):
        created = _create_video(client, user_id)

        response = client.delete(f"/api/videos/{created['id']}", headers=_auth(uuid4()))

        assert response.status_code == 403
        assert client.get(f"/api/videos/{created['id']}").status_code == 200


class TestVideoUpload:
    def test_upload_returns_signed_url(self, app, client, user_id):
        created = _create_video(client, user_id)

        response = _upload_video(client, created["id"], user_id)

        assert response.status_code == 200
        storage = app.state.services.storage
        [(bucket, key)] = storage.objects
        assert bucket == "tubely-test"
        assert key.startswith("landscape/")
        assert storage.objects[(bucket, key)] == b"FASTSTART" + VALID_VIDEO

        signed_url = f"mock://tubely-test/{key}?expires=3600"
        assert response.json()["video_url"] == signed_url
        assert client.get(f"/api/videos/{created['id']}").json()["video_url"] == signed_url

    def test_record_keeps_the_stored_reference(self, app, client, user_id):
        created = _create_video(client, user_id)

        _upload_video(client, created["id"], user_id)

        [(_, key)] = app.state.services.storage.objects
        with open_video_repository(app.state.services) as repository:
            stored = repository.get_video(UUID(created["id"]))
        assert stored.video_url == str(StoredReference(bucket="tubely-test", key=key))

    def test_four_by_three_video_goes_under_other(self, app, client, user_id, processor):
        processor.width, processor.height = 640, 480
        created = _create_video(client, user_id)

        response = _upload_video(client, created["id"], user_id)

        assert response.status_code == 200
        [(_, key)] = app.state.services.storage.objects
        assert key.startswith("other/")

    def test_non_owner_upload_is_forbidden(self, client, user_id):
        created = _create_video(client, user_id)

        response = _upload_video(client, created["id"], uuid4())

        assert response.status_code == 403
        assert client.get(f"/api/videos/{created['id']}").json()["video_url"] is None

    def test_wrong_content_type(self, client, user_id):
        created = _create_video(client, user_id)

        response = _upload_video(client, created["id"], user_id, content_type="video/webm")

        assert response.status_code == 400

    def test_unreadable_video_is_unprocessable(self, client, user_id, settings):
        created = _create_video(client, user_id)

        response = _upload_video(client, created["id"], user_id, data=b"definitely not mp4")

        assert response.status_code == 422
        assert client.get(f"/api/videos/{created['id']}").json()["video_url"] is None
        assert list(settings.scratch_dir.iterdir()) == []

    def test_body_over_limit_is_rejected_before_reading(self, client, user_id):
        created = _create_video(client, user_id)

        response = _upload_video(client, created["id"], user_id, data=b"\x00" * (200 * 1024))

        assert response.status_code == 413

    def test_file_over_limit_is_rejected_while_staging(self, client, user_id, settings):
        created = _create_video(client, user_id)

        response = _upload_video(client, created["id"], user_id, data=VALID_VIDEO * 5)

        assert response.status_code == 413
        assert list(settings.scratch_dir.iterdir()) == []

    def test_storage_failure_hides_internal_detail(self, app, client, user_id):
        app.dependency_overrides[get_storage_client] = lambda: FailingStorage()
        created = _create_video(client, user_id)

        response = _upload_video(client, created["id"], user_id)

        assert response.status_code == 502
        assert response.json() == {"detail": "Unable to store video"}


class TestThumbnailUpload:
    def test_thumbnail_is_served_from_assets(self, client, user_id):
        created = _create_video(client, user_id)

        response = client.post(
            f"/api/thumbnail_upload/{created['id']}",
            files={"thumbnail": ("thumb.png", b"\x89PNG data", "image/png")},
            headers=_auth(user_id),
        )

        assert response.status_code == 200
        thumbnail_url = response.json()["thumbnail_url"]
        assert thumbnail_url.startswith("http://testserver/assets/")

        served = client.get(thumbnail_url)
        assert served.status_code == 200
        assert served.content == b"\x89PNG data"

    def test_thumbnail_response_signs_existing_video(self, app, client, user_id):
        created = _create_video(client, user_id)
        _upload_video(client, created["id"], user_id)

        response = client.post(
            f"/api/thumbnail_upload/{created['id']}",
            files={"thumbnail": ("thumb.png", b"\x89PNG data", "image/png")},
            headers=_auth(user_id),
        )

        assert response.status_code == 200
        assert response.json()["video_url"].startswith("mock://tubely-test/landscape/")

    def test_non_image_thumbnail(self, client, user_id):
        created = _create_video(client, user_id)

        response = client.post(
            f"/api/thumbnail_upload/{created['id']}",
            files={"thumbnail": ("notes.txt", b"hello", "text/plain")},
            headers=_auth(user_id),
        )

        assert response.status_code == 400


class TestHealth:
    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_readiness_with_mocks(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_readiness_reports_missing_configuration(self, settings, processor):
        settings.jwt_secret = ""
        app = create_app(settings)
        app.dependency_overrides[get_video_processor] = lambda: processor

        with TestClient(app) as client:
            response = client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"
