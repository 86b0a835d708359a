import pytest
import os
import sys
from typing import Any, Callable, Dict, Generator

from fastapi.testclient import TestClient

# Add the parent directory to the path so we can import our modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from main import app
from api.dependencies import init_dependencies, reset_dependencies
from core.models import UserCreate, VideoCreate
from providers.storage_provider import MemoryStorageProvider

TEST_PASSWORD = "Password123"
ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "AdminPass123"


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("JWT_SECRET_KEY", "test-secret-key-for-ecosnap-tests-0123456789abcdef")
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("SEED_SAMPLE_DATA", "false")
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.delenv("ADMIN_PASSWORD", raising=False)
    monkeypatch.delenv("ACCESS_TOKEN_EXPIRE_MINUTES", raising=False)


@pytest.fixture
def storage() -> MemoryStorageProvider:
    """Fresh in-memory storage provider."""
    return MemoryStorageProvider()


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def test_client(storage, upload_dir, monkeypatch) -> Generator[TestClient, None, None]:
    """
    Test client for the FastAPI app wired to a fresh memory store.

    The lifespan seeds an admin account (id 1) from ADMIN_USERNAME/ADMIN_PASSWORD.
    """
    monkeypatch.setenv("ADMIN_USERNAME", ADMIN_USERNAME)
    monkeypatch.setenv("ADMIN_PASSWORD", ADMIN_PASSWORD)
    init_dependencies(storage, upload_dir)
    with TestClient(app) as client:
        yield client
    reset_dependencies()


def auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register_user(test_client) -> Callable[..., Dict[str, Any]]:
    """Register a user over the API; returns the user plus ready-to-use headers."""

    def _register(username: str, display_name: str = None) -> Dict[str, Any]:
        response = test_client.post(
            "/api/register",
            json={
                "username": username,
                "password": TEST_PASSWORD,
                "display_name": display_name or username.title(),
            },
        )
        assert response.status_code == 201, response.text
        data = response.json()
        return {
            "user": data["user"],
            "token": data["access_token"],
            "headers": auth_headers(data["access_token"]),
        }

    return _register


@pytest.fixture
def admin_headers(test_client) -> Dict[str, str]:
    response = test_client.post(
        "/api/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 200, response.text
    return auth_headers(response.json()["access_token"])


@pytest.fixture
def upload_video(test_client) -> Callable[..., Dict[str, Any]]:
    """Upload a video over the API and return the created record."""

    def _upload(user_id: int, title: str = "Solar roof", topic: str = "energy") -> Dict[str, Any]:
        response = test_client.post(
            "/api/videos",
            files={"video": ("clip.mp4", b"fake-video-bytes", "video/mp4")},
            data={"user_id": str(user_id), "title": title, "topic": topic},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _upload


@pytest.fixture
def approve_video(test_client, admin_headers) -> Callable[[int], Dict[str, Any]]:
    def _approve(video_id: int) -> Dict[str, Any]:
        response = test_client.post(
            f"/api/admin/videos/{video_id}/review",
            json={"status": "approved"},
            headers=admin_headers,
        )
        assert response.status_code == 200, response.text
        return response.json()

    return _approve


def make_user_create(username: str, **overrides) -> UserCreate:
    fields = {
        "username": username,
        "display_name": username.title(),
        "password_hash": "not-a-real-hash",
    }
    fields.update(overrides)
    return UserCreate(**fields)


def make_video_create(user_id: int, title: str = "Compost basics", topic: str = "waste") -> VideoCreate:
    return VideoCreate(
        user_id=user_id,
        title=title,
        video_url=f"/uploads/{title.lower().replace(' ', '-')}.mp4",
        topic=topic,
    )
