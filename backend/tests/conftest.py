"""Shared fixtures: in-memory SQLite app, fake AWS collaborators, user helpers."""

from __future__ import annotations

import os
import uuid
from typing import Any, Callable, Dict, List, Tuple

# must be set before saysense modules build their engine and settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from saysense.api.deps import get_session_factory, get_storage, get_transcription  # noqa: E402
from saysense.db.session import get_db  # noqa: E402
from saysense.models import Base  # noqa: E402
from saysense.services.storage_service import build_upload_key  # noqa: E402
from saysense.services.transcribe_service import TranscriptionJob, TranscriptionServiceError  # noqa: E402


class FakeStorage:
    def __init__(self) -> None:
        self.calls: List[Tuple[str, str]] = []

    def get_presigned_upload_url(self, file_name: str, content_type: str) -> Dict[str, str]:
        self.calls.append((file_name, content_type))
        key = build_upload_key(file_name, now_ms=1_700_000_000_000)
        return {"url": f"https://uploads.test/{key}?signature=abc", "key": key}


class FakeTranscription:
    def __init__(self) -> None:
        self.jobs: List[Tuple[str, str, str]] = []
        self.fail = False

    def start_transcription_job(self, job_name: str, language_code: str, media_uri: str) -> TranscriptionJob:
        if self.fail:
            raise TranscriptionServiceError("transcribe unavailable")
        self.jobs.append((job_name, language_code, media_uri))
        return TranscriptionJob(job_name=job_name, status="IN_PROGRESS")


@pytest.fixture()
def db_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture()
def fake_transcription() -> FakeTranscription:
    return FakeTranscription()


@pytest.fixture()
def app(db_factory, fake_storage, fake_transcription):
    from saysense.main import create_app

    application = create_app()

    def override_get_db():
        db = db_factory()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_session_factory] = lambda: db_factory
    application.dependency_overrides[get_storage] = lambda: fake_storage
    application.dependency_overrides[get_transcription] = lambda: fake_transcription
    return application


@pytest.fixture()
def client(app):
    # context manager runs the lifespan, which owns the room registry
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def registry(client):
    return client.app.state.room_registry


@pytest.fixture()
def make_user(client) -> Callable[..., Dict[str, Any]]:
    def _make_user(name: str = "Alice", password: str = "secret-pass") -> Dict[str, Any]:
        email = f"{name.lower()}-{uuid.uuid4().hex[:8]}@example.com"
        resp = client.post("/auth/register", json={"email": email, "password": password, "name": name})
        assert resp.status_code == 201, resp.text
        body = resp.json()
        body["email"] = email
        body["password"] = password
        body["headers"] = {"Authorization": f"Bearer {body['accessToken']}"}
        return body

    return _make_user


@pytest.fixture()
def make_session(client) -> Callable[..., Dict[str, Any]]:
    def _make_session(user: Dict[str, Any], title: str = "Quarterly pitch", **extra: Any) -> Dict[str, Any]:
        payload = {"title": title, "sessionType": "live", "sourceType": "microphone", **extra}
        resp = client.post("/sessions", json=payload, headers=user["headers"])
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make_session
