"""
Pytest configuration and shared fixtures for EduReels API tests.
"""

import os
import tempfile

# Settings are read at import time, so the environment is prepared before the app loads
UPLOAD_TEST_DIR = tempfile.mkdtemp(prefix="edureels-uploads-")
os.environ.update({
    "ENVIRONMENT": "test",
    "DATABASE_URL": "sqlite://",
    "REDIS_URL": "",
    "SCHEDULER_ENABLED": "false",
    "JWT_SECRET_KEY": "test_jwt_secret_key_for_testing_only",
    "UPLOAD_DIR": UPLOAD_TEST_DIR,
    "OPENAI_API_KEY": "",
    "PINECONE_API_KEY": "",
    "PINECONE_INDEX_NAME": "",
    "PINECONE_INDEX_HOST": "",
    "SENTRY_DSN": "",
})

import json
import pytest
from types import SimpleNamespace
from typing import Callable, Dict, Generator, List, Optional
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
import redis
from unittest.mock import MagicMock

from app.main import app
from app.database import Base, get_db
from app.models.user import User, ROLE_CREATOR, ROLE_LEARNER
from app.models.video import Video
from app.services.ai_clients import clear_client_cache
from app.services.auth_service import AuthService
from app.utils.security import hash_password


# Database setup
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

LEARNER_PASSWORD = "learnerpass123"
CREATOR_PASSWORD = "creatorpass123"


@pytest.fixture(scope="function")
def test_db() -> Generator[Session, None, None]:
    """
    Create a fresh in-memory SQLite database for each test.
    """
    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def client(test_db: Session) -> Generator[TestClient, None, None]:
    """
    Create a test client with overridden database dependency.
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# User fixtures
def _create_user(db: Session, name: str, email: str, password: str, role: str) -> User:
    user = User(
        name=name,
        email=email,
        hashed_password=hash_password(password),
        role=role,
        is_active=True,
        created_at=datetime.utcnow()
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def test_user(test_db: Session) -> User:
    """
    Create a learner account.
    """
    return _create_user(test_db, "Lena Learner", "learner@example.com", LEARNER_PASSWORD, ROLE_LEARNER)


@pytest.fixture
def creator_user(test_db: Session) -> User:
    """
    Create a creator account.
    """
    return _create_user(test_db, "Cora Creator", "creator@example.com", CREATOR_PASSWORD, ROLE_CREATOR)


@pytest.fixture
def other_creator(test_db: Session) -> User:
    """
    A second creator, used for feed ordering.
    """
    return _create_user(test_db, "Omar Other", "other@example.com", CREATOR_PASSWORD, ROLE_CREATOR)


def _headers_for(db: Session, user: User) -> Dict[str, str]:
    token = AuthService.create_user_session(db, user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_db: Session, test_user: User) -> Dict[str, str]:
    """
    Bearer headers backed by a real session row for the learner.
    """
    return _headers_for(test_db, test_user)


@pytest.fixture
def creator_headers(test_db: Session, creator_user: User) -> Dict[str, str]:
    """
    Bearer headers for the creator.
    """
    return _headers_for(test_db, creator_user)


# Video fixtures
@pytest.fixture
def make_video(test_db: Session) -> Callable[..., Video]:
    """
    Factory for video rows. ``with_file`` also writes a stored file in UPLOAD_DIR.
    """
    counter = {"n": 0}

    def _make(
        creator: User,
        title: Optional[str] = None,
        created_at: Optional[datetime] = None,
        with_file: bool = False,
        tags: Optional[List[str]] = None,
    ) -> Video:
        counter["n"] += 1
        filename = f"test-{counter['n']}-{datetime.utcnow().timestamp()}.mp4"
        if with_file:
            with open(os.path.join(UPLOAD_TEST_DIR, filename), "wb") as f:
                f.write(b"\x00\x00\x00\x18ftypmp42")

        video = Video(
            creator_id=creator.id,
            title=title or f"Lesson {counter['n']}",
            filename=filename,
            url=f"/uploads/{filename}",
            tags=tags or ["python"],
            concepts=["loops"],
            level="beginner",
            duration_sec=45,
            created_at=created_at or datetime.utcnow(),
        )
        test_db.add(video)
        test_db.commit()
        test_db.refresh(video)
        return video

    return _make


@pytest.fixture
def video(make_video, creator_user: User) -> Video:
    """A creator's video with its file present on disk."""
    return make_video(creator_user, title="Intro to Recursion", with_file=True)


# Mock services
@pytest.fixture
def mock_redis():
    """
    Mock Redis client for tests that don't need real Redis.
    """
    mock = MagicMock(spec=redis.Redis)
    mock.ping.return_value = True
    mock.get.return_value = None
    mock.setex.return_value = True
    mock.delete.return_value = 1
    mock.incrby.return_value = 1
    mock.ttl.return_value = -1
    return mock


@pytest.fixture(autouse=True)
def fresh_ai_clients():
    """Shared AI clients are keyed on settings; start every test without them."""
    clear_client_cache()
    yield
    clear_client_cache()


SAMPLE_SUMMARY = {
    "summary": "Recursion solves a problem by calling itself on smaller inputs.",
    "quiz": [
        {"question": "What does a base case do?", "options": ["Stops recursion", "Loops", "Allocates"], "answerIndex": 0},
        {"question": "Recursion calls...", "options": ["Another module", "Itself", "The OS"], "answerIndex": 1},
        {"question": "Missing base case causes?", "options": ["Speedup", "Nothing", "Stack overflow"], "answerIndex": 2},
    ],
}


def build_fake_openai(
    transcript: str = "Recursion is when a function calls itself. " * 50,
    completion: Optional[str] = None,
    embedding: Optional[List[float]] = None,
) -> MagicMock:
    """
    MagicMock shaped like the OpenAI v1 client for the calls the pipeline makes.
    """
    fake = MagicMock()
    fake.audio.transcriptions.create.return_value = SimpleNamespace(text=transcript)
    fake.embeddings.create.return_value = SimpleNamespace(
        data=[SimpleNamespace(embedding=embedding or [0.1, 0.2, 0.3])]
    )
    fake.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(
            content=completion if completion is not None else json.dumps(SAMPLE_SUMMARY)
        ))]
    )
    return fake


def build_fake_index(texts: Optional[List[str]] = None) -> MagicMock:
    """
    MagicMock shaped like a Pinecone index handle.
    """
    fake = MagicMock()
    fake.upsert.return_value = {"upserted_count": 0}
    fake.query.return_value = {
        "matches": [{"id": f"m-{i}", "score": 0.9, "metadata": {"text": text}} for i, text in enumerate(texts or ["ctx one", "ctx two"])]
    }
    return fake


@pytest.fixture
def fake_openai() -> MagicMock:
    return build_fake_openai()


@pytest.fixture
def fake_index() -> MagicMock:
    return build_fake_index()


# Helper functions
def expire_session_token(db: Session, token: str) -> None:
    """Move a session's expiry into the past."""
    from app.models.session import UserSession

    session = db.query(UserSession).filter(UserSession.session_token == token).first()
    session.expires_at = datetime.utcnow() - timedelta(minutes=1)
    db.commit()
