import pytest
from fastapi.testclient import TestClient

from learn_api.config import Settings
from learn_api.database import Database
from learn_api.main import create_app


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Settings pointing at a fresh SQLite file for each test."""
    monkeypatch.setenv("ENV", "dev")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'learn-test.db'}")
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.delenv("CORS_ORIGINS", raising=False)
    return Settings()


@pytest.fixture
def client(settings):
    # entering the client runs the lifespan, which opens the store
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def database(settings):
    with Database(settings.DATABASE_URL) as db:
        yield db


@pytest.fixture
def session(database):
    with database.session() as s:
        yield s

