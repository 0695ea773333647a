from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import core.dependencies as dependencies
from app import app
from core.cache import VectorCache
from core.dependencies import get_db
from database import Base
from services.recommendation import Document

BASE_TIME = datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def make_document():
    """Factory for tender Documents with sensible defaults."""

    def _make(doc_id, text, **kwargs):
        kwargs.setdefault("kind", "tender")
        return Document(id=doc_id, text=text, **kwargs)

    return _make


@pytest.fixture
def base_time():
    return BASE_TIME


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def client(session_factory, monkeypatch):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    # Keep route-level query vectors off any Redis configured in the environment
    monkeypatch.setattr(dependencies, "_vector_cache", VectorCache())
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"X-User-Id": "user-1"}
