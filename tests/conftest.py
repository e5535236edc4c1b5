"""Shared pytest fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from app.models.user import User


@pytest.fixture
def engine():
    """In-memory database shared across connections."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Import all models to register them
    from app.models.session import UserSession  # noqa: F401
    from app.models.task import Task  # noqa: F401

    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def db_session(engine):
    """Create a test database session."""
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_user(db_session: Session):
    """Factory that registers local accounts through the service layer."""
    from app.models.user import UserCreate
    from app.services.auth import register_user

    def _make_user(username: str, password: str = "secret1") -> User:
        return register_user(db_session, UserCreate(username=username, password=password))

    return _make_user


@pytest.fixture
def test_user(make_user) -> User:
    """Create a test user."""
    return make_user("alice", "pw1")


@pytest.fixture
def other_user(make_user) -> User:
    """Create a second, unrelated user."""
    return make_user("bob", "pw2")


@pytest.fixture
def client(engine):
    """TestClient bound to the in-memory database."""
    from app.api.deps import get_db_session
    from app.main import app

    def override_db_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    yield TestClient(app)
    app.dependency_overrides.clear()
