"""Pytest configuration for ReadTrack tests."""
import sys
import os
from pathlib import Path
from uuid import uuid4
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# The app module creates its own engine at import time; keep it off disk.
os.environ.setdefault("DATABASE_URL", "sqlite://")
# Cheap hashes keep user fixtures fast
os.environ.setdefault("BCRYPT_ROUNDS", "4")

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from readtrack.database import Base, get_db

# Import the entire models module to ensure all models are registered with Base.metadata
# This must happen before create_all() so that all table definitions are available
import readtrack.models  # noqa: F401
from readtrack.models import Book, User, UserRole
from readtrack.core.auth import issue_token_for
from readtrack.core.security import get_password_hash
from readtrack.main import app

# TEST_DATABASE_URL may point at a throwaway Postgres database; defaults to in-memory SQLite.
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite://")

DEFAULT_PASSWORD = "Passw0rd!"


@pytest.fixture(scope="function")
def engine():
    """
    Create a fresh schema for each test.

    In-memory SQLite uses a StaticPool so every session (including the ones
    opened by the app inside TestClient threads) shares one connection.
    """
    if TEST_DATABASE_URL.startswith("sqlite"):
        test_engine = create_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        test_engine = create_engine(TEST_DATABASE_URL, pool_pre_ping=True)

    if not Base.metadata.tables:
        raise RuntimeError(
            "No tables registered in Base.metadata. "
            "Did you import readtrack.models? All model classes must be imported before create_all()."
        )

    Base.metadata.create_all(bind=test_engine)

    yield test_engine

    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(scope="function")
def db(session_factory) -> Session:
    """Database session for arranging and asserting; commits are real."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """TestClient whose requests use the per-test database."""

    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db: Session):
    """Factory: create and commit a user."""

    def _make(
        name: str = "Reader",
        email: str = None,
        role: UserRole = UserRole.USER,
        favourite_genres: list = None,
    ) -> User:
        user = User(
            name=name,
            email=email or f"{uuid4().hex[:12]}@example.com",
            password_hash=get_password_hash(DEFAULT_PASSWORD),
            role=role,
            favourite_genres=favourite_genres or [],
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_book(db: Session):
    """Factory: create and commit a book. Rating fields may be preset for ranking tests."""

    def _make(
        title: str = "A Book",
        author: str = "An Author",
        genres: list = None,
        page_count: int = 0,
        average_rating: float = 0.0,
        rating_count: int = 0,
    ) -> Book:
        book = Book(
            title=title,
            author=author,
            genres=genres or [],
            page_count=page_count,
            average_rating=average_rating,
            rating_count=rating_count,
        )
        db.add(book)
        db.commit()
        db.refresh(book)
        return book

    return _make


@pytest.fixture
def user(make_user) -> User:
    return make_user(name="Ada Reader", email="ada@example.com")


@pytest.fixture
def admin(make_user) -> User:
    return make_user(name="Admin", email="admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def auth_headers():
    """Factory: bearer headers for a user."""

    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {issue_token_for(user)}"}

    return _headers
