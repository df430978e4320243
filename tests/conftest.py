"""
pytest Fixtures for Book World API Tests

Shared fixtures used across all test files.

For database tests, we use:
- session scope for the engine (one in-memory SQLite database)
- function scope for sessions, each wrapped in a transaction that is rolled
  back after the test so tests never see each other's rows

The test client overrides two dependencies:
- get_db: hands every request the test session
- get_cover_storage: a FakeStorage that records uploads instead of calling S3
"""

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# IMPORTANT: Set environment variables BEFORE importing the app
import os

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CACHE_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-for-unit-tests-at-least-32-characters-long"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id.apps.googleusercontent.com"

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bookworld.database import Base, get_db
from bookworld.exceptions import UnexpectedError
from bookworld.main import app
from bookworld.models import Book, Genre, Review, Role, User
from bookworld.services.ratings import recalculate_book_rating
from bookworld.services.security import hash_password
from bookworld.services.storage import get_cover_storage

TEST_PASSWORD = "SecurePass123"


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="session")
def engine():
    """
    In-memory SQLite engine shared by the whole test session.

    StaticPool keeps a single connection so the in-memory database
    survives between checkouts.
    """
    test_engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN until the first write, which breaks SAVEPOINT.
    # Let SQLAlchemy emit BEGIN itself so handlers using begin_nested()
    # stay inside the per-test transaction.
    @event.listens_for(test_engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db_session(engine) -> Generator[Session, None, None]:
    """
    Database session whose work is rolled back after each test.

    Commits made by the application only release to the outer transaction,
    which is discarded at teardown.
    """
    connection = engine.connect()
    transaction = connection.begin()

    TestSessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
    )
    session = TestSessionLocal()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


# =============================================================================
# STORAGE FIXTURE
# =============================================================================


class FakeStorage:
    """Stand-in for CoverStorage that keeps uploads in memory."""

    def __init__(self) -> None:
        self.uploads: list[dict] = []
        self.fail = False

    @property
    def configured(self) -> bool:
        return True

    def upload_cover(self, fileobj, filename, content_type) -> str:
        if self.fail:
            raise UnexpectedError("Failed to upload cover image")
        self.uploads.append(
            {"filename": filename, "content_type": content_type, "data": fileobj.read()}
        )
        return f"https://test-bucket.s3.us-east-1.amazonaws.com/covers/{len(self.uploads)}_{filename}"


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


# =============================================================================
# CLIENT FIXTURE
# =============================================================================


@pytest.fixture
def client(db_session: Session, fake_storage: FakeStorage) -> Generator[TestClient, None, None]:
    """
    Test client with the database and cover storage overridden.
    """

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cover_storage] = lambda: fake_storage

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# USER HELPERS
# =============================================================================


def _create_user(db: Session, email: str, first_name: str, role: Role = Role.USER) -> User:
    user = User(
        email=email,
        hashed_password=hash_password(TEST_PASSWORD),
        first_name=first_name,
        last_name="Tester",
        role=role.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================


@pytest.fixture
def sample_user(db_session: Session) -> User:
    """A regular reader."""
    return _create_user(db_session, "reader@example.com", "Reader")


@pytest.fixture
def second_user(db_session: Session) -> User:
    """A second reader for ownership scenarios."""
    return _create_user(db_session, "second@example.com", "Second")


@pytest.fixture
def admin_user(db_session: Session) -> User:
    """A user holding the admin role."""
    return _create_user(db_session, "admin@example.com", "Admin", Role.ADMIN)


@pytest.fixture
def sample_genre(db_session: Session) -> Genre:
    genre = Genre(name="Dystopian")
    db_session.add(genre)
    db_session.commit()
    db_session.refresh(genre)
    return genre


@pytest.fixture
def sample_book(db_session: Session, sample_genre: Genre) -> Book:
    """A book with one genre and no reviews."""
    book = Book(
        title="1984",
        author="George Orwell",
        description="A dystopian novel set in a totalitarian society.",
        year_published=1949,
        genres=[sample_genre],
    )
    db_session.add(book)
    db_session.commit()
    db_session.refresh(book)
    return book


@pytest.fixture
def sample_review(db_session: Session, sample_book: Book, sample_user: User) -> Review:
    """A 4-star review of sample_book by sample_user, with the aggregate updated."""
    review = Review(
        book_id=sample_book.id,
        user_id=sample_user.id,
        rating=4,
        content="I really enjoyed reading this book.",
    )
    db_session.add(review)
    recalculate_book_rating(db_session, sample_book.id)
    db_session.commit()
    db_session.refresh(review)
    return review
