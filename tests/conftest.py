"""
Shared test fixtures.

Sets up an isolated SQLite database so tests never touch
the real database. Tables are created before each test and
dropped after it, so every test starts from an empty branch.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from back_office.main import app
from back_office.models.base import Base, get_db


# SQLite needs no external database, so tests run anywhere
TEST_DATABASE_URL = "sqlite:///./test.db"

BRANCH = "branch-1"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)


@event.listens_for(engine, "connect")
def _enforce_foreign_keys(dbapi_connection, connection_record):
    # SQLite leaves foreign keys unchecked unless asked
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def session_factory():
    """For tests that need one session per thread."""
    return TestSessionLocal


@pytest.fixture
def client(db_session):
    """
    Provide a test client bound to the test database.

    The get_db dependency is overridden so the app uses the
    test session, and every request carries the branch header.
    """
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, headers={"X-Branch-Id": BRANCH, "X-Actor-Id": "tester"}) as c:
        yield c
    app.dependency_overrides.clear()
