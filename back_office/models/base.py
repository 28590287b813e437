"""
Database engine, session management, and base model.

This module is the foundation for all database operations.
Every model inherits from Base. Every request gets a session
from get_db(), and every value-moving operation runs inside
unit_of_work() so that it commits or rolls back as one piece.
"""

import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Session

from back_office.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# --- Engine ---
# pool_pre_ping drops connections that went stale while idle.
# SQLite uses a single-file pool, so the sizing options only
# apply to server databases.
if settings.is_sqlite:
    engine = create_engine(
        settings.DATABASE_URL,
        echo=settings.SQL_ECHO,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        settings.DATABASE_URL,
        echo=settings.SQL_ECHO,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )

# --- Session Factory ---
# Services flush explicitly; only unit_of_work commits.
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


# --- Base Model Class ---
class Base(DeclarativeBase):
    pass


# --- Dependency for FastAPI ---
def get_db():
    """
    Provide a database session for a single request.

    The session is closed when the request finishes, whatever
    happened inside it.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session):
    """
    Run a block of service calls as one atomic unit.

    Services only flush. This is the single place that commits:
    on success everything written inside the block becomes
    visible at once; on any exception every write is rolled
    back, including document numbers allocated in the block,
    and the exception propagates to the caller.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def upsert(db: Session, model):
    """
    Return an INSERT construct supporting ON CONFLICT for the bound dialect.

    PostgreSQL and SQLite share the same on_conflict_do_update()
    and returning() API, so callers build one statement for both.
    """
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert(model)
    return sqlite.insert(model)
