"""
Database engine and session management using SQLAlchemy 2.x.
Provides connection pooling, the session factory and the scoped
transaction helper used by the booking services.
"""
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session, DeclarativeBase
from sqlalchemy.pool import StaticPool

from servicebook.lib.settings import settings


# Base class for all SQLAlchemy models
class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def _engine_options(url: str) -> dict:
    """Pool options per backend; SQLite is only used for local runs and tests."""
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": 5,
        "max_overflow": 10,
    }


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite only enforces foreign keys when enabled per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, echo: bool = False):
    """Create an engine for the given URL with backend-appropriate pooling."""
    engine = create_engine(url, echo=echo, **_engine_options(url))
    if url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


engine = build_engine(settings.database_url, echo=settings.debug)


# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI routes to get a database session.

    Usage:
        @app.get("/example")
        def example(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Generator[Session, None, None]:
    """
    Scoped unit of work on an existing session.

    Commits when the block exits normally, rolls back and re-raises on any
    exception. Row locks taken inside the block are released on both paths.

    Usage:
        with transaction(db):
            db.add(booking)
            db.add(history)
    """
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise

