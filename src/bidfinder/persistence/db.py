"""
Database connection and session management.

Provides synchronous database access with session lifecycle management.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base


DEFAULT_DATABASE_URL = "sqlite:///data/bidfinder.db"


# =============================================================================
# Global Engine References
# =============================================================================

_engine: Engine | None = None
_engine_url: str | None = None
_session_factory: sessionmaker[Session] | None = None


# =============================================================================
# SQLite Configuration
# =============================================================================


def _is_memory_url(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def _configure_sqlite(engine: Engine, *, wal: bool) -> None:
    """Configure SQLite for better performance and reliability.

    Enables:
    - Foreign key enforcement
    - WAL mode for file databases
    """
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if wal:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()


# =============================================================================
# Engine Creation
# =============================================================================


def create_db_engine(url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> Engine:
    """Create a new engine without touching the global one.

    In-memory SQLite URLs share a single connection so every session
    sees the same database.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    if _is_memory_url(url):
        engine = create_engine(
            "sqlite://",
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        _configure_sqlite(engine, wal=False)
        return engine

    # Ensure data directory exists for SQLite
    if url.startswith("sqlite:///"):
        Path(url.replace("sqlite:///", "", 1)).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, echo=echo, connect_args={"check_same_thread": False})
    _configure_sqlite(engine, wal=True)
    return engine


def get_engine(url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> Engine:
    """Get or create the process-wide database engine.

    The engine is rebuilt when called with a URL other than the one it
    was created for.

    Args:
        url: SQLAlchemy database URL
        echo: Whether to log SQL statements

    Returns:
        SQLAlchemy Engine instance
    """
    global _engine, _engine_url, _session_factory

    if _engine is not None:
        if url == _engine_url:
            return _engine
        # A different database was requested; drop the old pool
        _engine.dispose()

    _engine = create_db_engine(url, echo=echo)
    _engine_url = url
    _session_factory = make_session_factory(_engine)
    return _engine


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


# =============================================================================
# Session Management
# =============================================================================


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Get a database session that commits on success.

    Usage:
        with get_session() as session:
            session.execute(...)

    Yields:
        SQLAlchemy Session instance
    """
    if _session_factory is None:
        get_engine()  # Initialize with defaults

    assert _session_factory is not None
    session = _session_factory()

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# =============================================================================
# Database Initialization
# =============================================================================


def init_db(url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> Engine:
    """Create all tables if they don't exist.

    Args:
        url: Database URL
        echo: Whether to log SQL

    Returns:
        The initialised engine
    """
    engine = get_engine(url, echo=echo)
    Base.metadata.create_all(bind=engine)
    return engine


def dispose_engine() -> None:
    """Dispose of the global engine.

    Should be called on application shutdown.
    """
    global _engine, _engine_url, _session_factory

    if _engine is not None:
        _engine.dispose()
        _engine = None
        _engine_url = None
        _session_factory = None
