"""Database configuration and session management for SQLite.

This module configures the SQLite database engine with settings suited to
an authorization service that is read far more often than it is written:
WAL mode for concurrent access and foreign key enforcement so that grants
never outlive the events and groups they point at.

SQLite Configuration Choices:
    - **WAL (Write-Ahead Logging)**: Lets visibility checks keep reading
      while a revoke or accept is being written.

    - **Foreign Keys**: Disabled by default in SQLite. Enabled so that a
      projection cannot reference a missing event.

    - **check_same_thread=False**: Required for FastAPI, whose dependency
      injection may hand a session to a different worker thread.
"""

from sqlalchemy import event as sa_event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from eventshare.core.config import settings


def set_sqlite_pragma(dbapi_connection, connection_record):
    """Configure SQLite pragmas on each new connection.

    These settings are connection-level, not database-level, so they must
    be set each time a new connection is established from the pool.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def configure_engine(engine: Engine) -> Engine:
    """Attach the SQLite pragma listener to an engine."""
    if engine.dialect.name == "sqlite":
        sa_event.listen(engine, "connect", set_sqlite_pragma)
    return engine


engine = configure_engine(
    create_engine(
        settings.database_url,
        connect_args={"check_same_thread": False},
        echo=settings.debug,  # Log SQL statements when DEBUG=true
    )
)


def create_db_and_tables(bind: Engine | None = None):
    """Create all database tables."""
    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """Dependency for getting database session."""
    with Session(engine) as session:
        yield session
