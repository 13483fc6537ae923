"""Database session management.

SQLite is configured for two writers: request handlers and the expiry sweep,
which runs in a worker thread. File databases use WAL so the sweep's per-entry
commits don't block readers, and a busy timeout makes a writer wait for the
other's transaction instead of failing with "database is locked".
"""

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from tableready.core.config import settings

IS_SQLITE = settings.database_url.startswith("sqlite")
IS_SQLITE_MEMORY = IS_SQLITE and ":memory:" in settings.database_url

connect_args = {}
pool_config = {}

if IS_SQLITE:
    connect_args = {"check_same_thread": False}
    pool_config = {
        "pool_pre_ping": True,
        "pool_recycle": 1800,
    }
else:
    pool_config = {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }

engine = create_engine(
    settings.database_url,
    connect_args=connect_args,
    echo=False,
    **pool_config,
)


def set_sqlite_pragma(dbapi_connection, connection_record=None, use_wal: bool = True):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute(f"PRAGMA busy_timeout={int(settings.sqlite_busy_timeout_ms)}")
    if use_wal:
        cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


if IS_SQLITE:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        set_sqlite_pragma(dbapi_connection, connection_record, use_wal=not IS_SQLITE_MEMORY)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Get database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Type alias for dependency injection
DbSession = Annotated[Session, Depends(get_db)]
