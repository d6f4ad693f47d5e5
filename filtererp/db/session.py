"""SQLAlchemy engine, session factory and declarative base."""

from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from ..core.config import settings

DB_URL = settings.database_url
IS_SQLITE = DB_URL.startswith("sqlite")

# SQLite connections are shared across FastAPI's worker threads.
CONNECT_ARGS = {"check_same_thread": False} if IS_SQLITE else {}

Base = declarative_base()


def enable_sqlite_foreign_keys(target: Engine) -> None:
    """SQLite ignores REFERENCES clauses unless asked per connection."""

    @event.listens_for(target, "connect")
    def _set_pragma(dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_engine(DB_URL, connect_args=CONNECT_ARGS)
if IS_SQLITE:
    enable_sqlite_foreign_keys(engine)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """One session per request; the caller commits, cleanup always runs."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
