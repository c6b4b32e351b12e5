"""
Database engine and session management.

Builds the SQLAlchemy engine from environment configuration (``DATABASE_URL``,
falling back to a local SQLite file) and exposes the session factory used by
``SqlCollection``.
"""
import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

DEFAULT_DATABASE_URL = "sqlite:///./resourcekit.db"


def get_database_url() -> str:
    return os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {}
    kwargs = {"connect_args": {"check_same_thread": False}}
    # In-memory SQLite needs a single shared connection so the schema persists.
    # Such an engine must not be used by concurrent threads.
    if ":memory:" in url:
        kwargs["poolclass"] = StaticPool
    return kwargs


def build_engine(url: Optional[str] = None) -> Engine:
    url = url or get_database_url()
    return create_engine(url, **_engine_kwargs(url))


def build_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


DATABASE_URL = get_database_url()
engine = build_engine(DATABASE_URL)
SessionLocal = build_session_factory(engine)


def init_db(bind: Optional[Engine] = None) -> None:
    """Create tables for the bundled models (no migrations are shipped)."""
    from resourcekit.db import models  # local import to avoid a cycle at module load

    models.Base.metadata.create_all(bind=bind or engine)
