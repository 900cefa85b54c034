"""Session factories shared by the API, the seed script and the tests."""
from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .engine import create_sync_engine


@lru_cache(maxsize=4)
def get_engine(url: str | None = None) -> Engine:
    """Return a process-wide engine for ``url`` (the configured URL by default)."""

    return create_sync_engine(url)


def get_sessionmaker(url: str | None = None, **kwargs) -> sessionmaker:
    """Sessionmaker over the cached engine, or a fresh one when engine options are given."""

    engine = create_sync_engine(url, **kwargs) if kwargs else get_engine(url)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def session_scope(url: str | None = None, **kwargs) -> Iterator[Session]:
    """Commit on success, roll back on error, always close."""

    session = get_sessionmaker(url, **kwargs)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db_session() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request."""

    session = get_sessionmaker()()
    try:
        yield session
    finally:
        session.close()
