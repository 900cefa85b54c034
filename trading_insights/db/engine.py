"""Database engine factories."""
from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from ..core.config import get_settings
from ..core.logger import get_logger

LOGGER = get_logger(__name__)


def get_sqlalchemy_url() -> str:
    """Return the configured SQLAlchemy URL."""

    return get_settings().database.url


def _prepare_sqlite(url: str, options: dict) -> None:
    parsed = make_url(url)
    connect_args = options.setdefault("connect_args", {})
    connect_args.setdefault("check_same_thread", False)

    database = parsed.database
    if not database or database == ":memory:":
        # One shared connection, otherwise every checkout sees an empty database.
        options.setdefault("poolclass", StaticPool)
        return
    Path(database).parent.mkdir(parents=True, exist_ok=True)


def create_sync_engine(url: str | None = None, **kwargs) -> Engine:
    """Create a synchronous SQLAlchemy engine using configured defaults."""

    settings = get_settings()
    resolved_url = url or settings.database.url

    options = dict(kwargs)
    options.setdefault("echo", settings.database.echo)
    if resolved_url.startswith("sqlite"):
        _prepare_sqlite(resolved_url, options)

    LOGGER.debug(
        "Creating SQLAlchemy engine",
        extra={"url": make_url(resolved_url).render_as_string(hide_password=True), "options": options},
    )
    return create_engine(resolved_url, future=True, **options)
