"""SQLAlchemy engine and session factory helpers."""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import create_engine as sa_create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from ordering.infrastructure.persistence.models import Base

logger = logging.getLogger(__name__)


def create_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine for *url*.

    SQLite databases get their parent directory created and are opened
    with ``check_same_thread=False`` so worker threads can share the pool.
    """
    parsed = make_url(url)
    kwargs: dict = {}
    if parsed.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if parsed.database and parsed.database != ":memory:":
            Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)

    engine = sa_create_engine(url, echo=echo, pool_pre_ping=True, **kwargs)
    logger.info("Created engine for %s", parsed.render_as_string(hide_password=True))
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


def create_schema(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(engine)
