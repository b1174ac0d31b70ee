"""Composition root — wires concrete implementations to the abstractions.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ordering.application.command_bus import CommandBus
from ordering.application.observability import LoggingObserver
from ordering.infrastructure.config import get_settings
from ordering.infrastructure.persistence.database import (
    create_engine,
    create_schema,
    create_session_factory,
)
from ordering.infrastructure.persistence.integration_event_log import (
    IntegrationEventLogService,
)
from ordering.infrastructure.persistence.sql_unit_of_work import SqlUnitOfWork


@lru_cache(maxsize=1)
def engine() -> Engine:
    settings = get_settings()
    eng = create_engine(settings.database_url, echo=settings.echo_sql)
    create_schema(eng)
    return eng


@lru_cache(maxsize=1)
def session_factory() -> sessionmaker[Session]:
    return create_session_factory(engine())


def unit_of_work() -> SqlUnitOfWork:
    return SqlUnitOfWork(session_factory())


def command_bus() -> CommandBus:
    settings = get_settings()
    return CommandBus(
        uow_factory=unit_of_work,
        observer=LoggingObserver(),
        max_attempts=settings.max_attempts,
        backoff_seconds=settings.backoff_seconds,
    )


def event_log_service() -> IntegrationEventLogService:
    return IntegrationEventLogService(session_factory())


def reset() -> None:
    """Forget cached settings and engine (tests switch databases)."""
    if engine.cache_info().currsize:
        engine().dispose()
    session_factory.cache_clear()
    engine.cache_clear()
    get_settings.cache_clear()
