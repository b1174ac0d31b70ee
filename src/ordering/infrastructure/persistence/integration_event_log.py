"""Reading side of the outbox.

Integration events are written by ``SqlUnitOfWork`` in the same transaction
as the order change.  A separate publisher process claims pending rows,
hands them to the message bus and marks the outcome here.  Rows are never
re-created; only their state moves forward:

    NOT_PUBLISHED -> IN_PROGRESS -> PUBLISHED | PUBLISHED_FAILED

Every move is a conditional UPDATE on the expected current state, so two
publishers never claim the same row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from ordering.domain.exceptions import EntityNotFoundError, InvalidStateError
from ordering.infrastructure.persistence.models import IntegrationEventLogRecord

logger = logging.getLogger(__name__)


class EventState(Enum):
    NOT_PUBLISHED = "NOT_PUBLISHED"
    IN_PROGRESS = "IN_PROGRESS"
    PUBLISHED = "PUBLISHED"
    PUBLISHED_FAILED = "PUBLISHED_FAILED"


@dataclass(frozen=True)
class IntegrationEventLogEntry:
    event_id: str
    event_type_name: str
    content: str
    state: EventState
    times_sent: int
    creation_time: datetime
    transaction_id: str


class IntegrationEventLogService:

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def pending(self, limit: int = 100) -> list[IntegrationEventLogEntry]:
        """Oldest events not yet handed to the bus."""
        with self._session_factory() as session:
            records = session.scalars(
                select(IntegrationEventLogRecord)
                .where(IntegrationEventLogRecord.state == EventState.NOT_PUBLISHED.value)
                .order_by(IntegrationEventLogRecord.creation_time)
                .limit(limit)
            ).all()
            return [_to_entry(record) for record in records]

    def list_by_transaction(self, transaction_id: str) -> list[IntegrationEventLogEntry]:
        with self._session_factory() as session:
            records = session.scalars(
                select(IntegrationEventLogRecord)
                .where(IntegrationEventLogRecord.transaction_id == transaction_id)
                .order_by(IntegrationEventLogRecord.creation_time)
            ).all()
            return [_to_entry(record) for record in records]

    def mark_in_progress(self, event_id: str) -> bool:
        """Claim a pending event.  False if another publisher got there first."""
        return self._move(event_id, EventState.NOT_PUBLISHED, EventState.IN_PROGRESS)

    def mark_published(self, event_id: str) -> None:
        self._finish(event_id, EventState.PUBLISHED)

    def mark_failed(self, event_id: str) -> None:
        self._finish(event_id, EventState.PUBLISHED_FAILED)

    def publish_pending(
        self,
        publish: Callable[[IntegrationEventLogEntry], None],
        limit: int = 100,
    ) -> int:
        """Hand each pending event to *publish*; return how many succeeded.

        A failing event is marked PUBLISHED_FAILED and the batch goes on.
        """
        published = 0
        for entry in self.pending(limit):
            if not self.mark_in_progress(entry.event_id):
                logger.debug("Integration event %s already claimed", entry.event_id)
                continue
            try:
                publish(entry)
            except Exception:
                logger.exception(
                    "Error publishing integration event %s (%s)",
                    entry.event_id,
                    entry.event_type_name,
                )
                self.mark_failed(entry.event_id)
                continue
            self.mark_published(entry.event_id)
            published += 1
        return published

    # --- Internal helpers -----------------------------------------------------

    def _finish(self, event_id: str, state: EventState) -> None:
        if not self._move(event_id, EventState.IN_PROGRESS, state):
            raise InvalidStateError(
                f"Integration event {event_id} is not in progress; cannot mark it {state.value}"
            )

    def _move(self, event_id: str, current: EventState, target: EventState) -> bool:
        values: dict = {"state": target.value}
        if target is EventState.IN_PROGRESS:
            values["times_sent"] = IntegrationEventLogRecord.times_sent + 1
        with self._session_factory() as session, session.begin():
            result = session.execute(
                update(IntegrationEventLogRecord)
                .where(
                    IntegrationEventLogRecord.event_id == event_id,
                    IntegrationEventLogRecord.state == current.value,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                if session.get(IntegrationEventLogRecord, event_id) is None:
                    raise EntityNotFoundError(f"Integration event {event_id} not found")
                return False
        logger.debug("Integration event %s -> %s", event_id, target.value)
        return True


def _to_entry(record: IntegrationEventLogRecord) -> IntegrationEventLogEntry:
    return IntegrationEventLogEntry(
        event_id=record.event_id,
        event_type_name=record.event_type_name,
        content=record.content,
        state=EventState(record.state),
        times_sent=record.times_sent,
        creation_time=record.creation_time,
        transaction_id=record.transaction_id,
    )
