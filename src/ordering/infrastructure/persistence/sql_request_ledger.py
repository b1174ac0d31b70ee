"""SQLAlchemy implementation of RequestLedger (``client_requests`` table)."""

from __future__ import annotations

from datetime import timezone
from typing import TYPE_CHECKING

from sqlalchemy import select

from ordering.domain.model.ledger import LedgerEntry
from ordering.domain.repository.request_ledger import RequestLedger
from ordering.infrastructure.persistence.models import ClientRequestRecord

if TYPE_CHECKING:
    from ordering.infrastructure.persistence.sql_unit_of_work import SqlUnitOfWork


class SqlRequestLedger(RequestLedger):

    def __init__(self, uow: SqlUnitOfWork) -> None:
        self._uow = uow

    @property
    def unit_of_work(self) -> SqlUnitOfWork:
        return self._uow

    def find(self, request_id: str) -> LedgerEntry | None:
        with self._uow.translate_errors():
            record = self._uow.session.scalars(
                select(ClientRequestRecord).where(
                    ClientRequestRecord.request_id == request_id
                )
            ).one_or_none()
        if record is None:
            return None
        processed_at = record.processed_at
        if processed_at.tzinfo is None:
            processed_at = processed_at.replace(tzinfo=timezone.utc)
        return LedgerEntry(
            request_id=record.request_id,
            command_name=record.command_name,
            success=record.success,
            reason=record.reason,
            processed_at=processed_at,
        )

    def record(self, entry: LedgerEntry) -> bool:
        return self._uow.record_request(entry)


def entry_to_record(entry: LedgerEntry) -> ClientRequestRecord:
    return ClientRequestRecord(
        request_id=entry.request_id,
        command_name=entry.command_name,
        success=entry.success,
        reason=entry.reason,
        processed_at=entry.processed_at,
    )
