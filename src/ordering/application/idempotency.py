"""Idempotent command handling.

``IdempotentCommandHandler`` wraps any command handler and guarantees that
the wrapped handler's effect is committed at most once per request id:

* a request id already in the ledger short-circuits to the command kind's
  duplicate result, without calling the wrapped handler;
* otherwise the request id is claimed with a ledger row written as the
  first statement of the *same* unit of work the handler commits, so the
  aggregate change, its integration events and the ledger entry become
  durable together;
* two racing deliveries of one id are settled by the store's uniqueness
  constraint on the request id before either handler runs: the loser waits
  for the winner's transaction, finds the id taken and resolves to the
  duplicate result without executing the wrapped handler.

This is also the boundary where handler failures become a classified
``CommandResult``.  Only store faults (``TransientStoreError``) and
cancellation propagate.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol

from ordering.application.commands import Command, CommandType, IdentifiedCommand
from ordering.application.observability import CommandObserver, NullObserver
from ordering.application.results import CommandResult, ResultReason
from ordering.domain.exceptions import (
    DomainException,
    EntityNotFoundError,
    InvalidStateError,
    InvalidTransitionError,
    ValidationError,
)
from ordering.domain.model.ledger import LedgerEntry
from ordering.domain.repository.request_ledger import RequestLedger

logger = logging.getLogger(__name__)


class CommandHandler(Protocol):

    def handle(self, command: Command, cancel: threading.Event | None = None) -> bool:
        ...


DuplicatePolicy = Callable[[LedgerEntry], CommandResult]


# --- Duplicate policies -------------------------------------------------------


def acknowledge(entry: LedgerEntry) -> CommandResult:
    """Treat a redelivery as success, whatever the first outcome was."""
    return CommandResult(success=True, duplicate=True)


def replay(entry: LedgerEntry) -> CommandResult:
    """Return the outcome recorded for the first delivery."""
    reason = ResultReason(entry.reason) if entry.reason else None
    return CommandResult(success=entry.success, reason=reason, duplicate=True)


DUPLICATE_POLICIES: dict[CommandType, DuplicatePolicy] = {
    CommandType.CREATE_ORDER: acknowledge,
    CommandType.CANCEL_ORDER: acknowledge,
    CommandType.SET_AWAITING_VALIDATION: acknowledge,
    CommandType.SET_STOCK_CONFIRMED: acknowledge,
    CommandType.SET_PAID: acknowledge,
    CommandType.SHIP_ORDER: acknowledge,
}


# --- Decorator ----------------------------------------------------------------


class IdempotentCommandHandler:

    def __init__(
        self,
        inner: CommandHandler,
        ledger: RequestLedger,
        duplicate_policy: DuplicatePolicy = acknowledge,
        observer: CommandObserver | None = None,
    ) -> None:
        self._inner = inner
        self._ledger = ledger
        self._duplicate_policy = duplicate_policy
        self._observer = observer or NullObserver()

    def handle(
        self,
        identified: IdentifiedCommand,
        cancel: threading.Event | None = None,
    ) -> CommandResult:
        name = identified.command_name
        self._observer.command_started(name, identified.request_id)
        try:
            result = self._handle(identified, cancel)
        except Exception as exc:
            self._observer.command_failed(name, identified.request_id, exc)
            raise
        self._observer.command_finished(name, identified.request_id, result)
        return result

    # --- Internal helpers -----------------------------------------------------

    def _handle(
        self,
        identified: IdentifiedCommand,
        cancel: threading.Event | None,
    ) -> CommandResult:
        request_id = identified.request_id

        existing = self._ledger.find(request_id)
        if existing is not None:
            return self._duplicate(existing)

        claimed = self._ledger.record(
            LedgerEntry(
                request_id=request_id,
                command_name=identified.command_name,
                success=True,
            )
        )
        if not claimed:
            return self._lost_race(identified)

        try:
            saved = self._inner.handle(identified.command, cancel=cancel)
        except EntityNotFoundError as exc:
            # The order may still show up (e.g. a create in flight); a
            # later redelivery must be allowed to run.
            self._ledger.unit_of_work.rollback()
            logger.warning("Request %s not applied: %s", request_id, exc)
            return CommandResult.failed(ResultReason.NOT_FOUND, str(exc))
        except InvalidTransitionError as exc:
            return self._record_failure(identified, ResultReason.INVALID_TRANSITION, exc, cancel)
        except InvalidStateError as exc:
            return self._record_failure(identified, ResultReason.INVALID_STATE, exc, cancel)
        except ValidationError as exc:
            return self._record_failure(identified, ResultReason.REJECTED, exc, cancel)

        if saved:
            return CommandResult.ok()

        # Commit rejected: the order changed underneath us.
        logger.warning("Request %s hit a concurrency conflict", request_id)
        return CommandResult.failed(
            ResultReason.CONCURRENCY_CONFLICT,
            f"Order changed concurrently while handling {identified.command_name}",
        )

    def _record_failure(
        self,
        identified: IdentifiedCommand,
        reason: ResultReason,
        exc: DomainException,
        cancel: threading.Event | None,
    ) -> CommandResult:
        """Remember a terminal business failure so redeliveries stay cheap."""
        logger.warning(
            "Request %s (%s) rejected: %s",
            identified.request_id,
            identified.command_name,
            exc,
        )
        unit_of_work = self._ledger.unit_of_work
        unit_of_work.rollback()
        claimed = self._ledger.record(
            LedgerEntry(
                request_id=identified.request_id,
                command_name=identified.command_name,
                success=False,
                reason=reason.value,
            )
        )
        if not claimed:
            return self._lost_race(identified)
        unit_of_work.save_entities(cancel=cancel)
        return CommandResult.failed(reason, str(exc))

    def _lost_race(self, identified: IdentifiedCommand) -> CommandResult:
        """Another delivery of the same request id committed first."""
        existing = self._ledger.find(identified.request_id)
        if existing is None:
            # The id was taken but is not visible to us yet; let the bus retry.
            return CommandResult.failed(
                ResultReason.CONCURRENCY_CONFLICT,
                f"Request {identified.request_id} is being processed concurrently",
            )
        logger.info(
            "Request %s lost the race to a concurrent delivery", identified.request_id
        )
        return self._duplicate(existing)

    def _duplicate(self, entry: LedgerEntry) -> CommandResult:
        logger.info(
            "Request %s (%s) already processed at %s; not executing again",
            entry.request_id,
            entry.command_name,
            entry.processed_at.isoformat(),
        )
        return self._duplicate_policy(entry)
