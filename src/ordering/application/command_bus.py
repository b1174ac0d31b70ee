"""Command bus: routes identified commands to their idempotent handlers.

Each dispatch attempt runs in a fresh unit of work, so no aggregate state
is shared between commands or between retries.  Concurrency conflicts and
transient store failures are retried with exponential backoff; the request
ledger makes those retries safe.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from ordering.application.cancel_order import CancelOrderHandler
from ordering.application.commands import (
    CancelOrderCommand,
    Command,
    CreateOrderCommand,
    IdentifiedCommand,
    SetAwaitingValidationOrderStatusCommand,
    SetPaidOrderStatusCommand,
    SetStockConfirmedOrderStatusCommand,
    ShipOrderCommand,
)
from ordering.application.create_order import CreateOrderHandler
from ordering.application.idempotency import (
    DUPLICATE_POLICIES,
    CommandHandler,
    IdempotentCommandHandler,
)
from ordering.application.observability import CommandObserver, NullObserver
from ordering.application.order_status import (
    SetAwaitingValidationOrderStatusHandler,
    SetStockConfirmedOrderStatusHandler,
    ShipOrderHandler,
)
from ordering.application.results import CommandResult, ResultReason
from ordering.application.set_paid_order_status import SetPaidOrderStatusHandler
from ordering.application.unit_of_work import UnitOfWork
from ordering.domain.exceptions import CommandCancelledError, TransientStoreError
from ordering.domain.repository.order_repository import OrderRepository

logger = logging.getLogger(__name__)

HANDLERS: dict[type[Command], Callable[[OrderRepository], CommandHandler]] = {
    CreateOrderCommand: CreateOrderHandler,
    CancelOrderCommand: CancelOrderHandler,
    SetAwaitingValidationOrderStatusCommand: SetAwaitingValidationOrderStatusHandler,
    SetStockConfirmedOrderStatusCommand: SetStockConfirmedOrderStatusHandler,
    SetPaidOrderStatusCommand: SetPaidOrderStatusHandler,
    ShipOrderCommand: ShipOrderHandler,
}


class CommandBus:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        observer: CommandObserver | None = None,
        max_attempts: int = 3,
        backoff_seconds: float = 0.05,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._uow_factory = uow_factory
        self._observer = observer or NullObserver()
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep

    def dispatch(
        self,
        identified: IdentifiedCommand,
        cancel: threading.Event | None = None,
    ) -> CommandResult:
        """Handle *identified*, retrying conflicts and transient failures.

        Business outcomes (not found, invalid transition, duplicate) are
        returned as-is; a ``TransientStoreError`` escapes only after the
        last attempt.
        """
        attempt = 1
        while True:
            if cancel is not None and cancel.is_set():
                raise CommandCancelledError(
                    f"Request {identified.request_id} cancelled before attempt {attempt}"
                )
            try:
                result = self._dispatch_once(identified, cancel)
            except TransientStoreError as exc:
                if attempt >= self._max_attempts:
                    logger.error(
                        "Request %s failed after %d attempt(s): %s",
                        identified.request_id,
                        attempt,
                        exc,
                    )
                    raise
                logger.warning(
                    "Transient store failure on request %s (attempt %d): %s",
                    identified.request_id,
                    attempt,
                    exc,
                )
            else:
                if (
                    result.reason is not ResultReason.CONCURRENCY_CONFLICT
                    or attempt >= self._max_attempts
                ):
                    return result
                logger.info(
                    "Retrying request %s after concurrency conflict (attempt %d)",
                    identified.request_id,
                    attempt,
                )
            self._sleep(self._backoff_seconds * 2 ** (attempt - 1))
            attempt += 1

    def _dispatch_once(
        self,
        identified: IdentifiedCommand,
        cancel: threading.Event | None,
    ) -> CommandResult:
        command = identified.command
        try:
            factory = HANDLERS[type(command)]
        except KeyError:
            raise TypeError(f"No handler registered for {type(command).__name__}") from None

        with self._uow_factory() as uow:
            handler = IdempotentCommandHandler(
                inner=factory(uow.orders),
                ledger=uow.requests,
                duplicate_policy=DUPLICATE_POLICIES[command.command_type],
                observer=self._observer,
            )
            return handler.handle(identified, cancel=cancel)
