"""Narrow side channel for tracing/metrics around command handling.

The pipeline reports to an injected ``CommandObserver``; nothing in the
core touches global instrumentation state.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from ordering.application.results import CommandResult


class CommandObserver(ABC):

    @abstractmethod
    def command_started(self, command_name: str, request_id: str) -> None:
        ...

    @abstractmethod
    def command_finished(
        self, command_name: str, request_id: str, result: CommandResult
    ) -> None:
        ...

    @abstractmethod
    def command_failed(
        self, command_name: str, request_id: str, error: Exception
    ) -> None:
        """Handling raised instead of producing a result."""


class NullObserver(CommandObserver):

    def command_started(self, command_name: str, request_id: str) -> None:
        pass

    def command_finished(
        self, command_name: str, request_id: str, result: CommandResult
    ) -> None:
        pass

    def command_failed(
        self, command_name: str, request_id: str, error: Exception
    ) -> None:
        pass


class LoggingObserver(CommandObserver):
    """Reports command spans to the ``ordering.commands`` logger."""

    def __init__(self, name: str = "ordering.commands") -> None:
        self._logger = logging.getLogger(name)

    def command_started(self, command_name: str, request_id: str) -> None:
        self._logger.debug("command %s started (request_id=%s)", command_name, request_id)

    def command_finished(
        self, command_name: str, request_id: str, result: CommandResult
    ) -> None:
        self._logger.info(
            "command %s finished (request_id=%s success=%s reason=%s duplicate=%s)",
            command_name,
            request_id,
            result.success,
            result.reason.value if result.reason else None,
            result.duplicate,
        )

    def command_failed(
        self, command_name: str, request_id: str, error: Exception
    ) -> None:
        self._logger.warning(
            "command %s failed (request_id=%s error=%s: %s)",
            command_name,
            request_id,
            type(error).__name__,
            error,
        )
