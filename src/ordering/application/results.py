"""Outcome of a command as reported to the caller."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ResultReason(Enum):
    NOT_FOUND = "NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    INVALID_STATE = "INVALID_STATE"
    REJECTED = "REJECTED"
    CONCURRENCY_CONFLICT = "CONCURRENCY_CONFLICT"


@dataclass(frozen=True)
class CommandResult:
    success: bool
    reason: ResultReason | None = None
    message: str = ""
    duplicate: bool = False

    def __bool__(self) -> bool:
        return self.success

    @staticmethod
    def ok() -> CommandResult:
        return CommandResult(success=True)

    @staticmethod
    def failed(reason: ResultReason, message: str = "") -> CommandResult:
        return CommandResult(success=False, reason=reason, message=message)
