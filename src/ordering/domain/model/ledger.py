"""Request ledger entries: the memory of which commands were processed."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class LedgerEntry:
    """Outcome of the first delivery of a request id.

    Written once, in the same transaction as the change it guards, and
    never updated afterwards.
    """

    request_id: str
    command_name: str
    success: bool
    reason: str | None = None
    processed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
