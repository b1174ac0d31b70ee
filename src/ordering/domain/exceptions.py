"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the command boundary and the CLI can catch them uniformly.

Infrastructure faults (``TransientStoreError``, ``CommandCancelledError``)
are deliberately *not* domain exceptions: they describe the environment,
not a rule violation, and must reach the caller untouched.
"""


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class InvalidTransitionError(DomainException):
    """The order state machine rejected the requested status change."""


class InvalidStateError(DomainException):
    """The order can no longer be modified in the requested way."""


class TransientStoreError(Exception):
    """The durable store is unreachable or timed out; safe to retry."""


class CommandCancelledError(Exception):
    """The caller cancelled the command before its unit of work committed."""
