"""
Exception types for the DCB engine.
"""

from typing import Any, Optional


class DcbError(Exception):
    """Base class for engine errors."""
    pass


class EventStoreError(DcbError):
    """Raised when event store operations fail."""
    pass


class ConcurrencyConflict(EventStoreError):
    """
    Raised when the append condition no longer matches the live query result.

    Fields:
        query: Query the decision was built from
        expected: Append condition captured at decision time (None = no match)
        actual: Last matching event id observed inside the append guard
    """

    def __init__(self, query: Any, expected: Optional[int], actual: Optional[int]) -> None:
        self.query = query
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Append condition failed: expected last event {expected}, found {actual}"
        )


class ValidationError(DcbError):
    """Raised by command handlers when a business rule rejects a command."""
    pass


class InvalidTransitionError(DcbError):
    """Raised when a projection receives an event type it has no handler for."""
    pass


class UnknownCommandError(DcbError):
    """Raised when no handler is mapped for a command type."""
    pass
