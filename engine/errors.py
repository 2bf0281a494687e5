"""Error types raised by the calendar engine."""
from typing import Optional


class CalendarError(Exception):
    """Base class for calendar engine errors."""


class ValidationError(CalendarError):
    """User input rejected before it reaches the event store."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class PersistenceError(CalendarError):
    """Event blob could not be written to its backend."""


class PreconditionViolation(CalendarError):
    """Caller broke an engine precondition (programmer error)."""
