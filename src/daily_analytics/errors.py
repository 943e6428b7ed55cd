"""
Error types raised by the collector.

Every error is scoped to the request or operation that raised it; none of
them is fatal to the process.
"""


class AnalyticsError(Exception):
    """Base class for collector errors."""
    pass


class EventValidationError(AnalyticsError, ValueError):
    """Raised when an incoming event is missing required fields or can't be shaped."""
    pass


class StorageError(AnalyticsError):
    """Raised when a batch can't be written, read or listed."""
    pass


class BatchNotFoundError(AnalyticsError, LookupError):
    """Raised when no batch has been stored for the requested date."""

    def __init__(self, day: str):
        super().__init__(f"No batch stored for {day}")
        self.day = day
