"""
Typed failures raised by the location store and services.

The HTTP layer maps these to status codes:
- ValidationError -> 400 (bad client input, never retried)
- StorageError    -> 500 (backing store unavailable or timed out)
"""


class TrackerError(Exception):
    """Base class for all tracker errors."""


class ValidationError(TrackerError):
    """A location report is missing a coordinate or it is not a number."""


class StorageError(TrackerError):
    """The backing store failed, timed out, or could not be reached."""
