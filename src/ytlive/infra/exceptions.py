"""
Custom exceptions for ytlive operations.

Validation, transition and lookup errors are raised synchronously to the
caller and never leave a partial mutation behind. Broadcaster errors are
caught by the lifecycle controller and recorded as stream state.
"""


class YtLiveError(Exception):
    """Base exception for all ytlive errors."""

    pass


class ValidationError(YtLiveError):
    """Raised when operator input is malformed or incomplete."""

    pass


class ScheduleConfigError(ValidationError):
    """Raised when a stop schedule cannot be turned into a deadline."""

    pass


class DuplicateIdError(ValidationError):
    """Raised when a stream id is already present (or was ever used) in the store."""

    pass


class InvalidTransitionError(YtLiveError):
    """Raised when a command is illegal for the stream's current status."""

    pass


class DuplicateKeyError(InvalidTransitionError):
    """Raised when a destination key is already in use by an active stream."""

    pass


class NotFoundError(YtLiveError):
    """Raised when a stream id is unknown."""

    pass


class BroadcasterError(YtLiveError):
    """Raised by a broadcaster when a start or stop request fails."""

    pass
