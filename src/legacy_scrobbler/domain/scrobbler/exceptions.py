"""Scrobble service exceptions for error handling."""


class ScrobblerError(Exception):
    """Base exception for scrobble service operations."""

    pass


class NotAuthenticatedError(ScrobblerError):
    """Raised when an operation needs a session key that is not stored."""

    pass


class ServiceUnavailableError(ScrobblerError):
    """Raised when the relay server cannot be reached."""

    pass
