from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Session not found") -> None:
        super().__init__(message)


class SessionExpiredError(UserError):
    """Raised when a session exists but its TTL has elapsed."""

    def __init__(self, message: str = "Session expired") -> None:
        super().__init__(message)


class ResourceExhaustedError(UserError):
    """Raised when a capacity limit (sessions, queue depth) is reached."""


class ValidationError(UserError):
    """Raised when user input fails validation."""
