"""Custom exceptions for the artguard application.

Provides a hierarchy of domain-specific exceptions so callers can tell a
storage outage apart from a failed notification or a bad request.
"""


class ArtguardError(Exception):
    """Base exception for all application errors."""


class ConfigurationError(ArtguardError):
    """Raised for invalid application configuration.

    Missing materials or thresholds are not configuration errors: an artifact
    without bounds is a valid, unbounded state.
    """


class StorageError(ArtguardError):
    """Raised when a query or write against the alert store fails."""


class DatabaseNotConnectedError(StorageError):
    """Raised when attempting database operations without a connection."""

    def __init__(self, message: str = "Database not connected") -> None:
        super().__init__(message)


class SendError(ArtguardError):
    """Raised when a notification could not be delivered."""
