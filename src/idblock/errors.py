from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class AllocationError(ABC, Exception):
    """Base class for failures while reserving a block of identifiers.

    An allocation either returns the whole block or raises one of these;
    a partial block is never handed out.
    """


class NotFoundError(UserError):
    """Raised when a requested counter does not exist."""

    def __init__(self, message: str = "Counter not found") -> None:
        super().__init__(message)


class ValidationError(UserError):
    """Raised when user input fails validation."""


class ConfigurationError(UserError, AllocationError):
    """Raised when the backing store is not set up the way the options require.

    Not retryable: the setup must be fixed first.
    """


class StoreUnavailableError(AllocationError):
    """Raised when the store cannot be reached or an operation fails transiently.

    Safe to retry the whole allocation.
    """


class CorruptStateError(AllocationError):
    """Raised when a stored counter document is malformed. Never repaired automatically."""


class ConflictError(AllocationError):
    """Raised when a concurrent writer won: a duplicate insert or an exhausted compare-and-swap retry."""


class CounterOverflowError(AllocationError):
    """Raised when advancing a counter would leave the signed 64-bit range."""
