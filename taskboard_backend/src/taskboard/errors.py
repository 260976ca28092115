from __future__ import annotations

from typing import Optional


# PUBLIC_INTERFACE
class TaskboardError(Exception):
    """
    Base class for every error the service reports to callers.

    Subclasses carry a stable ``code`` and a short human-readable message that
    is safe to show next to the form or action that triggered it.
    """

    code = "Error"
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TaskboardError):
    """A required field is missing or a value is malformed."""

    code = "ValidationError"
    default_message = "Invalid input"


class AuthError(TaskboardError):
    """Bad credentials. The message never says which part was wrong."""

    code = "AuthError"
    default_message = "Invalid email or password"


class NotAuthenticatedError(TaskboardError):
    """A gated operation was called without a valid session."""

    code = "NotAuthenticatedError"
    default_message = "You must be logged in to do that"


class ConflictError(TaskboardError):
    """A unique constraint would be violated (e.g. duplicate email)."""

    code = "ConflictError"
    default_message = "Resource already exists"


class NotFoundError(TaskboardError):
    code = "NotFoundError"
    default_message = "Not found"


class StorageError(TaskboardError):
    """Catch-all for failures of the underlying persistence layer."""

    code = "StorageError"
    default_message = "A storage error occurred, please try again"
