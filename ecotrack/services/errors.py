"""Exceptions raised by the checklist services.

Every error carries the HTTP status the API layer should answer with, so the
Flask app can render the whole hierarchy through one error handler.
"""


class ChecklistServiceError(Exception):
    """Base exception for checklist service failures."""

    status_code = 400

    def __init__(self, message: str = ""):
        self.message = message or self.__class__.__doc__ or "Request failed"
        super().__init__(self.message)


class ValidationError(ChecklistServiceError):
    """Raised when payloads are missing required fields or carry malformed values."""


class PreconditionError(ChecklistServiceError):
    """Raised when a business rule blocks the operation (e.g. check-in with nothing done)."""


class NotFoundError(ChecklistServiceError):
    """Raised when the target resource does not exist or is not owned by the user."""

    status_code = 404


class AuthError(ChecklistServiceError):
    """Raised when no valid user can be resolved from the request."""

    status_code = 401


class ForbiddenError(AuthError):
    """Raised when the authenticated user acts on another user's data."""

    status_code = 403


class ConflictError(ChecklistServiceError):
    """Raised when a unique username or email is already taken."""

    status_code = 409


class StorageFault(ChecklistServiceError):
    """Raised when the underlying store is unavailable or rejects a write unexpectedly."""

    status_code = 500
