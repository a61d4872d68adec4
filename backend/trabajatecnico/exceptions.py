"""
TrabajaTecnico Backend — Custom Exception Hierarchy
====================================================

What:  Application-specific exceptions for every failure the API reports.
How:   Each exception carries a message, a machine-checkable ``code``, an
       HTTP status and an optional context dict. Global exception handlers
       (registered in main.py) turn them into structured JSON responses.
Who:   Raised by services, dependencies and routes; caught by global handlers.

Exception Hierarchy:
    TrabajaTecnicoError (base)
    ├── ValidationError            → 400 validation_error
    ├── AuthenticationError        → 401 unauthorized
    ├── ForbiddenError             → 403 forbidden
    ├── NotFoundError              → 404 not_found
    ├── ConflictError              → 400 (e.g. already_applied)
    ├── PreconditionFailedError    → 400 (e.g. cv_required)
    ├── InvalidStateError          → 400 (e.g. not_pending)
    ├── DatabaseError              → 500 server_error
    └── FileStorageError           → 500 server_error

Conflict, precondition and invalid-state errors use 400 rather than
409/412/422: the web client already branches on the 400 + ``error`` code pair.
"""

from typing import Any, Dict, Optional


class TrabajaTecnicoError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        code:     Machine-readable error category
        context:  Additional debug info (logged; only client errors echo it back)
    """

    status_code: int = 500
    code: str = "internal_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
    ):
        self.message = message
        self.context = context or {}
        if code:
            self.code = code
        super().__init__(self.message)


class ValidationError(TrabajaTecnicoError):
    """Client input failed validation (malformed body, bad file, bad dates)."""

    status_code = 400
    code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(TrabajaTecnicoError):
    """
    Missing, malformed, expired or unknown bearer token.

    The message is deliberately identical for every cause.
    """

    status_code = 401
    code = "unauthorized"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message=message)


class ForbiddenError(TrabajaTecnicoError):
    """Authenticated, but the role or ownership does not allow the action."""

    status_code = 403
    code = "forbidden"

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(TrabajaTecnicoError):
    """
    The resource does not exist, or is hidden from the requester.

    Withdrawing someone else's application reports NotFound instead of
    Forbidden so the caller cannot discover which ids exist.
    """

    status_code = 404
    code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id is not None:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)
        self.resource = resource


class ConflictError(TrabajaTecnicoError):
    """The write would violate a uniqueness rule (one application per project)."""

    status_code = 400
    code = "conflict"

    def __init__(
        self,
        code: str = "conflict",
        message: str = "The resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context, code=code)


class PreconditionFailedError(TrabajaTecnicoError):
    """A prerequisite on the requester's own data is missing (e.g. no CV)."""

    status_code = 400
    code = "precondition_failed"

    def __init__(
        self,
        code: str = "precondition_failed",
        message: str = "A precondition for this action is not met",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context, code=code)


class InvalidStateError(TrabajaTecnicoError):
    """The resource's current status does not allow the requested transition."""

    status_code = 400
    code = "invalid_state"

    def __init__(
        self,
        code: str = "invalid_state",
        message: str = "This action is not allowed in the current state",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context, code=code)


class DatabaseError(TrabajaTecnicoError):
    """
    A query, insert or update failed unexpectedly.

    The message returned to the client is always generic; SQL text and
    driver errors stay in ``context`` and the server log.
    """

    status_code = 500
    code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(TrabajaTecnicoError):
    """Could not read, write, or delete a file under the upload root."""

    status_code = 500
    code = "server_error"

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
