"""
Associates Backend — Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for the error scenarios the API exposes.
Why:   Each type maps to one HTTP status and one response shape; the handlers in
       main.py do the mapping so services never build HTTP responses.
How:   Each exception carries a user-safe message and an optional context dict.
       The context is logged server-side and never returned to the client.

Exception Hierarchy:
    AppError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationRequired   → 401 Unauthorized   {"message": "unauthenticated"}
    ├── PermissionDeniedError    → 403 Forbidden      {"message": "forbidden"}
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── MediaHostError           → 502 Bad Gateway
    └── DatabaseError            → 500 Internal Server Error

    ConfigurationError is deliberately outside AppError: it is raised from the
    lifespan handler before any request exists and must stop the process.

Login failures are not exceptions. AuthGate.login() returns an AuthError
value and the auth route maps it to 401 itself. AuthenticationRequired only
exists so the require_identity dependency can short-circuit a protected
route before its other dependencies (the DB session) are entered.
"""

from typing import Any, Dict, Optional


class ConfigurationError(Exception):
    """Raised at startup when required configuration is missing or unusable."""


class AppError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """
    Raised when client input fails a business rule.

    When:    Empty upload, oversized upload, empty document body.
    HTTP:    400 Bad Request (schema errors stay on FastAPI's 422)
    """

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


class AuthenticationRequired(AppError):
    """
    Raised by the require_identity dependency when the auth cookie is absent,
    tampered with, or expired. The response never says which.

    HTTP:    401 Unauthorized
    """

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="unauthenticated", context=context)


class PermissionDeniedError(AppError):
    """
    Raised when a valid identity lacks the role a route requires.

    HTTP:    403 Forbidden
    """

    def __init__(self, required_role: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["required_role"] = required_role
        super().__init__(message="forbidden", context=ctx)
        self.required_role = required_role


class NotFoundError(AppError):
    """
    Raised when a requested resource does not exist.

    When:    GET/PUT/DELETE /api/<resource>/{id} with an unknown id, or an id
             that belongs to a different resource collection.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(AppError):
    """
    Raised when a create would violate a uniqueness rule.

    When:    Provisioning a credential whose identifier already exists.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "The resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class MediaHostError(AppError):
    """
    Raised when the media host rejects a call or cannot be reached after retries.

    HTTP:    502 Bad Gateway
    Recovery:
        - Log the host's error payload with the request ID
        - Return a generic message (host error texts can echo our API key name)
    """

    def __init__(
        self,
        message: str = "The media host could not process the request",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code


class DatabaseError(AppError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error
    Security Note:
        The message returned to the client is always generic. Query text and
        driver errors are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
