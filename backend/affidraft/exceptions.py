"""
AffiDraft Backend: Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for the editor core, the save boundary
       and the template API.
How:   Each exception carries a user-facing message and an optional context
       dict. Global exception handlers (registered in main.py) map them to
       HTTP status codes and structured JSON error bodies.
Who:   Raised by services, the editor session and the editor core;
       caught by global handlers or by the editor's caller.

Exception Hierarchy:
    AffiDraftError (base)
    ├── ValidationError             → 400 Bad Request
    ├── NotFoundError               → 404 Not Found
    ├── CanvasUnavailableError      → 409 Conflict (canvas closed / surface lost)
    ├── SaveInProgressError         → 409 Conflict (second save while one is in flight)
    ├── UnresolvedPlaceholderError  → 422 Unprocessable Entity (strict extraction)
    ├── DatabaseError               → 500 Internal Server Error
    ├── FeatureNotAvailableError    → 501 Not Implemented (PDF export)
    └── TemplateSaveError           → 502 Bad Gateway (save endpoint failed)

Editor core contract:
    Structural canvas operations on unknown ids are no-ops, never errors.
    Only environment conditions (CanvasUnavailableError) and persistence
    failures (TemplateSaveError) escalate.
"""

from typing import Any, Dict, Optional


class AffiDraftError(Exception):
    """
    Base exception for all AffiDraft application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where the
                  handler chooses to)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(AffiDraftError):
    """
    Raised when client input fails a business rule.

    When:  Malformed element snapshots, unknown placeholder ids on the
           session API, empty template names reaching the service layer.
    HTTP:  400 Bad Request (schema-level problems stay FastAPI's 422)
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


class NotFoundError(AffiDraftError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; the service layer converts
    that None into this exception.
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


class CanvasUnavailableError(AffiDraftError):
    """
    Raised when a mutating operation reaches a canvas that has been closed.

    This is the "drawing surface unavailable" environment error: the caller
    should surface it and offer to reload the template rather than retry.
    """

    def __init__(
        self,
        message: str = "The editing canvas is no longer available. Reload the template to continue.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class SaveInProgressError(AffiDraftError):
    """Raised when save() is called while a previous save has not completed."""

    def __init__(
        self,
        message: str = "A save for this template is already in progress.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UnresolvedPlaceholderError(AffiDraftError):
    """
    Raised by strict placeholder extraction when a canvas object references
    a placeholder id that the registry cannot resolve.
    """

    def __init__(
        self,
        placeholder_id: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["placeholder_id"] = placeholder_id
        super().__init__(
            message=f"Placeholder '{placeholder_id}' is used on the canvas but has no definition.",
            context=ctx,
        )
        self.placeholder_id = placeholder_id


class DatabaseError(AffiDraftError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; details
    (statement, constraint name) are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FeatureNotAvailableError(AffiDraftError):
    """Raised by operations that are declared but not implemented (PDF export)."""

    def __init__(
        self,
        feature: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["feature"] = feature
        super().__init__(
            message=f"{feature} is not available yet.",
            context=ctx,
        )
        self.feature = feature


class TemplateSaveError(AffiDraftError):
    """
    Raised by the editor's save client when the template endpoint rejects
    the request or cannot be reached. Saves are attempted once; there is
    no automatic retry.

    Attributes:
        status_code: HTTP status returned by the endpoint, None on transport failure
    """

    def __init__(
        self,
        message: str = "Failed to save template",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code
