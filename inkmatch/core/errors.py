"""
Error taxonomy shared by the matching and booking services.

Each error carries a stable `code` and the HTTP status the API layer maps it to.
Services raise these; routers never catch them (see exception handlers in main).
"""
from typing import Any, Dict, Optional


class InkMatchError(Exception):
    code = "internal_error"
    status_code = 500
    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(InkMatchError):
    """Unknown booking, artist or schedule id."""
    code = "not_found"
    status_code = 404

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        super().__init__(message, {"resource": resource, "resource_id": resource_id})


class InvalidTransitionError(InkMatchError):
    """A booking action that the current status does not allow."""
    code = "invalid_transition"
    status_code = 409

    def __init__(self, current: str, attempted: str):
        super().__init__(
            f"cannot {attempted} a booking in status '{current}'",
            {"current_status": current, "attempted": attempted},
        )


class ConflictError(InkMatchError):
    """Lost optimistic-concurrency race or overlapping slot; re-read and retry."""
    code = "conflict"
    status_code = 409
    retryable = True


class ValidationError(InkMatchError):
    code = "validation_error"
    status_code = 422


class UpstreamUnavailableError(InkMatchError):
    """Backing store (or another collaborator) failed."""
    code = "upstream_unavailable"
    status_code = 503
    retryable = True
