"""Domain errors for the request workflow.

Every error carries a stable machine-readable ``code``, the HTTP status the API layer
maps it to, and a human-readable message. Services raise these; ``main`` renders them
into the ``{"error": {...}}`` envelope.
"""
from typing import Any, Optional


class WorkflowError(Exception):
    """Base class for all expected workflow outcomes."""

    code = "error"
    http_status = 400

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class UnauthenticatedError(WorkflowError):
    code = "unauthenticated"
    http_status = 401

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class ForbiddenError(WorkflowError):
    """Role or ownership rejection."""

    code = "forbidden"
    http_status = 403


class NotFoundError(WorkflowError):
    code = "not_found"
    http_status = 404

    def __init__(self, resource: str, resource_id: str) -> None:
        super().__init__(f"{resource} not found: {resource_id}")
        self.resource = resource
        self.resource_id = resource_id


class InvalidStateTransitionError(WorkflowError):
    """Status precondition failed for the attempted action."""

    code = "invalid_state_transition"
    http_status = 400

    def __init__(self, action: str, current_status: str) -> None:
        super().__init__(
            f"Invalid state transition: cannot {action} a request with status '{current_status}'",
            details={"action": action, "current_status": current_status},
        )
        self.action = action
        self.current_status = current_status


class RequestValidationError(WorkflowError):
    """Payload shape or content rejected; ``details`` lists field errors."""

    code = "validation_error"
    http_status = 400

    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None) -> None:
        super().__init__(message, details=errors or [])
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "RequestValidationError":
        return cls(message, [{"field": field, "message": message}])


class ConflictError(WorkflowError):
    """A conditional write lost the race against a concurrent transition."""

    code = "conflict"
    http_status = 400

    def __init__(self, request_id: str, expected_status: str) -> None:
        super().__init__(
            f"Request {request_id} was modified concurrently (expected status '{expected_status}')",
            details={"request_id": request_id, "expected_status": expected_status},
        )
        self.request_id = request_id
        self.expected_status = expected_status


class InternalError(WorkflowError):
    """Unexpected failure; the message never leaks internals."""

    code = "internal_error"
    http_status = 500

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(message)
