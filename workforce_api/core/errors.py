"""
Domain-level errors raised by services.

These are independent of HTTP; the API layer maps each one to a status code
and renders it with the standard error envelope.
"""
from __future__ import annotations

from typing import Any, Optional


class WorkforceError(Exception):
    """Base exception for all workforce domain errors."""

    status_code: int = 400
    error_type: str = "domain_error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(WorkforceError):
    """Raised when a referenced entity does not exist in the current business."""

    status_code = 404
    error_type = "not_found"

    def __init__(self, entity: str, entity_id: Any = None):
        message = f"{entity} not found"
        super().__init__(message=message, details={"entity": entity, "id": str(entity_id) if entity_id else None})


class ValidationFailedError(WorkforceError):
    """Raised when a request is well-formed but violates a business rule."""

    status_code = 400
    error_type = "invalid_request"


class UnprocessableError(WorkforceError):
    """Raised when merged field values are inconsistent (e.g. an end date before the start date)."""

    status_code = 422
    error_type = "validation_error"


class ConflictError(WorkforceError):
    """Raised when the requested change conflicts with the current state."""

    status_code = 409
    error_type = "conflict"


class PermissionDeniedError(WorkforceError):
    """Raised when the caller may not act on the target entity."""

    status_code = 403
    error_type = "forbidden"


class ModuleNotInstalledError(WorkforceError):
    """Raised when a business has no enabled installation of a gated module."""

    status_code = 403
    error_type = "MODULE_NOT_INSTALLED"

    def __init__(self, module_key: str):
        super().__init__(
            message=f"{module_key.title()} module is not installed for this business",
            details={"module": module_key, "code": "MODULE_NOT_INSTALLED"},
        )
