"""
FactoryOps - Custom Exception Hierarchy

Provides structured, typed exceptions with error codes for consistent
error handling across the purchasing backend.

Usage:
    from factoryops.exceptions import NotFoundError, ValidationError

    # In a service
    raise NotFoundError("Purchase order", order_id)

    # With field context
    raise ValidationError("Received quantity must be positive", field="received_qty")
"""
from typing import Any, Dict, Optional


class FactoryOpsException(Exception):
    """
    Base exception for all FactoryOps errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "NOT_FOUND", "VALIDATION_ERROR")
        status_code: HTTP status code to return
        details: Additional context for debugging
    """

    error_code: str = "FACTORYOPS_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# ===================
# 400 Bad Request Errors
# ===================


class ValidationError(FactoryOpsException):
    """Raised when input is malformed or outside the domain (unknown material, bad quantity)."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details=details)


class InvalidStateError(FactoryOpsException):
    """Raised when an operation is invalid for the current order or material state."""

    error_code = "INVALID_STATE"
    status_code = 400

    def __init__(
        self,
        message: str = "Operation not allowed in current state",
        *,
        current_state: Optional[str] = None,
        allowed_states: Optional[list] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if current_state:
            details["current_state"] = current_state
        if allowed_states:
            details["allowed_states"] = allowed_states
        super().__init__(message, details=details)


# ===================
# 404 Not Found Errors
# ===================


class NotFoundError(FactoryOpsException):
    """Raised when a resource is not found."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Any = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(message, details=details)


# ===================
# 409 Conflict Errors
# ===================


class DuplicateError(FactoryOpsException):
    """Raised when attempting to create a duplicate resource."""

    error_code = "DUPLICATE_ERROR"
    status_code = 409

    def __init__(
        self,
        resource: str = "Resource",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        message = f"{resource} already exists"
        if field and value:
            message = f"{resource} with {field}='{value}' already exists"
        super().__init__(message, details=details)


class ConcurrencyError(FactoryOpsException):
    """Raised when the per-order lock cannot be acquired in time."""

    error_code = "CONCURRENCY_ERROR"
    status_code = 409

    def __init__(
        self,
        message: str = "Purchase order is being modified by another request",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


# ===================
# 502 Bad Gateway Errors
# ===================


class PostingError(FactoryOpsException):
    """
    Raised when the inventory poster rejects or times out on a stock credit.

    The order stays in its last pre-completion status; posting is retried
    on the next completion evaluation.
    """

    error_code = "POSTING_ERROR"
    status_code = 502

    def __init__(
        self,
        message: str = "Inventory posting failed",
        *,
        material_id: Optional[int] = None,
        reason: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if material_id is not None:
            details["material_id"] = material_id
        if reason:
            details["reason"] = reason
        super().__init__(message, details=details)
