"""
Custom domain exceptions for consistent error handling.

Every error carries a stable ``code`` (the error kind), a human-readable
message and an HTTP status. They are mapped to the error envelope by the
exception handlers in main.py. Connection internals never go into the
message; they are logged where the failure happens.
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for all domain-specific errors."""
    code = "domain_error"

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, details: dict | None = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ValidationError(DomainError):
    """Malformed request (400). Raised before any side effect."""
    code = "validation_error"

    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        if field:
            message = f"Validation error on {field}: {message}"
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class NotFoundError(DomainError):
    """Resource not found (404)."""
    code = "not_found"

    def __init__(self, resource_type: str, identifier, details: dict | None = None):
        message = f"{resource_type} not found: {identifier}"
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, details=details)


class UserNotFoundError(NotFoundError):
    code = "user_not_found"

    def __init__(self, user_id):
        super().__init__("User", user_id, details={"user_id": user_id})


class ProductNotFoundError(NotFoundError):
    code = "product_not_found"

    def __init__(self, product_id):
        super().__init__("Product", product_id, details={"product_id": product_id})


class OrderNotFoundError(NotFoundError):
    code = "order_not_found"

    def __init__(self, order_id):
        super().__init__("Order", order_id, details={"order_id": order_id})


class ConflictError(DomainError):
    """Resource conflict (409)."""
    code = "conflict"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_409_CONFLICT, details=details)


class InsufficientStockError(ConflictError):
    """Not enough stock to reserve, either by snapshot or rejected by the catalog."""
    code = "insufficient_stock"

    def __init__(self, product_id, requested: int, available: int | None = None):
        message = f"Insufficient stock for product {product_id}: requested {requested}"
        if available is not None:
            message += f", available {available}"
        super().__init__(
            message,
            details={"product_id": product_id, "requested": requested, "available": available},
        )


class InvalidTransitionError(ConflictError):
    """Illegal status change, including any change out of a terminal state (409)."""
    code = "invalid_transition"

    def __init__(self, current, requested, message: str | None = None):
        current_name = getattr(current, "value", current)
        requested_name = getattr(requested, "value", requested)
        super().__init__(
            message or f"Cannot change order status from {current_name} to {requested_name}",
            details={"current": current_name, "requested": requested_name},
        )


class ServiceUnavailableError(DomainError):
    """Downstream service timed out or failed after retries (503)."""
    code = "service_unavailable"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE, details=details)


class CatalogUnavailableError(ServiceUnavailableError):
    code = "catalog_unavailable"

    def __init__(self, message: str = "Product catalog unavailable", details: dict | None = None):
        super().__init__(message, details=details)


class UserDirectoryUnavailableError(ServiceUnavailableError):
    code = "user_directory_unavailable"

    def __init__(self, message: str = "User directory unavailable", details: dict | None = None):
        super().__init__(message, details=details)


class InternalError(DomainError):
    """Unexpected failure (500). Carries no internal detail."""
    code = "internal"

    def __init__(self, message: str = "Internal error", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)
