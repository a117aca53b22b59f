"""
Domain exceptions for the POS sync core.

Provides specific exception types for different error scenarios.
"""

from typing import Any


class PosError(Exception):
    """Base exception for all POS sync errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Input Exceptions
class ValidationError(PosError):
    """Input validation failed."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value is not None else None,
            },
        )


class DuplicateKeyError(PosError):
    """A business key (e.g. product barcode) is already taken."""

    def __init__(self, entity_type: str, field: str, value: Any, existing_id: Any = None):
        super().__init__(
            f"Duplicate {entity_type} {field}: {value}",
            code="DUPLICATE_KEY",
            details={
                "entity_type": entity_type,
                "field": field,
                "value": value,
                "existing_id": existing_id,
            },
        )


class NotFoundError(PosError):
    """Operation on an unknown identifier."""

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(
            f"{entity_type.capitalize()} not found: {entity_id}",
            code="NOT_FOUND",
            details={"entity_type": entity_type, "entity_id": entity_id},
        )


# Sale Exceptions
class SaleError(PosError):
    """Base exception for sale preconditions."""

    pass


class EmptyCartError(SaleError):
    """Cannot complete a sale without line items."""

    def __init__(self) -> None:
        super().__init__(
            "Cannot complete sale with empty cart",
            code="EMPTY_CART",
        )


class InsufficientPaymentError(SaleError):
    """Payment amount is less than the sale total."""

    def __init__(self, payment_amount: float, total: float):
        super().__init__(
            f"Payment amount {payment_amount:.2f} is less than total {total:.2f}",
            code="INSUFFICIENT_PAYMENT",
            details={"payment_amount": payment_amount, "total": total},
        )


class InsufficientStockError(SaleError):
    """Requested quantity exceeds stock on hand."""

    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Not enough stock for product {product_id}: "
            f"requested {requested}, available {available}",
            code="INSUFFICIENT_STOCK",
            details={
                "product_id": product_id,
                "requested": requested,
                "available": available,
            },
        )


# Storage Exceptions
class StorageError(PosError):
    """Base exception for local storage operations."""

    pass


class DatabaseError(StorageError):
    """Database operation failed."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            code="DATABASE_ERROR",
            details={"operation": operation, "error": error},
        )


# Remote Exceptions
class RemoteError(PosError):
    """Base exception for remote store operations."""

    pass


class TransientRemoteError(RemoteError):
    """Network failure or timeout; the operation may succeed later."""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Remote store unavailable during {operation}: {reason}",
            code="REMOTE_UNAVAILABLE",
            details={"operation": operation, "reason": reason},
        )


class PermanentRemoteError(RemoteError):
    """Remote store rejected the payload; retrying will not help."""

    def __init__(self, operation: str, reason: str, status_code: int | None = None):
        super().__init__(
            f"Remote store rejected {operation}: {reason}",
            code="REMOTE_REJECTED",
            details={"operation": operation, "reason": reason, "status_code": status_code},
        )


class AlreadyAppliedError(RemoteError):
    """Remote store reports the operation was already applied."""

    def __init__(self, operation: str, reason: str = ""):
        super().__init__(
            f"Remote store already applied {operation}" + (f": {reason}" if reason else ""),
            code="ALREADY_APPLIED",
            details={"operation": operation, "reason": reason},
        )


class ConfigurationError(PosError):
    """Configuration error."""

    pass
