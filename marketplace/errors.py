"""Exceptions raised by the marketplace services."""

from typing import Optional

from sqlalchemy.exc import IntegrityError


class MarketplaceError(Exception):
    """Base exception for all marketplace errors."""

    status_code = 400

    def to_dict(self) -> dict:
        return {"status": "error", "message": str(self)}


class ValidationError(MarketplaceError):
    """Raised when an input field is missing or out of range."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["field"] = self.field
        return payload


class CyclicReferenceError(MarketplaceError):
    """Raised when a parent assignment would make a category its own ancestor."""

    status_code = 409

    def __init__(self, category_id: Optional[str], parent_id: str):
        self.category_id = category_id
        self.parent_id = parent_id
        super().__init__(
            f"Circular reference detected: {parent_id} cannot be the parent of {category_id}"
        )


class InvalidTransition(MarketplaceError):
    """Raised when an order cannot move from its current status to the requested one."""

    status_code = 409

    def __init__(self, current: Optional[str], requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change order status from {current!r} to {requested!r}")


class ConcurrentModification(MarketplaceError):
    """Raised when a conditional update matched no rows."""

    status_code = 409

    def __init__(self, order_id: str, expected_status: str):
        self.order_id = order_id
        self.expected_status = expected_status
        super().__init__(
            f"Order {order_id} was modified concurrently (expected status {expected_status!r})"
        )


class NotFoundError(MarketplaceError):
    """Raised when a referenced row does not exist."""

    status_code = 404

    def __init__(self, table: str, row_id: str):
        self.table = table
        self.row_id = row_id
        super().__init__(f"{table} not found: {row_id}")


class StoreError(MarketplaceError):
    """Raised when the backing store rejects or fails an operation."""

    status_code = 502

    def __init__(self, message: str, conflict: bool = False):
        self.conflict = conflict
        super().__init__(message)

    @classmethod
    def from_exception(cls, exc: Exception) -> "StoreError":
        message = str(getattr(exc, "orig", None) or exc)
        return cls(message, conflict=isinstance(exc, IntegrityError))
