"""
Domain errors for the order lifecycle.

Every error carries a stable ``code`` and enough structured data for the
API layer to render an actionable message.
"""
from __future__ import annotations


class OrderError(ValueError):
    """Base error for order operations."""

    code = "ORDER_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class InvalidTransition(OrderError):
    """Requested status change is not permitted from the current status."""

    code = "INVALID_TRANSITION"

    def __init__(self, current, requested, message: str | None = None):
        self.current = current
        self.requested = requested
        super().__init__(
            message
            or f"Invalid status transition from {_label(current)} to {_label(requested)}"
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["currentStatus"] = _label(self.current)
        data["requestedStatus"] = _label(self.requested)
        return data


class InvalidPaymentTransition(InvalidTransition):
    """Payment status change is not permitted (Paid and Failed are terminal)."""

    code = "INVALID_PAYMENT_TRANSITION"

    def __init__(self, current, requested):
        super().__init__(
            current,
            requested,
            f"Invalid payment status transition from {_label(current)} to {_label(requested)}",
        )


class Forbidden(OrderError):
    code = "FORBIDDEN"

    def __init__(self, message: str = "Not authorized to access this order"):
        super().__init__(message)


class Unauthenticated(Forbidden):
    code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class MissingRequiredField(OrderError):
    code = "MISSING_REQUIRED_FIELD"

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"{field} is required")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["field"] = self.field
        return data


class ConcurrentModification(OrderError):
    """Lost a race with another write against the same order."""

    code = "CONCURRENT_MODIFICATION"

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order {order_id} was modified concurrently, refetch and retry")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["orderId"] = str(self.order_id)
        return data


class NotFound(OrderError):
    code = "NOT_FOUND"

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["orderId"] = str(self.order_id)
        return data


class EmptyCart(OrderError):
    code = "EMPTY_CART"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class InvalidPayload(OrderError):
    code = "INVALID_PAYLOAD"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


def _label(value) -> str:
    return getattr(value, "value", value) if value is not None else "None"
