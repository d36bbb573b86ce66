from orders.domain.order import (
    ActorRole,
    DeliveryDetails,
    Order,
    OrderItem,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
    StatusHistoryEntry,
)

__all__ = [
    "ActorRole",
    "DeliveryDetails",
    "Order",
    "OrderItem",
    "OrderStatus",
    "OrderType",
    "PaymentMethod",
    "PaymentStatus",
    "StatusHistoryEntry",
]
