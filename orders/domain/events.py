"""
Domain events published through the transactional outbox.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID


class EventVersion(str, Enum):
    """Event version for upcasting."""
    V1 = "1.0"


@dataclass
class DomainEvent:
    """Base domain event."""
    event_id: UUID
    aggregate_id: UUID
    event_type: str
    # version and occurred_at follow the required fields on each subclass.


@dataclass
class OrderPlaced(DomainEvent):
    """Order created at checkout."""
    customer_id: UUID
    seller_id: UUID
    store_id: UUID
    order_type: str
    total_amount: Decimal
    items_count: int
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class OrderStatusChanged(DomainEvent):
    """Fulfillment status moved from one status to another."""
    customer_id: UUID
    seller_id: UUID
    previous_status: str
    status: str
    actor_role: str
    note: str = ""
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class OrderPaymentUpdated(DomainEvent):
    """Payment status settled (Paid or Failed)."""
    customer_id: UUID
    seller_id: UUID
    payment_status: str
    amount: Decimal
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""
