"""
Domain model for Order aggregate.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from django.utils import timezone

from orders.domain.errors import InvalidPaymentTransition, InvalidPayload


class OrderStatus(str, Enum):
    """Order fulfillment status."""
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    PREPARING = "Preparing"
    READY = "Ready"
    OUT_FOR_DELIVERY = "Out for Delivery"
    READY_FOR_PICKUP = "Ready for Pickup"
    DELIVERED = "Delivered"
    CANCELED = "Canceled"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "Cash on Delivery"
    GCASH = "GCash"
    CASH_ON_PICKUP = "Cash on Pickup"


class OrderType(str, Enum):
    PICKUP = "Pickup"
    DELIVERY = "Delivery"


class ActorRole(str, Enum):
    CUSTOMER = "Customer"
    SELLER = "Seller"


PAYMENT_METHODS_BY_ORDER_TYPE = {
    OrderType.PICKUP: (PaymentMethod.CASH_ON_PICKUP, PaymentMethod.GCASH),
    OrderType.DELIVERY: (PaymentMethod.CASH_ON_DELIVERY, PaymentMethod.GCASH),
}


def default_payment_method(order_type: OrderType) -> PaymentMethod:
    """Cash on the spot for the given fulfillment type."""
    return PAYMENT_METHODS_BY_ORDER_TYPE[order_type][0]


# Amount columns are DECIMAL(12, 2).
MAX_AMOUNT = Decimal("9999999999.99")


def _is_valid_amount(amount) -> bool:
    amount = Decimal(amount)
    return amount.is_finite() and Decimal("0") <= amount <= MAX_AMOUNT


class OrderItem:
    """
    Order line item value object.

    ``estimated_preparation_time`` is the product's own estimate in minutes,
    captured at checkout; it is not persisted per item.
    """

    def __init__(
        self,
        product_id: UUID,
        quantity: int,
        price: Decimal,
        product_name: str = "",
        estimated_preparation_time: int | None = None,
    ):
        if quantity < 1:
            raise InvalidPayload("Quantity must be at least 1", field="quantity")
        if not _is_valid_amount(price):
            raise InvalidPayload("Price must be a non-negative amount", field="price")
        if estimated_preparation_time is not None and estimated_preparation_time < 1:
            raise InvalidPayload(
                "Estimated time must be a positive number (in minutes)",
                field="estimatedPreparationTime",
            )

        self.product_id = product_id
        self.product_name = product_name
        self.quantity = quantity
        self.price = price
        self.estimated_preparation_time = estimated_preparation_time

    @property
    def subtotal(self) -> Decimal:
        """Calculate item subtotal."""
        return self.price * self.quantity


@dataclass(frozen=True)
class DeliveryDetails:
    receiver_name: str
    contact_number: str
    building: str
    room_number: str
    additional_instructions: str = ""

    def to_dict(self) -> dict:
        return {
            "receiver_name": self.receiver_name,
            "contact_number": self.contact_number,
            "building": self.building,
            "room_number": self.room_number,
            "additional_instructions": self.additional_instructions,
        }

    @classmethod
    def from_dict(cls, data: dict) -> DeliveryDetails:
        return cls(
            receiver_name=data["receiver_name"],
            contact_number=data["contact_number"],
            building=data["building"],
            room_number=data["room_number"],
            additional_instructions=data.get("additional_instructions", ""),
        )


@dataclass(frozen=True)
class StatusHistoryEntry:
    """One entry of the append-only status audit trail."""
    status: OrderStatus
    timestamp: datetime
    note: str = ""


@dataclass
class Order:
    """
    Order aggregate root.

    One seller's fulfillment of the part of a customer's cart that belongs to
    a single store. Status changes go through ``apply_transition`` with an
    outcome produced by ``orders.domain.transitions``.
    """
    customer_id: UUID
    seller_id: UUID
    store_id: UUID
    order_type: OrderType
    payment_method: PaymentMethod
    items: list[OrderItem] = field(default_factory=list)
    shipping_fee: Decimal = Decimal("0.00")
    id: UUID = field(default_factory=uuid4)
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    delivery_details: DeliveryDetails | None = None
    pickup_time: datetime | None = None
    estimated_preparation_time: int | None = None
    notes: str = ""
    cancellation_reason: str = ""
    canceled_by: ActorRole | None = None
    status_history: list[StatusHistoryEntry] = field(default_factory=list)
    created_at: datetime | None = None
    accepted_at: datetime | None = None
    canceled_at: datetime | None = None
    delivered_at: datetime | None = None
    version: int = 0

    @classmethod
    def place(
        cls,
        customer_id: UUID,
        seller_id: UUID,
        store_id: UUID,
        items: list[OrderItem],
        order_type: OrderType,
        payment_method: PaymentMethod,
        shipping_fee: Decimal = Decimal("0.00"),
        delivery_details: DeliveryDetails | None = None,
        pickup_time: datetime | None = None,
        estimated_preparation_time: int | None = None,
        notes: str = "",
    ) -> Order:
        """Create a new Pending order with its first history entry."""
        if not _is_valid_amount(shipping_fee):
            raise InvalidPayload("Shipping fee must be a non-negative amount", field="shippingFee")
        total = sum((item.subtotal for item in items), Decimal("0.00")) + shipping_fee
        if total > MAX_AMOUNT:
            raise InvalidPayload("Order total is too large", field="totalAmount")
        if payment_method not in PAYMENT_METHODS_BY_ORDER_TYPE[order_type]:
            raise InvalidPayload(
                f"Invalid payment method for {order_type.value.lower()} order",
                field="paymentMethod",
            )
        if order_type == OrderType.DELIVERY and delivery_details is None:
            raise InvalidPayload(
                "Delivery details are required for delivery orders",
                field="deliveryDetails",
            )
        if order_type == OrderType.PICKUP and pickup_time is None:
            raise InvalidPayload(
                "Pickup time is required for pickup orders", field="pickupTime"
            )

        now = timezone.now()
        if order_type == OrderType.PICKUP:
            if timezone.is_naive(pickup_time):
                pickup_time = timezone.make_aware(pickup_time)
            if pickup_time <= now:
                raise InvalidPayload("Pickup time must be in the future", field="pickupTime")
        return cls(
            customer_id=customer_id,
            seller_id=seller_id,
            store_id=store_id,
            items=list(items),
            order_type=order_type,
            payment_method=payment_method,
            shipping_fee=shipping_fee,
            delivery_details=delivery_details if order_type == OrderType.DELIVERY else None,
            pickup_time=pickup_time if order_type == OrderType.PICKUP else None,
            estimated_preparation_time=estimated_preparation_time,
            notes=notes,
            created_at=now,
            status_history=[StatusHistoryEntry(OrderStatus.PENDING, now)],
        )

    @property
    def items_total(self) -> Decimal:
        return sum((item.subtotal for item in self.items), Decimal("0.00"))

    @property
    def total_amount(self) -> Decimal:
        """Sum of line-item subtotals plus the shipping fee."""
        return self.items_total + self.shipping_fee

    def apply_transition(self, outcome) -> None:
        """Apply a validated ``TransitionOutcome`` and record it in history."""
        now = timezone.now()
        self.status = outcome.target
        for stamp in outcome.stamps:
            if getattr(self, stamp) is None:
                setattr(self, stamp, now)
        if outcome.canceled_by is not None:
            self.canceled_by = outcome.canceled_by
            self.cancellation_reason = outcome.reason
        if outcome.estimated_preparation_time is not None:
            self.estimated_preparation_time = outcome.estimated_preparation_time
        if outcome.settles_payment and self.payment_status == PaymentStatus.PENDING:
            self.payment_status = PaymentStatus.PAID
        self.status_history.append(StatusHistoryEntry(outcome.target, now, outcome.note))

    def mark_paid(self, note: str = "") -> None:
        """Settle payment (Pending -> Paid)."""
        self._set_payment_status(PaymentStatus.PAID, note or "Payment received")

    def mark_payment_failed(self, note: str = "") -> None:
        """Fail payment (Pending -> Failed)."""
        self._set_payment_status(PaymentStatus.FAILED, note or "Payment failed")

    def _set_payment_status(self, target: PaymentStatus, note: str) -> None:
        if self.payment_status != PaymentStatus.PENDING:
            raise InvalidPaymentTransition(self.payment_status, target)
        self.payment_status = target
        # Payment changes are audited under the unchanged fulfillment status.
        self.status_history.append(StatusHistoryEntry(self.status, timezone.now(), note))
