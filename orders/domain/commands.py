"""
Typed command payloads and actor context.

Loosely shaped request bodies are parsed here, once, into explicit
structures with fixed required and optional fields.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from uuid import UUID

from django.utils import timezone

from orders.domain.errors import EmptyCart, InvalidPayload, MissingRequiredField, Unauthenticated
from orders.domain.order import (
    ActorRole,
    DeliveryDetails,
    MAX_AMOUNT,
    OrderItem,
    OrderType,
    PaymentMethod,
    default_payment_method,
)

CONTACT_NUMBER_RE = re.compile(r"^[0-9+\-\s()]+$")


@dataclass(frozen=True)
class Actor:
    """Authenticated party invoking an operation."""
    id: UUID
    role: ActorRole

    @classmethod
    def from_raw(cls, user_id: str | None, role: str | None) -> Actor:
        if not user_id or not role:
            raise Unauthenticated()
        try:
            return cls(id=UUID(str(user_id)), role=ActorRole(role))
        except ValueError:
            raise Unauthenticated("Invalid actor credentials")


@dataclass(frozen=True)
class StoreGroup:
    """Checkout items belonging to one store, with prices captured at checkout."""
    store_id: UUID
    seller_id: UUID
    items: tuple[OrderItem, ...]
    shipping_fee: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class CheckoutCommand:
    customer_id: UUID
    groups: tuple[StoreGroup, ...]
    order_type: OrderType
    payment_method: PaymentMethod
    delivery_details: DeliveryDetails | None = None
    pickup_time: datetime | None = None
    notes: str = ""

    def __post_init__(self):
        if not any(group.items for group in self.groups):
            raise EmptyCart()


def parse_uuid(value, field_name: str) -> UUID:
    if isinstance(value, UUID):
        return value
    if value in (None, ""):
        raise MissingRequiredField(field_name)
    try:
        return UUID(str(value))
    except ValueError:
        raise InvalidPayload(f"Invalid {field_name} format", field=field_name)


def parse_decimal(value, field_name: str, default: Decimal | None = None) -> Decimal:
    if value in (None, ""):
        if default is None:
            raise MissingRequiredField(field_name)
        return default
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise InvalidPayload(f"Invalid {field_name}", field=field_name)
    if not amount.is_finite():
        raise InvalidPayload(f"Invalid {field_name}", field=field_name)
    if amount < 0:
        raise InvalidPayload(f"{field_name} must be non-negative", field=field_name)
    if amount > MAX_AMOUNT:
        raise InvalidPayload(f"{field_name} is too large", field=field_name)
    return amount


def parse_positive_int(value, field_name: str) -> int | None:
    if value is None:
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidPayload(f"{field_name} must be an integer", field=field_name)
    if number < 1:
        raise InvalidPayload(f"{field_name} must be a positive number", field=field_name)
    return number


def parse_enum(enum_cls, value, field_name: str):
    if value in (None, ""):
        raise MissingRequiredField(field_name)
    if isinstance(value, enum_cls):
        return value
    for member in enum_cls:
        # GraphQL clients send member names, REST clients send labels.
        if value == member.value or value == member.name:
            return member
    raise InvalidPayload(f"Invalid {field_name}: {value}", field=field_name)


def parse_item(data: dict) -> OrderItem:
    quantity = data.get("quantity")
    if quantity is None:
        raise MissingRequiredField("quantity")
    try:
        quantity = int(quantity)
    except (TypeError, ValueError):
        raise InvalidPayload("Quantity must be a positive number", field="quantity")
    return OrderItem(
        product_id=parse_uuid(data.get("productId"), "productId"),
        quantity=quantity,
        price=parse_decimal(data.get("price"), "price"),
        product_name=(data.get("productName") or "").strip(),
        estimated_preparation_time=parse_positive_int(
            data.get("estimatedPreparationTime"), "estimatedPreparationTime"
        ),
    )


def parse_store_group(data: dict) -> StoreGroup:
    items = tuple(parse_item(item) for item in data.get("items") or [])
    return StoreGroup(
        store_id=parse_uuid(data.get("storeId"), "storeId"),
        seller_id=parse_uuid(data.get("sellerId"), "sellerId"),
        items=items,
        shipping_fee=parse_decimal(data.get("shippingFee"), "shippingFee", Decimal("0.00")),
    )


def parse_delivery_details(data: dict | None) -> DeliveryDetails:
    if not data or not isinstance(data, dict):
        raise MissingRequiredField(
            "deliveryDetails", "Delivery details are required for delivery orders"
        )
    values = {}
    for key, name in (
        ("receiverName", "receiver_name"),
        ("contactNumber", "contact_number"),
        ("building", "building"),
        ("roomNumber", "room_number"),
    ):
        value = (data.get(key) or "").strip()
        if not value:
            raise MissingRequiredField(f"deliveryDetails.{key}")
        values[name] = value
    if not CONTACT_NUMBER_RE.match(values["contact_number"]):
        raise InvalidPayload(
            "Invalid contact number format", field="deliveryDetails.contactNumber"
        )
    return DeliveryDetails(
        additional_instructions=(data.get("additionalInstructions") or "").strip(),
        **values,
    )


def parse_pickup_time(value) -> datetime:
    if value in (None, ""):
        raise MissingRequiredField("pickupTime", "Pickup time is required for pickup orders")
    if isinstance(value, datetime):
        pickup_time = value
    else:
        try:
            pickup_time = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise InvalidPayload("Invalid pickup time format", field="pickupTime")
    if timezone.is_naive(pickup_time):
        pickup_time = timezone.make_aware(pickup_time)
    if pickup_time <= timezone.now():
        raise InvalidPayload("Pickup time must be in the future", field="pickupTime")
    return pickup_time


def parse_checkout(customer_id: UUID, data: dict) -> CheckoutCommand:
    """Build a ``CheckoutCommand`` from a checkout request body."""
    groups = tuple(parse_store_group(group) for group in data.get("stores") or [])
    if not any(group.items for group in groups):
        raise EmptyCart()

    order_type = parse_enum(OrderType, data.get("orderType"), "orderType")
    if data.get("paymentMethod") in (None, ""):
        payment_method = default_payment_method(order_type)
    else:
        payment_method = parse_enum(PaymentMethod, data.get("paymentMethod"), "paymentMethod")

    delivery_details = None
    pickup_time = None
    if order_type == OrderType.DELIVERY:
        delivery_details = parse_delivery_details(data.get("deliveryDetails"))
    else:
        pickup_time = parse_pickup_time(data.get("pickupTime"))

    return CheckoutCommand(
        customer_id=customer_id,
        groups=tuple(group for group in groups if group.items),
        order_type=order_type,
        payment_method=payment_method,
        delivery_details=delivery_details,
        pickup_time=pickup_time,
        notes=(data.get("notes") or "").strip(),
    )
