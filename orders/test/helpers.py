"""
Builders shared by the order tests.
"""
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

from django.utils import timezone

from orders.domain.commands import StoreGroup
from orders.domain.order import DeliveryDetails, OrderItem, OrderType, PaymentMethod

DELIVERY_DETAILS = DeliveryDetails(
    receiver_name="Juan Dela Cruz",
    contact_number="0917 123 4567",
    building="Main Building",
    room_number="204",
)


def store_group(seller_id=None, store_id=None, items=None, shipping_fee=Decimal("20.00")):
    if items is None:
        items = (
            OrderItem(product_id=uuid4(), quantity=2, price=Decimal("50.00"), product_name="Siomai"),
            OrderItem(product_id=uuid4(), quantity=1, price=Decimal("100.00"), product_name="Rice Bowl"),
        )
    return StoreGroup(
        store_id=store_id or uuid4(),
        seller_id=seller_id or uuid4(),
        items=tuple(items),
        shipping_fee=shipping_fee,
    )


def place_order(service, customer_id, seller_id, order_type=OrderType.DELIVERY, **kwargs):
    """Place a single order through the lifecycle service."""
    if order_type == OrderType.DELIVERY:
        kwargs.setdefault("payment_method", PaymentMethod.CASH_ON_DELIVERY)
        kwargs.setdefault("delivery_details", DELIVERY_DETAILS)
    else:
        kwargs.setdefault("payment_method", PaymentMethod.CASH_ON_PICKUP)
        kwargs.setdefault("pickup_time", timezone.now() + timedelta(hours=2))
    group = kwargs.pop("group", None) or store_group(seller_id=seller_id)
    return service.create_from_cart(
        customer_id=customer_id,
        groups=[group],
        order_type=order_type,
        **kwargs,
    )[0]
