from __future__ import annotations

from uuid import uuid4

from django.db import models

from orders.domain.order import (
    ActorRole,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
)


def _choices(enum_cls) -> list[tuple[str, str]]:
    return [(member.value, member.value) for member in enum_cls]


OPERATION_TYPE = (
    ("CHECKOUT", "Checkout"),
    ("BUY_NOW", "Buy now"),
    ("ACCEPT_ORDER", "Accept order"),
    ("REJECT_ORDER", "Reject order"),
    ("CANCEL_ORDER", "Cancel order"),
    ("UPDATE_ORDER_STATUS", "Update order status"),
    ("MARK_ORDER_PAID", "Mark order paid"),
    ("MARK_PAYMENT_FAILED", "Mark payment failed"),
)


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class OrderORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    # Owned by other services; referenced by id only.
    customer_id = models.UUIDField()
    seller_id = models.UUIDField()
    store_id = models.UUIDField()

    order_type = models.CharField(max_length=20, choices=_choices(OrderType))
    status = models.CharField(
        max_length=30, choices=_choices(OrderStatus), default=OrderStatus.PENDING.value
    )
    payment_status = models.CharField(
        max_length=20, choices=_choices(PaymentStatus), default=PaymentStatus.PENDING.value
    )
    payment_method = models.CharField(max_length=30, choices=_choices(PaymentMethod))

    shipping_fee = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)

    delivery_details = models.JSONField(null=True, blank=True)
    pickup_time = models.DateTimeField(null=True, blank=True)
    estimated_preparation_time = models.PositiveIntegerField(null=True, blank=True)
    notes = models.TextField(default="", blank=True)

    cancellation_reason = models.TextField(default="", blank=True)
    canceled_by = models.CharField(
        max_length=20, choices=_choices(ActorRole), null=True, blank=True
    )

    placed_at = models.DateTimeField()
    accepted_at = models.DateTimeField(null=True, blank=True)
    canceled_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    version = models.PositiveIntegerField(default=1)

    class Meta:
        indexes = [
            models.Index(fields=("customer_id", "-placed_at"), name="orders_customer_placed_idx"),
            models.Index(fields=("seller_id", "-placed_at"), name="orders_seller_placed_idx"),
            models.Index(fields=("store_id", "-placed_at"), name="orders_store_placed_idx"),
            models.Index(fields=("status",), name="orders_status_idx"),
        ]


class OrderItemORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    order = models.ForeignKey(
        OrderORM,
        on_delete=models.CASCADE,
        related_name="items",
    )
    position = models.PositiveIntegerField()
    product_id = models.UUIDField()
    product_name = models.CharField(max_length=255, default="", blank=True)
    quantity = models.PositiveIntegerField()
    price = models.DecimalField(max_digits=12, decimal_places=2)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        ordering = ["position"]
        indexes = [
            models.Index(fields=("order",), name="orders_item_order_idx"),
        ]


class StatusHistoryORM(models.Model):
    """Append-only audit trail; rows are never updated or deleted."""
    id = models.BigAutoField(primary_key=True)
    order = models.ForeignKey(
        OrderORM,
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    sequence = models.PositiveIntegerField()
    status = models.CharField(max_length=30, choices=_choices(OrderStatus))
    note = models.TextField(default="", blank=True)
    timestamp = models.DateTimeField()

    class Meta:
        ordering = ["sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=("order", "sequence"), name="orders_history_order_sequence_uniq"
            ),
        ]


class IdempotencyKey(TimeStampedModel):
    key = models.CharField(max_length=255)
    user_id = models.UUIDField()
    operation = models.CharField(max_length=50, choices=OPERATION_TYPE)
    request_hash = models.CharField(max_length=255)
    response_payload = models.JSONField()

    class Meta:
        unique_together = [("key", "user_id", "operation")]
        indexes = [
            models.Index(fields=("request_hash",), name="orders_idem_hash_idx"),
            models.Index(fields=("key", "user_id", "operation"), name="orders_idem_lookup_idx"),
        ]
