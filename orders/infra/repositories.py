"""
Infrastructure repository for the Order aggregate.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from django.db import transaction
from django.db.models import F, QuerySet
from django.utils import timezone

from orders.domain.errors import ConcurrentModification
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
from orders.infra.models import OrderItemORM, OrderORM, StatusHistoryORM

logger = logging.getLogger(__name__)


class OrderRepository:
    """Repository for Order aggregate."""

    def get_by_id(self, order_id: UUID) -> Order | None:
        """Get order by ID with items and history (no N+1)."""
        try:
            order_orm = (
                OrderORM.objects
                .prefetch_related("items", "status_history")
                .get(id=order_id)
            )
        except OrderORM.DoesNotExist:
            return None
        return self._to_domain(order_orm)

    def queryset(self) -> QuerySet:
        """Base queryset for read-side filtering and aggregation."""
        return OrderORM.objects.all()

    def to_domain_list(self, orders_orm) -> list[Order]:
        return [self._to_domain(order_orm) for order_orm in orders_orm]

    @transaction.atomic
    def add(self, order: Order) -> UUID:
        """Insert a newly placed order with its items and initial history."""
        order_orm = OrderORM.objects.create(
            id=order.id,
            version=1,
            **self._columns(order),
        )
        OrderItemORM.objects.bulk_create(
            [
                OrderItemORM(
                    order=order_orm,
                    position=position,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    quantity=item.quantity,
                    price=item.price,
                    subtotal=item.subtotal,
                )
                for position, item in enumerate(order.items, start=1)
            ]
        )
        self._append_history(order_orm.id, order.status_history, start=1)
        order.version = 1
        return order_orm.id

    @transaction.atomic
    def save(self, order: Order) -> None:
        """
        Persist a mutated order.

        The write only succeeds if the stored version still equals the version
        the order was loaded with; otherwise another writer got there first and
        ``ConcurrentModification`` is raised, rolling back the whole write.
        """
        updated = (
            OrderORM.objects
            .filter(id=order.id, version=order.version)
            .update(
                version=F("version") + 1,
                updated_at=timezone.now(),
                **self._columns(order),
            )
        )
        if updated != 1:
            logger.warning(
                "order_concurrent_modification",
                extra={"order_id": str(order.id), "expected_version": order.version},
            )
            raise ConcurrentModification(order.id)

        persisted_history = StatusHistoryORM.objects.filter(order_id=order.id).count()
        self._append_history(
            order.id, order.status_history[persisted_history:], start=persisted_history + 1
        )
        order.version += 1

    def _append_history(self, order_id: UUID, entries, start: int) -> None:
        StatusHistoryORM.objects.bulk_create(
            [
                StatusHistoryORM(
                    order_id=order_id,
                    sequence=sequence,
                    status=entry.status.value,
                    note=entry.note,
                    timestamp=entry.timestamp,
                )
                for sequence, entry in enumerate(entries, start=start)
            ]
        )

    def _columns(self, order: Order) -> dict:
        """Mutable and immutable scalar columns written on every save."""
        return {
            "customer_id": order.customer_id,
            "seller_id": order.seller_id,
            "store_id": order.store_id,
            "order_type": order.order_type.value,
            "status": order.status.value,
            "payment_status": order.payment_status.value,
            "payment_method": order.payment_method.value,
            "shipping_fee": order.shipping_fee,
            "total_amount": order.total_amount,
            "delivery_details": (
                order.delivery_details.to_dict() if order.delivery_details else None
            ),
            "pickup_time": order.pickup_time,
            "estimated_preparation_time": order.estimated_preparation_time,
            "notes": order.notes,
            "cancellation_reason": order.cancellation_reason,
            "canceled_by": order.canceled_by.value if order.canceled_by else None,
            "placed_at": order.created_at,
            "accepted_at": order.accepted_at,
            "canceled_at": order.canceled_at,
            "delivered_at": order.delivered_at,
        }

    def _to_domain(self, order_orm: OrderORM) -> Order:
        """Convert ORM model to domain entity."""
        items = [
            OrderItem(
                product_id=item_orm.product_id,
                quantity=item_orm.quantity,
                price=Decimal(item_orm.price),
                product_name=item_orm.product_name,
            )
            for item_orm in order_orm.items.all()
        ]
        history = [
            StatusHistoryEntry(
                status=OrderStatus(entry.status),
                timestamp=entry.timestamp,
                note=entry.note,
            )
            for entry in order_orm.status_history.all()
        ]
        return Order(
            id=order_orm.id,
            customer_id=order_orm.customer_id,
            seller_id=order_orm.seller_id,
            store_id=order_orm.store_id,
            order_type=OrderType(order_orm.order_type),
            payment_method=PaymentMethod(order_orm.payment_method),
            items=items,
            shipping_fee=Decimal(order_orm.shipping_fee),
            status=OrderStatus(order_orm.status),
            payment_status=PaymentStatus(order_orm.payment_status),
            delivery_details=(
                DeliveryDetails.from_dict(order_orm.delivery_details)
                if order_orm.delivery_details
                else None
            ),
            pickup_time=order_orm.pickup_time,
            estimated_preparation_time=order_orm.estimated_preparation_time,
            notes=order_orm.notes,
            cancellation_reason=order_orm.cancellation_reason,
            canceled_by=ActorRole(order_orm.canceled_by) if order_orm.canceled_by else None,
            status_history=history,
            created_at=order_orm.placed_at,
            accepted_at=order_orm.accepted_at,
            canceled_at=order_orm.canceled_at,
            delivered_at=order_orm.delivered_at,
            version=order_orm.version,
        )
