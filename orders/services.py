"""
Application services for the order lifecycle.

``OrderLifecycleService`` is the only writer of orders. ``OrderQueryService``
serves the read-side views for sellers and customers.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from django.db import transaction
from django.db.models import Count, Q, Sum

from orders.conf import orders_settings
from orders.domain.commands import CheckoutCommand, StoreGroup
from orders.domain.errors import (
    EmptyCart,
    Forbidden,
    InvalidPayload,
    NotFound,
)
from orders.domain.events import OrderPaymentUpdated, OrderPlaced, OrderStatusChanged
from orders.domain.order import (
    ActorRole,
    DeliveryDetails,
    Order,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
)
from orders.domain.transitions import allowed_transitions, validate_transition
from orders.infra.outbox import OutboxRepository
from orders.infra.repositories import OrderRepository

logger = logging.getLogger(__name__)


def ensure_actor(order: Order, actor_id: UUID, role: ActorRole) -> None:
    """Raise ``Forbidden`` unless the actor is the order's party for ``role``."""
    owner_id = order.seller_id if role == ActorRole.SELLER else order.customer_id
    if owner_id != actor_id:
        raise Forbidden(f"{role.value} is not a party to order {order.id}")


class OrderLifecycleService:
    """Service for order state changes."""

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        outbox_repo: OutboxRepository | None = None,
    ):
        self.order_repo = order_repo or OrderRepository()
        self.outbox_repo = outbox_repo or OutboxRepository()

    @transaction.atomic
    def create_from_cart(
        self,
        customer_id: UUID,
        groups: list[StoreGroup],
        order_type: OrderType,
        payment_method: PaymentMethod,
        delivery_details: DeliveryDetails | None = None,
        pickup_time: datetime | None = None,
        notes: str = "",
    ) -> list[Order]:
        """
        Place one Pending order per store group.

        Totals are computed from the prices captured in ``groups`` at checkout,
        not from live product prices. All orders are created in one transaction.
        """
        groups = [group for group in groups if group.items]
        if not groups:
            raise EmptyCart()

        orders = []
        for group in groups:
            preparation_time = max(
                item.estimated_preparation_time or orders_settings.DEFAULT_PREPARATION_TIME
                for item in group.items
            )
            order = Order.place(
                customer_id=customer_id,
                seller_id=group.seller_id,
                store_id=group.store_id,
                items=list(group.items),
                order_type=order_type,
                payment_method=payment_method,
                shipping_fee=group.shipping_fee,
                delivery_details=delivery_details,
                pickup_time=pickup_time,
                estimated_preparation_time=preparation_time,
                notes=notes,
            )
            self.order_repo.add(order)
            self.outbox_repo.add_event(
                OrderPlaced(
                    event_id=uuid4(),
                    aggregate_id=order.id,
                    event_type="OrderPlaced",
                    customer_id=order.customer_id,
                    seller_id=order.seller_id,
                    store_id=order.store_id,
                    order_type=order.order_type.value,
                    total_amount=order.total_amount,
                    items_count=len(order.items),
                )
            )
            orders.append(order)

        logger.info(
            "orders_created",
            extra={
                "user_id": str(customer_id),
                "operation": "checkout",
                "payload": {"order_ids": [str(order.id) for order in orders]},
            },
        )
        return orders

    def checkout(self, command: CheckoutCommand) -> list[Order]:
        """Place orders from a parsed checkout command."""
        return self.create_from_cart(
            customer_id=command.customer_id,
            groups=list(command.groups),
            order_type=command.order_type,
            payment_method=command.payment_method,
            delivery_details=command.delivery_details,
            pickup_time=command.pickup_time,
            notes=command.notes,
        )

    def create_from_product(self, command: CheckoutCommand) -> Order:
        """Buy-now checkout of a single product from a single store."""
        items = [item for group in command.groups for item in group.items]
        if len(command.groups) != 1 or len(items) != 1:
            raise InvalidPayload("Buy now takes exactly one product", field="stores")
        return self.checkout(command)[0]

    def accept(
        self,
        order_id: UUID,
        seller_id: UUID,
        estimated_preparation_time: int | None = None,
        note: str = "",
    ) -> Order:
        """Seller accepts a Pending order."""
        return self.update_status(
            order_id,
            seller_id,
            ActorRole.SELLER,
            OrderStatus.ACCEPTED,
            note=note,
            estimated_preparation_time=estimated_preparation_time,
        )

    def reject(self, order_id: UUID, seller_id: UUID, reason: str) -> Order:
        """
        Seller rejects a Pending order.

        This is also the seller's only way to cancel: Canceled is reserved for
        customer-initiated cancellation.
        """
        return self.update_status(
            order_id, seller_id, ActorRole.SELLER, OrderStatus.REJECTED, note=reason
        )

    def cancel(self, order_id: UUID, customer_id: UUID, reason: str) -> Order:
        """Customer cancels a Pending or Accepted order."""
        return self.update_status(
            order_id, customer_id, ActorRole.CUSTOMER, OrderStatus.CANCELED, reason=reason
        )

    @transaction.atomic
    def update_status(
        self,
        order_id: UUID,
        actor_id: UUID,
        role: ActorRole,
        new_status: OrderStatus,
        note: str = "",
        reason: str = "",
        estimated_preparation_time: int | None = None,
    ) -> Order:
        """
        General-purpose transition entry point.

        Raises:
            NotFound: unknown order id.
            Forbidden: actor is not the order's customer/seller for ``role``.
            InvalidTransition, MissingRequiredField: from the transition rules.
            ConcurrentModification: another write won the race.
        """
        order = self._load(order_id)
        ensure_actor(order, actor_id, role)

        previous_status = order.status
        outcome = validate_transition(
            order,
            new_status,
            role,
            note=note,
            reason=reason,
            estimated_preparation_time=estimated_preparation_time,
        )
        order.apply_transition(outcome)
        self.order_repo.save(order)

        self.outbox_repo.add_event(
            OrderStatusChanged(
                event_id=uuid4(),
                aggregate_id=order.id,
                event_type="OrderStatusChanged",
                customer_id=order.customer_id,
                seller_id=order.seller_id,
                previous_status=previous_status.value,
                status=order.status.value,
                actor_role=role.value,
                note=outcome.note,
            )
        )
        logger.info(
            "order_status_changed",
            extra={
                "order_id": str(order.id),
                "user_id": str(actor_id),
                "operation": f"{previous_status.value} -> {order.status.value}",
                "status": order.status.value,
            },
        )
        return order

    def mark_paid(self, order_id: UUID, seller_id: UUID) -> Order:
        """Seller confirms payment (Pending -> Paid)."""
        return self._settle_payment(order_id, seller_id, PaymentStatus.PAID)

    def mark_payment_failed(self, order_id: UUID, seller_id: UUID, note: str = "") -> Order:
        """Seller records a failed payment (Pending -> Failed)."""
        return self._settle_payment(order_id, seller_id, PaymentStatus.FAILED, note)

    @transaction.atomic
    def _settle_payment(
        self,
        order_id: UUID,
        seller_id: UUID,
        target: PaymentStatus,
        note: str = "",
    ) -> Order:
        order = self._load(order_id)
        ensure_actor(order, seller_id, ActorRole.SELLER)

        if target == PaymentStatus.PAID:
            order.mark_paid(note)
        else:
            order.mark_payment_failed(note)
        self.order_repo.save(order)

        self.outbox_repo.add_event(
            OrderPaymentUpdated(
                event_id=uuid4(),
                aggregate_id=order.id,
                event_type="OrderPaymentUpdated",
                customer_id=order.customer_id,
                seller_id=order.seller_id,
                payment_status=order.payment_status.value,
                amount=order.total_amount,
            )
        )
        logger.info(
            "order_payment_updated",
            extra={
                "order_id": str(order.id),
                "user_id": str(seller_id),
                "status": order.payment_status.value,
            },
        )
        return order

    def _load(self, order_id: UUID) -> Order:
        order = self.order_repo.get_by_id(order_id)
        if order is None:
            raise NotFound(order_id)
        return order


@dataclass
class OrderPage:
    items: list[Order]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit


SORT_FIELDS = {
    "created_at": "placed_at",
    "total_amount": "total_amount",
    "status": "status",
    "updated_at": "updated_at",
}


class OrderQueryService:
    """Read-only views over orders."""

    def __init__(self, order_repo: OrderRepository | None = None):
        self.order_repo = order_repo or OrderRepository()

    def list_for_seller(
        self,
        seller_id: UUID,
        status: OrderStatus | None = None,
        order_type: OrderType | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        page: int = 1,
        limit: int | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> OrderPage:
        """Filtered, paginated page of a seller's orders plus the total count."""
        if sort_by not in SORT_FIELDS:
            raise InvalidPayload(f"Cannot sort by {sort_by}", field="sortBy")
        if sort_order not in ("asc", "desc"):
            raise InvalidPayload("Sort order must be asc or desc", field="sortOrder")

        page = max(int(page or 1), 1)
        if limit is None:
            limit = orders_settings.DEFAULT_PAGE_LIMIT
        limit = min(max(int(limit), 1), orders_settings.MAX_PAGE_LIMIT)

        qs = self.order_repo.queryset().filter(seller_id=seller_id)
        if status is not None:
            qs = qs.filter(status=status.value)
        if order_type is not None:
            qs = qs.filter(order_type=order_type.value)
        if date_from is not None:
            qs = qs.filter(placed_at__gte=date_from)
        if date_to is not None:
            qs = qs.filter(placed_at__lte=date_to)

        field = SORT_FIELDS[sort_by]
        ordering = field if sort_order == "asc" else f"-{field}"
        total = qs.count()
        offset = (page - 1) * limit
        orders_orm = (
            qs.prefetch_related("items", "status_history")
            .order_by(ordering, "-id")[offset:offset + limit]
        )

        return OrderPage(
            items=self.order_repo.to_domain_list(orders_orm),
            total=total,
            page=page,
            limit=limit,
        )

    def list_for_customer(self, customer_id: UUID) -> list[Order]:
        """All of a customer's orders, most recent first."""
        qs = (
            self.order_repo.queryset()
            .filter(customer_id=customer_id)
            .prefetch_related("items", "status_history")
            .order_by("-placed_at", "-id")
        )
        return self.order_repo.to_domain_list(qs)

    def get_by_id(self, order_id: UUID, requester_id: UUID, role: ActorRole) -> Order:
        """Single order with its full status history."""
        order = self.order_repo.get_by_id(order_id)
        if order is None:
            raise NotFound(order_id)
        ensure_actor(order, requester_id, role)
        return order

    def allowed_actions(self, order_id: UUID, requester_id: UUID, role: ActorRole) -> list[OrderStatus]:
        """Statuses the requester may move the order to right now."""
        order = self.get_by_id(order_id, requester_id, role)
        return allowed_transitions(order, role)

    def seller_summary(self, seller_id: UUID) -> dict:
        """Order counts and revenue for a seller's dashboard."""
        qs = self.order_repo.queryset().filter(seller_id=seller_id)
        by_status = {status.value: 0 for status in OrderStatus}
        for row in qs.values("status").annotate(count=Count("id")).order_by():
            by_status[row["status"]] = row["count"]

        totals = qs.aggregate(
            total_orders=Count("id"),
            delivered_revenue=Sum(
                "total_amount", filter=Q(status=OrderStatus.DELIVERED.value)
            ),
            pending_payments=Count(
                "id",
                filter=Q(payment_status=PaymentStatus.PENDING.value)
                & ~Q(status__in=[OrderStatus.CANCELED.value, OrderStatus.REJECTED.value]),
            ),
        )
        return {
            "total_orders": totals["total_orders"],
            "by_status": by_status,
            "delivered_revenue": totals["delivered_revenue"] or Decimal("0.00"),
            "pending_payments": totals["pending_payments"],
        }

