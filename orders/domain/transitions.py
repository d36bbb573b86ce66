"""
Status transition rules for orders.

This is the single place that knows which status changes are legal for which
actor. API and UI layers ask ``allowed_transitions`` instead of re-deriving
the table from status strings.
"""
from __future__ import annotations

from dataclasses import dataclass

from orders.domain.errors import InvalidPayload, InvalidTransition, MissingRequiredField
from orders.domain.order import (
    ActorRole,
    Order,
    OrderStatus,
    OrderType,
    PaymentMethod,
)

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    {
        OrderStatus.REJECTED,
        OrderStatus.CANCELED,
        OrderStatus.DELIVERED,
    }
)


@dataclass(frozen=True)
class Rule:
    source: OrderStatus
    target: OrderStatus
    actor: ActorRole
    order_type: OrderType | None = None
    stamps: tuple[str, ...] = ()
    requires: str | None = None


RULES: tuple[Rule, ...] = (
    Rule(OrderStatus.PENDING, OrderStatus.ACCEPTED, ActorRole.SELLER, stamps=("accepted_at",)),
    Rule(OrderStatus.PENDING, OrderStatus.REJECTED, ActorRole.SELLER, requires="note"),
    Rule(OrderStatus.PENDING, OrderStatus.CANCELED, ActorRole.CUSTOMER,
         stamps=("canceled_at",), requires="cancellationReason"),
    Rule(OrderStatus.ACCEPTED, OrderStatus.CANCELED, ActorRole.CUSTOMER,
         stamps=("canceled_at",), requires="cancellationReason"),
    Rule(OrderStatus.ACCEPTED, OrderStatus.PREPARING, ActorRole.SELLER),
    Rule(OrderStatus.PREPARING, OrderStatus.OUT_FOR_DELIVERY, ActorRole.SELLER,
         order_type=OrderType.DELIVERY),
    Rule(OrderStatus.PREPARING, OrderStatus.READY, ActorRole.SELLER,
         order_type=OrderType.PICKUP),
    Rule(OrderStatus.READY, OrderStatus.READY_FOR_PICKUP, ActorRole.SELLER,
         order_type=OrderType.PICKUP),
    Rule(OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED, ActorRole.SELLER,
         order_type=OrderType.DELIVERY, stamps=("delivered_at",)),
    Rule(OrderStatus.READY_FOR_PICKUP, OrderStatus.DELIVERED, ActorRole.SELLER,
         order_type=OrderType.PICKUP, stamps=("delivered_at",)),
)


@dataclass(frozen=True)
class TransitionOutcome:
    """What a legal transition does to the order."""
    target: OrderStatus
    stamps: tuple[str, ...] = ()
    note: str = ""
    reason: str = ""
    canceled_by: ActorRole | None = None
    estimated_preparation_time: int | None = None
    settles_payment: bool = False


def is_terminal(status: OrderStatus) -> bool:
    """Return True if no further status transitions are possible."""
    return status in TERMINAL_STATUSES


def find_rule(order: Order, requested: OrderStatus, role: ActorRole) -> Rule | None:
    for rule in RULES:
        if (
            rule.source == order.status
            and rule.target == requested
            and rule.actor == role
            and (rule.order_type is None or rule.order_type == order.order_type)
        ):
            return rule
    return None


def allowed_transitions(order: Order, role: ActorRole) -> list[OrderStatus]:
    """Statuses ``role`` may move ``order`` to, in table order."""
    return [
        rule.target
        for rule in RULES
        if rule.source == order.status
        and rule.actor == role
        and (rule.order_type is None or rule.order_type == order.order_type)
    ]


def validate_transition(
    order: Order,
    requested: OrderStatus,
    role: ActorRole,
    note: str = "",
    reason: str = "",
    estimated_preparation_time: int | None = None,
) -> TransitionOutcome:
    """
    Decide whether ``role`` may move ``order`` to ``requested``.

    Raises:
        InvalidTransition: the pair is not in the table for this actor and
            order type, or the order is already in a terminal status.
        MissingRequiredField: rejection without a note, or cancellation
            without a reason.
        InvalidPayload: a non-positive estimated preparation time.
    """
    rule = find_rule(order, requested, role)
    if rule is None:
        raise InvalidTransition(order.status, requested)

    note = (note or "").strip()
    reason = (reason or "").strip()

    if rule.requires == "note":
        # A rejection reason may arrive in either field.
        note = note or reason
        if not note:
            raise MissingRequiredField("note", "A reason is required to reject an order")
    elif rule.requires == "cancellationReason" and not reason:
        raise MissingRequiredField("cancellationReason", "Cancellation reason is required")

    if estimated_preparation_time is not None:
        if rule.target != OrderStatus.ACCEPTED:
            estimated_preparation_time = None
        elif estimated_preparation_time < 1:
            raise InvalidPayload(
                "Estimated time must be a positive number (in minutes)",
                field="estimatedPreparationTime",
            )

    canceled_by = ActorRole.CUSTOMER if rule.target == OrderStatus.CANCELED else None

    return TransitionOutcome(
        target=rule.target,
        stamps=rule.stamps,
        note=note or reason,
        reason=reason,
        canceled_by=canceled_by,
        estimated_preparation_time=estimated_preparation_time,
        settles_payment=(
            rule.target == OrderStatus.DELIVERED
            and order.payment_method == PaymentMethod.CASH_ON_PICKUP
        ),
    )
