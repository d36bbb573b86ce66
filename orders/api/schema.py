"""
GraphQL schema definition using Ariadne.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from uuid import UUID

from ariadne import (
    EnumType,
    MutationType,
    ObjectType,
    QueryType,
    ScalarType,
    load_schema_from_path,
    make_executable_schema,
)

from orders.domain.commands import Actor, parse_checkout, parse_positive_int
from orders.domain.errors import Forbidden, InvalidPayload
from orders.domain.order import (
    ActorRole,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
)
from orders.domain.transitions import allowed_transitions
from orders.services import OrderLifecycleService, OrderQueryService

SCHEMAS_DIR = Path(__file__).parent / "schemas"
type_defs = load_schema_from_path(SCHEMAS_DIR)

query = QueryType()
mutation = MutationType()
order = ObjectType("Order")
order_item = ObjectType("OrderItem")
delivery_details = ObjectType("DeliveryDetails")
seller_summary = ObjectType("SellerSummary")


def get_actor(info) -> Actor:
    """Build the caller's identity from the authenticated request headers."""
    request = info.context["request"]
    return Actor.from_raw(
        request.headers.get("X-User-ID"),
        request.headers.get("X-User-Role"),
    )


def require_role(actor: Actor, role: ActorRole) -> None:
    if actor.role != role:
        raise Forbidden(f"Only a {role.value.lower()} can perform this action")


def lifecycle_service() -> OrderLifecycleService:
    return OrderLifecycleService()


def query_service() -> OrderQueryService:
    return OrderQueryService()


@query.field("order")
def resolve_order(_, info, id):
    actor = get_actor(info)
    return query_service().get_by_id(id, actor.id, actor.role)


@query.field("sellerOrders")
def resolve_seller_orders(_, info, filter=None, page=1, limit=None, sortBy="created_at", sortOrder="desc"):
    actor = get_actor(info)
    require_role(actor, ActorRole.SELLER)
    filter = filter or {}
    return query_service().list_for_seller(
        actor.id,
        status=filter.get("status"),
        order_type=filter.get("orderType"),
        date_from=filter.get("dateFrom"),
        date_to=filter.get("dateTo"),
        page=page or 1,
        limit=limit,
        sort_by=sortBy or "created_at",
        sort_order=sortOrder or "desc",
    )


@query.field("customerOrders")
def resolve_customer_orders(_, info):
    actor = get_actor(info)
    require_role(actor, ActorRole.CUSTOMER)
    return query_service().list_for_customer(actor.id)


@query.field("allowedActions")
def resolve_allowed_actions(_, info, orderId):
    actor = get_actor(info)
    return query_service().allowed_actions(orderId, actor.id, actor.role)


@query.field("sellerSummary")
def resolve_seller_summary(_, info):
    actor = get_actor(info)
    require_role(actor, ActorRole.SELLER)
    return query_service().seller_summary(actor.id)


@mutation.field("checkout")
def resolve_checkout(_, info, input: dict):
    actor = get_actor(info)
    require_role(actor, ActorRole.CUSTOMER)
    command = parse_checkout(actor.id, input)
    return lifecycle_service().checkout(command)


@mutation.field("buyNow")
def resolve_buy_now(_, info, input: dict):
    actor = get_actor(info)
    require_role(actor, ActorRole.CUSTOMER)
    command = parse_checkout(actor.id, input)
    return lifecycle_service().create_from_product(command)


@mutation.field("acceptOrder")
def resolve_accept_order(_, info, orderId, estimatedPreparationTime=None, note=None):
    actor = get_actor(info)
    require_role(actor, ActorRole.SELLER)
    return lifecycle_service().accept(
        orderId,
        actor.id,
        estimated_preparation_time=parse_positive_int(
            estimatedPreparationTime, "estimatedPreparationTime"
        ),
        note=note or "",
    )


@mutation.field("rejectOrder")
def resolve_reject_order(_, info, orderId, reason=None):
    actor = get_actor(info)
    require_role(actor, ActorRole.SELLER)
    return lifecycle_service().reject(orderId, actor.id, reason or "")


@mutation.field("cancelOrder")
def resolve_cancel_order(_, info, orderId, reason=None):
    actor = get_actor(info)
    require_role(actor, ActorRole.CUSTOMER)
    return lifecycle_service().cancel(orderId, actor.id, reason or "")


@mutation.field("updateOrderStatus")
def resolve_update_order_status(_, info, orderId, status, note=None, reason=None):
    actor = get_actor(info)
    return lifecycle_service().update_status(
        orderId, actor.id, actor.role, status, note=note or "", reason=reason or ""
    )


@mutation.field("markOrderPaid")
def resolve_mark_order_paid(_, info, orderId):
    actor = get_actor(info)
    require_role(actor, ActorRole.SELLER)
    return lifecycle_service().mark_paid(orderId, actor.id)


@mutation.field("markPaymentFailed")
def resolve_mark_payment_failed(_, info, orderId, note=None):
    actor = get_actor(info)
    require_role(actor, ActorRole.SELLER)
    return lifecycle_service().mark_payment_failed(orderId, actor.id, note or "")


for field_name, attr in (
    ("customerId", "customer_id"),
    ("sellerId", "seller_id"),
    ("storeId", "store_id"),
    ("shippingFee", "shipping_fee"),
    ("totalAmount", "total_amount"),
    ("orderType", "order_type"),
    ("paymentStatus", "payment_status"),
    ("paymentMethod", "payment_method"),
    ("deliveryDetails", "delivery_details"),
    ("pickupTime", "pickup_time"),
    ("estimatedPreparationTime", "estimated_preparation_time"),
    ("cancellationReason", "cancellation_reason"),
    ("canceledBy", "canceled_by"),
    ("statusHistory", "status_history"),
    ("createdAt", "created_at"),
    ("acceptedAt", "accepted_at"),
    ("canceledAt", "canceled_at"),
    ("deliveredAt", "delivered_at"),
):
    order.set_alias(field_name, attr)

order_item.set_alias("productId", "product_id")
order_item.set_alias("productName", "product_name")

for field_name, attr in (
    ("receiverName", "receiver_name"),
    ("contactNumber", "contact_number"),
    ("roomNumber", "room_number"),
    ("additionalInstructions", "additional_instructions"),
):
    delivery_details.set_alias(field_name, attr)


@order.field("allowedActions")
def resolve_order_allowed_actions(order_obj, info):
    """Actions for the caller only; other parties see none."""
    actor = get_actor(info)
    party_id = order_obj.seller_id if actor.role == ActorRole.SELLER else order_obj.customer_id
    if party_id != actor.id:
        return []
    return allowed_transitions(order_obj, actor.role)


@seller_summary.field("totalOrders")
def resolve_total_orders(summary, info):
    return summary["total_orders"]


@seller_summary.field("byStatus")
def resolve_by_status(summary, info):
    return [
        {"status": OrderStatus(status), "count": count}
        for status, count in summary["by_status"].items()
    ]


@seller_summary.field("deliveredRevenue")
def resolve_delivered_revenue(summary, info):
    return summary["delivered_revenue"]


@seller_summary.field("pendingPayments")
def resolve_pending_payments(summary, info):
    return summary["pending_payments"]


order_status_enum = EnumType("OrderStatus", OrderStatus)
payment_status_enum = EnumType("PaymentStatus", PaymentStatus)
payment_method_enum = EnumType("PaymentMethod", PaymentMethod)
order_type_enum = EnumType("OrderType", OrderType)
actor_role_enum = EnumType("ActorRole", ActorRole)


# Define custom scalars
decimal_scalar = ScalarType("Decimal")
uuid_scalar = ScalarType("UUID")
datetime_scalar = ScalarType("DateTime")


@decimal_scalar.serializer
def serialize_decimal(value):
    """Serialize Decimal to a 2-decimal-place string."""
    return str(Decimal(str(value)).quantize(Decimal("0.01")))


@decimal_scalar.value_parser
def parse_decimal_value(value):
    """Parse Decimal from string."""
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise InvalidPayload(f"Invalid decimal value: {value}")
    if not amount.is_finite():
        raise InvalidPayload(f"Invalid decimal value: {value}")
    return amount


@uuid_scalar.serializer
def serialize_uuid(value):
    """Serialize UUID to string."""
    return str(value)


@uuid_scalar.value_parser
def parse_uuid_value(value):
    """Parse UUID from string."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise InvalidPayload(f"Invalid UUID: {value}")


@uuid_scalar.literal_parser
def parse_uuid_literal(ast, variable_values=None):
    """Parse UUID from GraphQL literal."""
    return UUID(str(ast.value))


@datetime_scalar.serializer
def serialize_datetime(value):
    """Serialize DateTime to ISO format string."""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


@datetime_scalar.value_parser
def parse_datetime_value(value):
    """Parse DateTime from string."""
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace('Z', '+00:00'))


# Create executable schema
schema = make_executable_schema(
    type_defs,
    query,
    mutation,
    order,
    order_item,
    delivery_details,
    seller_summary,
    order_status_enum,
    payment_status_enum,
    payment_method_enum,
    order_type_enum,
    actor_role_enum,
    datetime_scalar,
    decimal_scalar,
    uuid_scalar,
)
