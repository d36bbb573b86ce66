"""
Tests for the order lifecycle service.
"""
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

from django.test import TestCase
from django.utils import timezone

from orders.domain.commands import CheckoutCommand
from orders.domain.errors import (
    EmptyCart,
    Forbidden,
    InvalidPaymentTransition,
    InvalidPayload,
    InvalidTransition,
    MissingRequiredField,
    NotFound,
)
from orders.domain.order import (
    ActorRole,
    OrderItem,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
)
from orders.infra.models import OrderORM, StatusHistoryORM
from orders.infra.outbox import OutboxEvent
from orders.infra.repositories import OrderRepository
from orders.services import OrderLifecycleService
from orders.test.helpers import DELIVERY_DETAILS, place_order, store_group


class OrderCreationTest(TestCase):
    """Tests for placing orders from a cart."""

    def setUp(self):
        self.service = OrderLifecycleService()
        self.repo = OrderRepository()
        self.customer_id = uuid4()
        self.seller_id = uuid4()

    def test_create_order_totals_and_history(self):
        """2 x 50 + 1 x 100 + 20 shipping persists as 220, Pending."""
        order = place_order(self.service, self.customer_id, self.seller_id)

        stored = self.repo.get_by_id(order.id)
        self.assertEqual(stored.total_amount, Decimal("220.00"))
        self.assertEqual(OrderORM.objects.get(id=order.id).total_amount, Decimal("220.00"))
        self.assertEqual(stored.status, OrderStatus.PENDING)
        self.assertEqual([entry.status for entry in stored.status_history], [OrderStatus.PENDING])
        self.assertEqual(stored.delivery_details, DELIVERY_DETAILS)
        self.assertEqual(stored.version, 1)
        self.assertEqual(stored.estimated_preparation_time, 30)
        self.assertEqual([item.product_name for item in stored.items], ["Siomai", "Rice Bowl"])

    def test_one_order_per_store(self):
        other_seller = uuid4()
        orders = self.service.create_from_cart(
            customer_id=self.customer_id,
            groups=[store_group(seller_id=self.seller_id), store_group(seller_id=other_seller)],
            order_type=OrderType.DELIVERY,
            payment_method=PaymentMethod.GCASH,
            delivery_details=DELIVERY_DETAILS,
        )

        self.assertEqual(len(orders), 2)
        self.assertEqual({order.seller_id for order in orders}, {self.seller_id, other_seller})
        self.assertEqual(OrderORM.objects.filter(customer_id=self.customer_id).count(), 2)
        self.assertEqual(OutboxEvent.objects.filter(event_type="OrderPlaced").count(), 2)

    def test_empty_cart(self):
        with self.assertRaises(EmptyCart):
            self.service.create_from_cart(
                customer_id=self.customer_id,
                groups=[store_group(items=())],
                order_type=OrderType.DELIVERY,
                payment_method=PaymentMethod.GCASH,
                delivery_details=DELIVERY_DETAILS,
            )
        self.assertFalse(OrderORM.objects.exists())

    def test_invalid_group_rolls_back_whole_checkout(self):
        with self.assertRaises(InvalidPayload):
            self.service.create_from_cart(
                customer_id=self.customer_id,
                groups=[store_group(), store_group(shipping_fee=Decimal("-1.00"))],
                order_type=OrderType.DELIVERY,
                payment_method=PaymentMethod.GCASH,
                delivery_details=DELIVERY_DETAILS,
            )
        self.assertFalse(OrderORM.objects.exists())
        self.assertFalse(OutboxEvent.objects.exists())

    def test_preparation_time_is_largest_item_estimate(self):
        items = [
            OrderItem(product_id=uuid4(), quantity=1, price=Decimal("40.00"), estimated_preparation_time=15),
            OrderItem(product_id=uuid4(), quantity=1, price=Decimal("60.00"), estimated_preparation_time=45),
        ]
        order = place_order(
            self.service, self.customer_id, self.seller_id, group=store_group(self.seller_id, items=items)
        )

        self.assertEqual(self.repo.get_by_id(order.id).estimated_preparation_time, 45)

    def test_item_without_estimate_counts_as_default(self):
        items = [
            OrderItem(product_id=uuid4(), quantity=1, price=Decimal("40.00"), estimated_preparation_time=10),
            OrderItem(product_id=uuid4(), quantity=1, price=Decimal("60.00")),
        ]
        order = place_order(
            self.service, self.customer_id, self.seller_id, group=store_group(self.seller_id, items=items)
        )

        self.assertEqual(order.estimated_preparation_time, 30)

    def test_past_pickup_time_rejected(self):
        with self.assertRaises(InvalidPayload) as context:
            place_order(
                self.service,
                self.customer_id,
                self.seller_id,
                order_type=OrderType.PICKUP,
                pickup_time=timezone.now() - timedelta(hours=1),
            )
        self.assertEqual(context.exception.field, "pickupTime")
        self.assertFalse(OrderORM.objects.exists())

    def test_buy_now_single_product(self):
        item = OrderItem(product_id=uuid4(), quantity=3, price=Decimal("25.00"))
        command = CheckoutCommand(
            customer_id=self.customer_id,
            groups=(store_group(seller_id=self.seller_id, items=[item], shipping_fee=Decimal("0.00")),),
            order_type=OrderType.DELIVERY,
            payment_method=PaymentMethod.CASH_ON_DELIVERY,
            delivery_details=DELIVERY_DETAILS,
        )

        order = self.service.create_from_product(command)

        self.assertEqual(order.total_amount, Decimal("75.00"))
        self.assertEqual(order.seller_id, self.seller_id)

    def test_buy_now_rejects_multiple_products(self):
        command = CheckoutCommand(
            customer_id=self.customer_id,
            groups=(store_group(seller_id=self.seller_id),),
            order_type=OrderType.DELIVERY,
            payment_method=PaymentMethod.CASH_ON_DELIVERY,
            delivery_details=DELIVERY_DETAILS,
        )
        with self.assertRaises(InvalidPayload):
            self.service.create_from_product(command)


class OrderLifecycleTest(TestCase):
    """Tests for status changes through the service."""

    def setUp(self):
        self.service = OrderLifecycleService()
        self.repo = OrderRepository()
        self.customer_id = uuid4()
        self.seller_id = uuid4()
        self.order = place_order(self.service, self.customer_id, self.seller_id)

    def test_accept(self):
        order = self.service.accept(self.order.id, self.seller_id, estimated_preparation_time=20)

        stored = self.repo.get_by_id(order.id)
        self.assertEqual(stored.status, OrderStatus.ACCEPTED)
        self.assertIsNotNone(stored.accepted_at)
        self.assertEqual(len(stored.status_history), 2)
        self.assertEqual(stored.estimated_preparation_time, 20)
        self.assertEqual(stored.version, 2)

    def test_customer_cancels_accepted_order(self):
        self.service.accept(self.order.id, self.seller_id)

        self.service.cancel(self.order.id, self.customer_id, "changed mind")

        stored = self.repo.get_by_id(self.order.id)
        self.assertEqual(stored.status, OrderStatus.CANCELED)
        self.assertEqual(stored.canceled_by, ActorRole.CUSTOMER)
        self.assertEqual(stored.cancellation_reason, "changed mind")
        self.assertIsNotNone(stored.canceled_at)
        self.assertEqual(stored.status_history[-1].note, "changed mind")

    def test_reject_with_reason(self):
        self.service.reject(self.order.id, self.seller_id, "Out of stock")

        stored = self.repo.get_by_id(self.order.id)
        self.assertEqual(stored.status, OrderStatus.REJECTED)
        self.assertEqual(stored.status_history[-1].note, "Out of stock")
        self.assertIsNone(stored.canceled_by)

    def test_reject_without_reason(self):
        with self.assertRaises(MissingRequiredField):
            self.service.reject(self.order.id, self.seller_id, "")
        self.assertEqual(self.repo.get_by_id(self.order.id).status, OrderStatus.PENDING)

    def test_full_delivery_flow_history(self):
        steps = [
            OrderStatus.ACCEPTED,
            OrderStatus.PREPARING,
            OrderStatus.OUT_FOR_DELIVERY,
            OrderStatus.DELIVERED,
        ]
        for count, status in enumerate(steps, start=2):
            order = self.service.update_status(self.order.id, self.seller_id, ActorRole.SELLER, status)
            self.assertEqual(len(order.status_history), count)
            self.assertEqual(order.status_history[-1].status, status)
            self.assertEqual(order.total_amount, Decimal("220.00"))

        stored = self.repo.get_by_id(self.order.id)
        self.assertIsNotNone(stored.delivered_at)
        self.assertEqual(
            list(
                StatusHistoryORM.objects.filter(order_id=self.order.id).values_list("sequence", flat=True)
            ),
            [1, 2, 3, 4, 5],
        )

    def test_skipping_a_step_leaves_order_unchanged(self):
        self.service.accept(self.order.id, self.seller_id)
        self.service.update_status(self.order.id, self.seller_id, ActorRole.SELLER, OrderStatus.PREPARING)
        before = self.repo.get_by_id(self.order.id)

        with self.assertRaises(InvalidTransition):
            self.service.update_status(
                self.order.id, self.seller_id, ActorRole.SELLER, OrderStatus.DELIVERED
            )

        after = self.repo.get_by_id(self.order.id)
        self.assertEqual(after.status, OrderStatus.PREPARING)
        self.assertEqual(after.version, before.version)
        self.assertEqual(len(after.status_history), len(before.status_history))

    def test_other_seller_forbidden(self):
        with self.assertRaises(Forbidden):
            self.service.accept(self.order.id, uuid4())
        self.assertEqual(self.repo.get_by_id(self.order.id).status, OrderStatus.PENDING)

    def test_other_customer_forbidden(self):
        with self.assertRaises(Forbidden):
            self.service.cancel(self.order.id, uuid4(), "not mine")

    def test_unknown_order(self):
        with self.assertRaises(NotFound):
            self.service.accept(uuid4(), self.seller_id)

    def test_terminal_order_cannot_move(self):
        self.service.cancel(self.order.id, self.customer_id, "changed mind")

        with self.assertRaises(InvalidTransition):
            self.service.accept(self.order.id, self.seller_id)

    def test_status_change_writes_outbox_event(self):
        self.service.accept(self.order.id, self.seller_id, note="On it")

        event = OutboxEvent.objects.get(event_type="OrderStatusChanged", aggregate_id=self.order.id)
        self.assertEqual(event.event_data["previous_status"], "Pending")
        self.assertEqual(event.event_data["status"], "Accepted")
        self.assertEqual(event.event_data["actor_role"], "Seller")
        self.assertEqual(event.event_data["note"], "On it")
        self.assertFalse(event.processed)

    def test_failed_transition_writes_no_event(self):
        with self.assertRaises(InvalidTransition):
            self.service.update_status(
                self.order.id, self.seller_id, ActorRole.SELLER, OrderStatus.DELIVERED
            )
        self.assertFalse(OutboxEvent.objects.filter(event_type="OrderStatusChanged").exists())


class PaymentServiceTest(TestCase):
    """Tests for payment status changes through the service."""

    def setUp(self):
        self.service = OrderLifecycleService()
        self.repo = OrderRepository()
        self.customer_id = uuid4()
        self.seller_id = uuid4()
        self.order = place_order(self.service, self.customer_id, self.seller_id)

    def test_mark_paid_twice(self):
        self.service.mark_paid(self.order.id, self.seller_id)

        with self.assertRaises(InvalidPaymentTransition):
            self.service.mark_paid(self.order.id, self.seller_id)

        stored = self.repo.get_by_id(self.order.id)
        self.assertEqual(stored.payment_status, PaymentStatus.PAID)
        self.assertEqual(stored.status, OrderStatus.PENDING)
        self.assertEqual(len(stored.status_history), 2)
        self.assertEqual(
            OutboxEvent.objects.filter(event_type="OrderPaymentUpdated").count(), 1
        )

    def test_mark_payment_failed(self):
        self.service.mark_payment_failed(self.order.id, self.seller_id, "Reference mismatch")

        stored = self.repo.get_by_id(self.order.id)
        self.assertEqual(stored.payment_status, PaymentStatus.FAILED)
        self.assertEqual(stored.status_history[-1].note, "Reference mismatch")

    def test_customer_cannot_mark_paid(self):
        with self.assertRaises(Forbidden):
            self.service.mark_paid(self.order.id, self.customer_id)

    def test_cash_on_pickup_paid_on_delivery(self):
        order = place_order(self.service, self.customer_id, self.seller_id, order_type=OrderType.PICKUP)
        for status in (
            OrderStatus.ACCEPTED,
            OrderStatus.PREPARING,
            OrderStatus.READY,
            OrderStatus.READY_FOR_PICKUP,
            OrderStatus.DELIVERED,
        ):
            self.service.update_status(order.id, self.seller_id, ActorRole.SELLER, status)

        stored = self.repo.get_by_id(order.id)
        self.assertEqual(stored.status, OrderStatus.DELIVERED)
        self.assertEqual(stored.payment_status, PaymentStatus.PAID)
