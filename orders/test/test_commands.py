"""
Tests for checkout payload parsing and masking helpers.
"""
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

from django.test import SimpleTestCase
from django.utils import timezone

from orders.domain.commands import Actor, parse_checkout
from orders.domain.errors import EmptyCart, InvalidPayload, MissingRequiredField, Unauthenticated
from orders.domain.order import ActorRole, OrderType, PaymentMethod
from orders.infra.pii_masker import mask_pii_in_dict


def checkout_payload(**overrides):
    payload = {
        "stores": [
            {
                "storeId": str(uuid4()),
                "sellerId": str(uuid4()),
                "shippingFee": "20.00",
                "items": [
                    {"productId": str(uuid4()), "productName": "Siomai", "quantity": 2, "price": "50.00"},
                    {"productId": str(uuid4()), "quantity": 1, "price": "100.00"},
                ],
            }
        ],
        "orderType": "Delivery",
        "deliveryDetails": {
            "receiverName": "Juan Dela Cruz",
            "contactNumber": "+63 917 123 4567",
            "building": "Main Building",
            "roomNumber": "204",
        },
    }
    payload.update(overrides)
    return payload


class ParseCheckoutTest(SimpleTestCase):
    """Tests for building checkout commands from request bodies."""

    def setUp(self):
        self.customer_id = uuid4()

    def test_delivery_checkout(self):
        command = parse_checkout(self.customer_id, checkout_payload())

        self.assertEqual(command.order_type, OrderType.DELIVERY)
        self.assertEqual(command.payment_method, PaymentMethod.CASH_ON_DELIVERY)
        self.assertEqual(len(command.groups), 1)
        group = command.groups[0]
        self.assertEqual(group.shipping_fee, Decimal("20.00"))
        self.assertEqual(sum(item.subtotal for item in group.items), Decimal("200.00"))
        self.assertEqual(command.delivery_details.receiver_name, "Juan Dela Cruz")
        self.assertIsNone(command.pickup_time)

    def test_enum_names_accepted(self):
        command = parse_checkout(
            self.customer_id,
            checkout_payload(orderType="DELIVERY", paymentMethod="GCASH"),
        )
        self.assertEqual(command.payment_method, PaymentMethod.GCASH)

    def test_pickup_checkout(self):
        pickup_time = timezone.now() + timedelta(hours=3)
        command = parse_checkout(
            self.customer_id,
            checkout_payload(orderType="Pickup", deliveryDetails=None, pickupTime=pickup_time.isoformat()),
        )

        self.assertEqual(command.payment_method, PaymentMethod.CASH_ON_PICKUP)
        self.assertEqual(command.pickup_time, pickup_time)
        self.assertIsNone(command.delivery_details)

    def test_pickup_time_in_past(self):
        with self.assertRaises(InvalidPayload) as context:
            parse_checkout(
                self.customer_id,
                checkout_payload(
                    orderType="Pickup",
                    pickupTime=(timezone.now() - timedelta(minutes=5)).isoformat(),
                ),
            )
        self.assertEqual(context.exception.field, "pickupTime")

    def test_empty_cart(self):
        with self.assertRaises(EmptyCart):
            parse_checkout(self.customer_id, checkout_payload(stores=[]))

    def test_missing_delivery_field(self):
        details = checkout_payload()["deliveryDetails"]
        details["roomNumber"] = " "
        with self.assertRaises(MissingRequiredField) as context:
            parse_checkout(self.customer_id, checkout_payload(deliveryDetails=details))
        self.assertEqual(context.exception.field, "deliveryDetails.roomNumber")

    def test_invalid_contact_number(self):
        details = checkout_payload()["deliveryDetails"]
        details["contactNumber"] = "call me"
        with self.assertRaises(InvalidPayload):
            parse_checkout(self.customer_id, checkout_payload(deliveryDetails=details))

    def test_invalid_quantity(self):
        payload = checkout_payload()
        payload["stores"][0]["items"][0]["quantity"] = 0
        with self.assertRaises(InvalidPayload):
            parse_checkout(self.customer_id, payload)

    def test_invalid_product_id(self):
        payload = checkout_payload()
        payload["stores"][0]["items"][0]["productId"] = "not-a-uuid"
        with self.assertRaises(InvalidPayload) as context:
            parse_checkout(self.customer_id, payload)
        self.assertEqual(context.exception.field, "productId")

    def test_unknown_payment_method(self):
        with self.assertRaises(InvalidPayload):
            parse_checkout(self.customer_id, checkout_payload(paymentMethod="Credit Card"))

    def test_non_finite_price(self):
        for value in ("NaN", "Infinity", "-Infinity"):
            with self.subTest(value=value):
                payload = checkout_payload()
                payload["stores"][0]["items"][0]["price"] = value
                with self.assertRaises(InvalidPayload) as context:
                    parse_checkout(self.customer_id, payload)
                self.assertEqual(context.exception.field, "price")

    def test_non_finite_shipping_fee(self):
        payload = checkout_payload()
        payload["stores"][0]["shippingFee"] = "Infinity"
        with self.assertRaises(InvalidPayload) as context:
            parse_checkout(self.customer_id, payload)
        self.assertEqual(context.exception.field, "shippingFee")

    def test_price_exceeds_column_precision(self):
        payload = checkout_payload()
        payload["stores"][0]["items"][0]["price"] = "100000000000"
        with self.assertRaises(InvalidPayload) as context:
            parse_checkout(self.customer_id, payload)
        self.assertEqual(context.exception.field, "price")

    def test_item_preparation_estimate(self):
        payload = checkout_payload()
        payload["stores"][0]["items"][0]["estimatedPreparationTime"] = 45
        command = parse_checkout(self.customer_id, payload)

        items = command.groups[0].items
        self.assertEqual(items[0].estimated_preparation_time, 45)
        self.assertIsNone(items[1].estimated_preparation_time)

    def test_item_preparation_estimate_must_be_positive(self):
        payload = checkout_payload()
        payload["stores"][0]["items"][0]["estimatedPreparationTime"] = 0
        with self.assertRaises(InvalidPayload) as context:
            parse_checkout(self.customer_id, payload)
        self.assertEqual(context.exception.field, "estimatedPreparationTime")


class ActorTest(SimpleTestCase):
    def test_from_headers(self):
        user_id = uuid4()
        actor = Actor.from_raw(str(user_id), "Seller")
        self.assertEqual(actor, Actor(id=user_id, role=ActorRole.SELLER))

    def test_missing_credentials(self):
        with self.assertRaises(Unauthenticated):
            Actor.from_raw(None, "Customer")
        with self.assertRaises(Unauthenticated):
            Actor.from_raw(str(uuid4()), "Admin")


class PIIMaskerTest(SimpleTestCase):
    def test_masks_delivery_details(self):
        masked = mask_pii_in_dict(
            {
                "order_id": "keep",
                "delivery_details": {
                    "receiver_name": "Juan Dela Cruz",
                    "contact_number": "09171234567",
                },
            }
        )
        self.assertEqual(masked["order_id"], "keep")
        self.assertEqual(masked["delivery_details"]["receiver_name"], "J************z")
        self.assertEqual(masked["delivery_details"]["contact_number"], "09*******67")
