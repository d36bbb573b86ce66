import uuid

import django.db.models.deletion
from django.db import migrations, models


ORDER_STATUS_CHOICES = [
    ("Pending", "Pending"),
    ("Accepted", "Accepted"),
    ("Rejected", "Rejected"),
    ("Preparing", "Preparing"),
    ("Ready", "Ready"),
    ("Out for Delivery", "Out for Delivery"),
    ("Ready for Pickup", "Ready for Pickup"),
    ("Delivered", "Delivered"),
    ("Canceled", "Canceled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="IdempotencyKey",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("key", models.CharField(max_length=255)),
                ("user_id", models.UUIDField()),
                (
                    "operation",
                    models.CharField(
                        max_length=50,
                        choices=[
                            ("CHECKOUT", "Checkout"),
                            ("BUY_NOW", "Buy now"),
                            ("ACCEPT_ORDER", "Accept order"),
                            ("REJECT_ORDER", "Reject order"),
                            ("CANCEL_ORDER", "Cancel order"),
                            ("UPDATE_ORDER_STATUS", "Update order status"),
                            ("MARK_ORDER_PAID", "Mark order paid"),
                            ("MARK_PAYMENT_FAILED", "Mark payment failed"),
                        ],
                    ),
                ),
                ("request_hash", models.CharField(max_length=255)),
                ("response_payload", models.JSONField()),
            ],
            options={
                "unique_together": {("key", "user_id", "operation")},
                "indexes": [
                    models.Index(fields=["request_hash"], name="orders_idem_hash_idx"),
                    models.Index(fields=["key", "user_id", "operation"], name="orders_idem_lookup_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderORM",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("customer_id", models.UUIDField()),
                ("seller_id", models.UUIDField()),
                ("store_id", models.UUIDField()),
                (
                    "order_type",
                    models.CharField(max_length=20, choices=[("Pickup", "Pickup"), ("Delivery", "Delivery")]),
                ),
                (
                    "status",
                    models.CharField(max_length=30, choices=ORDER_STATUS_CHOICES, default="Pending"),
                ),
                (
                    "payment_status",
                    models.CharField(
                        max_length=20,
                        choices=[("Pending", "Pending"), ("Paid", "Paid"), ("Failed", "Failed")],
                        default="Pending",
                    ),
                ),
                (
                    "payment_method",
                    models.CharField(
                        max_length=30,
                        choices=[
                            ("Cash on Delivery", "Cash on Delivery"),
                            ("GCash", "GCash"),
                            ("Cash on Pickup", "Cash on Pickup"),
                        ],
                    ),
                ),
                ("shipping_fee", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("delivery_details", models.JSONField(blank=True, null=True)),
                ("pickup_time", models.DateTimeField(blank=True, null=True)),
                ("estimated_preparation_time", models.PositiveIntegerField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("cancellation_reason", models.TextField(blank=True, default="")),
                (
                    "canceled_by",
                    models.CharField(
                        blank=True,
                        choices=[("Customer", "Customer"), ("Seller", "Seller")],
                        max_length=20,
                        null=True,
                    ),
                ),
                ("placed_at", models.DateTimeField()),
                ("accepted_at", models.DateTimeField(blank=True, null=True)),
                ("canceled_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("version", models.PositiveIntegerField(default=1)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["customer_id", "-placed_at"], name="orders_customer_placed_idx"),
                    models.Index(fields=["seller_id", "-placed_at"], name="orders_seller_placed_idx"),
                    models.Index(fields=["store_id", "-placed_at"], name="orders_store_placed_idx"),
                    models.Index(fields=["status"], name="orders_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItemORM",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("position", models.PositiveIntegerField()),
                ("product_id", models.UUIDField()),
                ("product_name", models.CharField(blank=True, default="", max_length=255)),
                ("quantity", models.PositiveIntegerField()),
                ("price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="orders.orderorm",
                    ),
                ),
            ],
            options={
                "ordering": ["position"],
                "indexes": [models.Index(fields=["order"], name="orders_item_order_idx")],
            },
        ),
        migrations.CreateModel(
            name="StatusHistoryORM",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("sequence", models.PositiveIntegerField()),
                ("status", models.CharField(max_length=30, choices=ORDER_STATUS_CHOICES)),
                ("note", models.TextField(blank=True, default="")),
                ("timestamp", models.DateTimeField()),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_history",
                        to="orders.orderorm",
                    ),
                ),
            ],
            options={
                "ordering": ["sequence"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("order", "sequence"), name="orders_history_order_sequence_uniq"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OutboxEvent",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("aggregate_id", models.UUIDField()),
                ("aggregate_type", models.CharField(max_length=50)),
                ("event_type", models.CharField(max_length=100)),
                ("event_data", models.JSONField()),
                ("processed", models.BooleanField(default=False)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("retry_count", models.IntegerField(default=0)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["processed", "created_at"], name="orders_outbox_pending_idx"),
                    models.Index(fields=["aggregate_id", "aggregate_type"], name="orders_outbox_aggregate_idx"),
                ],
            },
        ),
    ]
