from django.contrib import admin

from orders.infra.models import (
    IdempotencyKey,
    OrderItemORM,
    OrderORM,
    StatusHistoryORM,
)
from orders.infra.outbox import OutboxEvent


class OrderItemInline(admin.TabularInline):
    model = OrderItemORM
    extra = 0
    can_delete = False
    readonly_fields = ("position", "product_id", "product_name", "quantity", "price", "subtotal")


class StatusHistoryInline(admin.TabularInline):
    model = StatusHistoryORM
    extra = 0
    can_delete = False
    readonly_fields = ("sequence", "status", "note", "timestamp")


@admin.register(OrderORM)
class OrderAdmin(admin.ModelAdmin):
    """Read-only: orders change only through the lifecycle service."""
    list_display = ("id", "store_id", "order_type", "status", "payment_status", "total_amount", "placed_at")
    list_filter = ("status", "payment_status", "order_type", "placed_at")
    search_fields = ("id", "customer_id", "seller_id", "store_id")
    inlines = (OrderItemInline, StatusHistoryInline)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(IdempotencyKey)
class IdempotencyAdmin(admin.ModelAdmin):
    list_display = ("key", "user_id", "operation", "created_at")
    list_filter = ("operation", "created_at")
    search_fields = ("key", "user_id")


@admin.register(OutboxEvent)
class OutboxEventAdmin(admin.ModelAdmin):
    list_display = ("id", "aggregate_id", "aggregate_type", "event_type", "processed", "retry_count", "created_at")
    list_filter = ("processed", "aggregate_type", "event_type", "created_at")
    readonly_fields = ("id", "aggregate_id", "aggregate_type", "event_type", "event_data", "processed", "processed_at", "retry_count")
