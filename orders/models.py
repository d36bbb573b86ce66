"""
Expose ORM models for Django's auto-discovery while keeping real definitions
under the infrastructure module.
"""

from orders.infra.models import IdempotencyKey, OrderItemORM, OrderORM, StatusHistoryORM
from orders.infra.outbox import OutboxEvent

__all__ = ["IdempotencyKey", "OrderItemORM", "OrderORM", "OutboxEvent", "StatusHistoryORM"]
