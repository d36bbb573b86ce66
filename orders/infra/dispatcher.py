"""
Dispatcher handing outbox events to notification collaborators.

Delivery is best-effort and happens after commit: a failing handler never
affects the order, it only bumps the event's retry count.
"""
from __future__ import annotations

import logging

from django.db import transaction
from django.utils.module_loading import import_string

from orders.conf import orders_settings
from orders.infra.outbox import OutboxEvent, OutboxRepository
from orders.infra.pii_masker import mask_pii_in_dict

logger = logging.getLogger(__name__)


def log_notification(event: OutboxEvent) -> None:
    """Default handler: record the notification that would be sent."""
    logger.info(
        "order_notification",
        extra={
            "operation": event.event_type,
            "order_id": str(event.aggregate_id),
            "status": event.event_data.get("status") or event.event_data.get("payment_status"),
            "payload": mask_pii_in_dict(event.event_data),
        },
    )


class OutboxDispatcher:
    """Deliver unprocessed outbox events to the configured handlers."""

    def __init__(self, outbox_repo: OutboxRepository | None = None, handlers=None):
        self.outbox_repo = outbox_repo or OutboxRepository()
        if handlers is None:
            handlers = [import_string(path) for path in orders_settings.NOTIFICATION_HANDLERS]
        self.handlers = list(handlers)

    def process_outbox_events(self, limit: int = 100) -> int:
        """Process a batch of events and return how many were delivered."""
        events = self.outbox_repo.get_unprocessed_events(
            limit=limit, max_retries=orders_settings.OUTBOX_MAX_RETRIES
        )
        processed_count = 0

        for event in events:
            try:
                with transaction.atomic():
                    for handler in self.handlers:
                        handler(event)
                    self.outbox_repo.mark_processed(event.id)
                processed_count += 1
            except Exception as e:
                self.outbox_repo.increment_retry(event.id)
                logger.error(
                    "outbox_dispatch_error",
                    extra={
                        "event_id": str(event.id),
                        "error": str(e),
                    },
                    exc_info=True,
                )

        return processed_count
