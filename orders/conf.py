"""
App settings for the orders app.

Values come from the ``ORDERS`` dict in Django settings, falling back to
the defaults below.
"""
from django.conf import settings

DEFAULTS = {
    "DEFAULT_PAGE_LIMIT": 20,
    "MAX_PAGE_LIMIT": 100,
    "DEFAULT_PREPARATION_TIME": 30,
    "CURRENCY": "PHP",
    "NOTIFICATION_HANDLERS": [
        "orders.infra.dispatcher.log_notification",
    ],
    "OUTBOX_MAX_RETRIES": 5,
}


class OrdersSettings:
    def __getattr__(self, name):
        if name not in DEFAULTS:
            raise AttributeError(f"Invalid orders setting: {name}")
        user_settings = getattr(settings, "ORDERS", {}) or {}
        return user_settings.get(name, DEFAULTS[name])


orders_settings = OrdersSettings()
