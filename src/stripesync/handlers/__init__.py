"""
Ready-made custom webhook handlers for data the flat field mapping cannot carry.

Each is a factory taking ``(connector, config)``; reference it from the
configuration as ``{"factory": "stripesync.handlers.<module>:<factory>"}``.
"""

from .prices import make_price_sync_handler
from .subscriptions import make_subscription_delete_handler, make_subscription_sync_handler

__all__ = [
    "make_price_sync_handler",
    "make_subscription_delete_handler",
    "make_subscription_sync_handler",
]
