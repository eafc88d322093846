"""
Sync engine for keeping local collections and Stripe resources consistent.
"""

from .inbound import InboundSyncHandler
from .outbound import OutboundSyncDispatcher
from .registry import SyncRegistry
from .sync import SyncEngine
from .transforms import FieldMapper
from .webhooks import WebhookVerifier, sign

__all__ = [
    "SyncEngine",
    "SyncRegistry",
    "FieldMapper",
    "WebhookVerifier",
    "InboundSyncHandler",
    "OutboundSyncDispatcher",
    "sign",
]
