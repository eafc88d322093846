"""
Connectors for the stripesync engine.

This package contains the collaborator interfaces the engine depends on and
the Stripe implementation of the remote side.
"""

from .base import DocumentStore, RemoteConnector, WebhookHandler
from .stripe import StripeConnector

__all__ = [
    "DocumentStore",
    "RemoteConnector",
    "WebhookHandler",
    "StripeConnector",
]
