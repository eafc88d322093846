"""
Models for the stripesync engine.
"""

from .config import (
    EventAction, FieldMapping, HandlerFactoryReference, PluginConfig, SyncRule
)
from .events import HandlerResult, HandlerStatus, SyncEvent
from .sync import OutboundResult, SyncStatus

__all__ = [
    # Configuration
    "EventAction",
    "FieldMapping",
    "HandlerFactoryReference",
    "PluginConfig",
    "SyncRule",

    # Inbound
    "SyncEvent",
    "HandlerResult",
    "HandlerStatus",

    # Outbound
    "OutboundResult",
    "SyncStatus",
]
