"""
Models for inbound webhook events and their handling results.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import SyncHandlerError


class SyncEvent(BaseModel):
    """A webhook event whose signature has been verified."""
    id: Optional[str] = Field(None, description="Stripe event ID (evt_xxx)")
    type: str = Field(..., description="Stripe event type, e.g. 'customer.updated'")
    resource_type: str = Field(..., description="Object tag of the payload, e.g. 'customer'")
    remote_id: Optional[str] = Field(None, description="ID of the Stripe object the event is about")
    payload: Dict[str, Any] = Field(default_factory=dict, description="The event's data.object")
    created: Optional[int] = Field(None, description="Provider timestamp of the event (epoch seconds)")
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class HandlerStatus(str, Enum):
    """Outcome of applying an inbound event."""
    HANDLED = "handled"
    IGNORED = "ignored"
    SKIPPED = "skipped"
    FAILED = "failed"


class HandlerResult(BaseModel):
    """Result of dispatching one event to its handlers."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: HandlerStatus
    event_type: str
    remote_id: Optional[str] = None
    handlers: List[str] = Field(default_factory=list)
    message: Optional[str] = None
    error: Optional[SyncHandlerError] = Field(None, exclude=True)

    @property
    def ok(self) -> bool:
        return self.status != HandlerStatus.FAILED

    def get_summary(self) -> Dict[str, Any]:
        """Serializable summary for the webhook response."""
        return {
            "status": self.status.value,
            "event_type": self.event_type,
            "remote_id": self.remote_id,
            "handlers": self.handlers,
            "message": self.message,
        }
