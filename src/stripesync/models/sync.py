"""
Models for outbound sync results.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import RemoteSyncError


class SyncStatus(str, Enum):
    """Status of an outbound sync."""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    SKIPPED = "skipped"
    FAILED = "failed"


class OutboundResult(BaseModel):
    """
    Result of pushing one local write to Stripe.

    ``data`` is the document data the host should persist; on a successful
    create it carries the new Stripe ID.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: SyncStatus
    collection: str
    remote_id: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    payload: Dict[str, Any] = Field(default_factory=dict, description="Properties sent to Stripe")
    message: Optional[str] = None
    error: Optional[RemoteSyncError] = Field(None, exclude=True)

    @property
    def ok(self) -> bool:
        return self.status != SyncStatus.FAILED

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of the sync."""
        return {
            "status": self.status.value,
            "collection": self.collection,
            "remote_id": self.remote_id,
            "message": self.message,
        }
