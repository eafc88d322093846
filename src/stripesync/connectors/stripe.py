"""
Stripe connector used by the sync engine.
"""

import logging
from typing import Any, Dict

from ..exceptions import RemoteSyncError, StripeAPIError
from ..integrations.stripe.client import StripeClient
from .base import RemoteConnector

logger = logging.getLogger(__name__)

DASHBOARD_URL = "https://dashboard.stripe.com"


class StripeConnector(RemoteConnector):
    """
    Stripe API connector.

    Wraps StripeClient so every failure, including network errors and 4xx/5xx
    responses, reaches the engine as a RemoteSyncError.
    """

    def __init__(self, client: StripeClient, is_test_key: bool = True):
        self.client = client
        self.is_test_key = is_test_key
        logger.info(f"Initialized {self.__class__.__name__} ({'test' if is_test_key else 'live'} mode)")

    def _call(self, action: str, resource_type: str, remote_id, func, *args) -> Dict[str, Any]:
        try:
            return func(*args)
        except StripeAPIError as e:
            raise RemoteSyncError(f"Stripe {action} on {resource_type} failed: {e}",
                                  resource_type=resource_type, remote_id=remote_id) from e

    def create(self, resource_type: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("create", resource_type, None, self.client.create, resource_type, payload)

    def update(self, resource_type: str, remote_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("update", resource_type, remote_id, self.client.update, resource_type, remote_id, payload)

    def delete(self, resource_type: str, remote_id: str) -> Dict[str, Any]:
        return self._call("delete", resource_type, remote_id, self.client.delete, resource_type, remote_id)

    def retrieve(self, resource_type: str, remote_id: str) -> Dict[str, Any]:
        return self._call("retrieve", resource_type, remote_id, self.client.retrieve, resource_type, remote_id)

    def dashboard_url(self, resource_type: str, remote_id: str) -> str:
        """Link to the resource in the Stripe dashboard."""
        mode = "/test" if self.is_test_key else ""
        return f"{DASHBOARD_URL}{mode}/{resource_type}/{remote_id}"
