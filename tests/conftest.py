# tests/conftest.py
# Shared fixtures: in-memory store, fake Stripe connector, engine, event builders

import json
import itertools

import pytest

from stripesync.connectors.base import RemoteConnector
from stripesync.engine.sync import SyncEngine
from stripesync.engine.webhooks import sign
from stripesync.exceptions import RemoteSyncError
from stripesync.models.config import PluginConfig
from stripesync.services.memory import InMemoryDocumentStore

WEBHOOK_SECRET = "whsec_123"


class FakeStripeConnector(RemoteConnector):
    """Records calls and keeps created resources in memory."""

    def __init__(self):
        self.calls = []
        self.resources = {}
        self.fail_with = None
        self._ids = itertools.count(1)

    def _maybe_fail(self, resource_type, remote_id=None):
        if self.fail_with is not None:
            raise RemoteSyncError(self.fail_with, resource_type=resource_type, remote_id=remote_id)

    def create(self, resource_type, payload):
        self.calls.append(("create", resource_type, None, dict(payload)))
        self._maybe_fail(resource_type)
        prefix = {"customers": "cus", "products": "prod", "prices": "price"}.get(resource_type, "obj")
        remote_id = f"{prefix}_{next(self._ids)}"
        self.resources[remote_id] = {"id": remote_id, **payload}
        return self.resources[remote_id]

    def update(self, resource_type, remote_id, payload):
        self.calls.append(("update", resource_type, remote_id, dict(payload)))
        self._maybe_fail(resource_type, remote_id)
        self.resources.setdefault(remote_id, {"id": remote_id}).update(payload)
        return self.resources[remote_id]

    def delete(self, resource_type, remote_id):
        self.calls.append(("delete", resource_type, remote_id, {}))
        self._maybe_fail(resource_type, remote_id)
        self.resources.pop(remote_id, None)
        return {"id": remote_id, "deleted": True}

    def retrieve(self, resource_type, remote_id):
        self.calls.append(("retrieve", resource_type, remote_id, {}))
        self._maybe_fail(resource_type, remote_id)
        return self.resources[remote_id]


@pytest.fixture
def plugin_config_data():
    """Plugin configuration mirroring the customers/products setup"""
    return {
        "logs": True,
        "sync": [
            {
                "collection": "customers",
                "remote_resource_type": "customers",
                "remote_resource_type_singular": "customer",
                "fields": [
                    {"field_path": "name", "stripe_property": "name"},
                    {"field_path": "email", "stripe_property": "email"},
                ],
            },
            {
                "collection": "products",
                "remote_resource_type": "products",
                "remote_resource_type_singular": "product",
                "fields": [
                    {"field_path": "name", "stripe_property": "name"},
                ],
            },
        ],
        "webhooks": {
            "customer.subscription.created": {"factory": "stripesync.handlers.subscriptions:make_subscription_sync_handler"},
            "customer.subscription.updated": {"factory": "stripesync.handlers.subscriptions:make_subscription_sync_handler"},
            "customer.subscription.deleted": {"factory": "stripesync.handlers.subscriptions:make_subscription_delete_handler"},
            "product.created": {"factory": "stripesync.handlers.prices:make_price_sync_handler"},
            "product.updated": {"factory": "stripesync.handlers.prices:make_price_sync_handler"},
        },
    }


@pytest.fixture
def plugin_config(plugin_config_data):
    return PluginConfig.from_dict(plugin_config_data)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def connector():
    return FakeStripeConnector()


@pytest.fixture
def engine(plugin_config, connector, store):
    return SyncEngine(plugin_config, connector, store, webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def make_event():
    """Build a Stripe event envelope"""
    def _make(event_type, obj, created=1700000000, event_id="evt_test_1"):
        return {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "created": created,
            "data": {"object": obj},
        }
    return _make


@pytest.fixture
def signed_body():
    """Serialize an event and sign it with the test secret"""
    def _signed(event, secret=WEBHOOK_SECRET):
        body = json.dumps(event).encode()
        return body, sign(body, secret)
    return _signed
