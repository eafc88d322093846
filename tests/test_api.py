# tests/test_api.py
# FastAPI endpoint tests

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from stripesync.api.app import app, get_stripe_client, get_sync_engine
from stripesync.engine.sync import SyncEngine
from stripesync.engine.webhooks import sign
from stripesync.exceptions import StripeAPIError
from stripesync.models.config import PluginConfig


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_sync_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


def customer_event(make_event, **kwargs):
    return make_event("customer.updated", {"id": "cus_1", "object": "customer", "name": "Acme"}, **kwargs)


class TestHealthEndpoint:

    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestWebhookEndpoint:

    def test_signed_event_is_applied(self, client, store, make_event, signed_body):
        body, header = signed_body(customer_event(make_event))

        response = client.post("/api/v1/stripe/webhooks", content=body,
                               headers={"Stripe-Signature": header})

        assert response.status_code == 200
        data = response.json()
        assert data["received"] is True
        assert data["status"] == "handled"
        assert next(iter(store.all("customers").values()))["name"] == "Acme"

    def test_bad_signature_is_400(self, client, store, make_event, signed_body):
        body, header = signed_body(customer_event(make_event), secret="whsec_wrong")

        response = client.post("/api/v1/stripe/webhooks", content=body,
                               headers={"Stripe-Signature": header})

        assert response.status_code == 400
        assert store.all("customers") == {}

    def test_missing_signature_is_400(self, client, make_event):
        response = client.post("/api/v1/stripe/webhooks", content=b"{}")

        assert response.status_code == 400

    def test_malformed_body_is_400(self, client, engine):
        body = b"not json"
        header = sign(body, engine.webhook_secret)

        response = client.post("/api/v1/stripe/webhooks", content=body,
                               headers={"Stripe-Signature": header})

        assert response.status_code == 400

    def test_handler_failure_still_acknowledged(self, client, connector, make_event, signed_body):
        event = make_event("product.created", {
            "id": "prod_1", "object": "product", "name": "Pro", "default_price": "price_missing",
        })
        body, header = signed_body(event)

        response = client.post("/api/v1/stripe/webhooks", content=body,
                               headers={"Stripe-Signature": header})

        assert response.status_code == 200
        assert response.json()["status"] == "failed"

    def test_unbound_event_is_acknowledged(self, client, make_event, signed_body):
        body, header = signed_body(make_event("invoice.paid", {"id": "in_1", "object": "invoice"}))

        response = client.post("/api/v1/stripe/webhooks", content=body,
                               headers={"Stripe-Signature": header})

        assert response.status_code == 200
        assert response.json()["status"] == "ignored"

    def test_uninitialized_engine_is_500(self):
        response = TestClient(app).post("/api/v1/stripe/webhooks", content=b"{}")

        assert response.status_code == 500


class TestRulesEndpoint:

    def test_lists_rules_and_bindings(self, client):
        data = client.get("/api/v1/stripe/rules").json()

        assert [rule["collection"] for rule in data["rules"]] == ["customers", "products"]
        assert "customer.subscription.deleted" in data["webhooks"]


class TestSyncEndpoint:

    def test_pushes_document(self, client, store, connector):
        store.create("customers", {"id": "c1", "name": "Acme"})

        response = client.post("/api/v1/collections/customers/documents/c1/sync")

        assert response.status_code == 200
        assert response.json()["status"] == "created"
        assert store.get("customers", "c1")["stripe_id"] == "cus_1"

    def test_unsynced_collection_is_404(self, client):
        assert client.post("/api/v1/collections/orders/documents/o1/sync").status_code == 404

    def test_remote_failure_is_502(self, client, store, connector):
        store.create("customers", {"id": "c1", "name": "Acme"})
        connector.fail_with = "api down"

        assert client.post("/api/v1/collections/customers/documents/c1/sync").status_code == 502


class TestRestProxy:

    @pytest.fixture
    def rest_client(self, plugin_config_data, connector, store):
        plugin_config_data["rest"] = True
        engine = SyncEngine(PluginConfig.from_dict(plugin_config_data), connector, store)
        stripe = MagicMock()
        app.dependency_overrides[get_sync_engine] = lambda: engine
        app.dependency_overrides[get_stripe_client] = lambda: stripe
        yield TestClient(app), stripe
        app.dependency_overrides.clear()

    def test_disabled_by_default(self, client):
        app.dependency_overrides[get_stripe_client] = lambda: MagicMock()

        response = client.post("/api/v1/stripe/rest", json={"path": "customers"})

        assert response.status_code == 404

    def test_proxies_call(self, rest_client):
        http, stripe = rest_client
        stripe.request.return_value = {"object": "list", "data": []}

        response = http.post("/api/v1/stripe/rest", json={"method": "GET", "path": "customers", "params": {"limit": 1}})

        assert response.status_code == 200
        assert response.json() == {"object": "list", "data": []}
        stripe.request.assert_called_once_with("GET", "customers", {"limit": 1})

    def test_stripe_error_status_is_kept(self, rest_client):
        http, stripe = rest_client
        stripe.request.side_effect = StripeAPIError("No such customer", status_code=404)

        response = http.post("/api/v1/stripe/rest", json={"path": "customers/cus_404"})

        assert response.status_code == 404

    def test_invalid_method_rejected(self, rest_client):
        http, _ = rest_client

        assert http.post("/api/v1/stripe/rest", json={"method": "PUT", "path": "customers"}).status_code == 422
