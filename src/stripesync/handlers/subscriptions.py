"""
Webhook handlers keeping a customer's subscription list in sync.

Subscriptions relate a customer to a product, which a flat field mapping
cannot express, so they are maintained by these handlers instead. Bind
``make_subscription_sync_handler`` to ``customer.subscription.created``/``updated``
and ``make_subscription_delete_handler`` to ``customer.subscription.deleted``.
Both need sync rules for the ``customer`` and ``product`` resources.
"""

import logging
from typing import Any, Dict, List, Optional

from ..connectors.base import DocumentStore, RemoteConnector, WebhookHandler
from ..exceptions import ConfigurationError
from ..models.config import PluginConfig

logger = logging.getLogger(__name__)


def linked_collection(config: PluginConfig, resource_singular: str) -> str:
    """Collection synced with a Stripe resource; a handler cannot work without it."""
    collection = config.collection_for_resource(resource_singular)
    if collection is None:
        raise ConfigurationError(f"No sync rule for Stripe resource '{resource_singular}'")
    return collection


def _subscription_product_id(subscription: Dict[str, Any]):
    plan = subscription.get("plan") or {}
    if plan.get("product"):
        return plan["product"]
    items = (subscription.get("items") or {}).get("data") or []
    if items:
        price = items[0].get("price") or {}
        return price.get("product")
    return None


def _without(subscriptions: List[Dict[str, Any]], subscription_id: str) -> List[Dict[str, Any]]:
    return [sub for sub in subscriptions if sub.get("stripe_subscription_id") != subscription_id]


def make_subscription_sync_handler(connector: Optional[RemoteConnector], config: PluginConfig) -> WebhookHandler:
    """Build a handler that adds or replaces the subscription on its customer's document."""
    customers = linked_collection(config, "customer")
    products = linked_collection(config, "product")
    remote_id_field = config.remote_id_field
    skip_sync_field = config.skip_sync_field

    def sync_subscription(payload: Dict[str, Any], store: DocumentStore) -> None:
        subscription_id = payload.get("id")
        customer_id = payload.get("customer")

        customer = store.find_by_remote_id(customers, remote_id_field, customer_id)
        if customer is None:
            logger.warning(f"No local customer for Stripe customer {customer_id}; "
                           f"subscription {subscription_id} not stored")
            return

        product_stripe_id = _subscription_product_id(payload)
        product = store.find_by_remote_id(products, remote_id_field, product_stripe_id) if product_stripe_id else None
        if product is None:
            logger.warning(f"No local product for Stripe product {product_stripe_id}; "
                           f"subscription {subscription_id} not stored")
            return

        entry = {
            "stripe_subscription_id": subscription_id,
            "product": product["id"],
            "status": payload.get("status"),
        }

        def upsert(doc: Dict[str, Any]) -> Dict[str, Any]:
            subscriptions = list(doc.get("subscriptions") or [])
            for index, existing in enumerate(subscriptions):
                if existing.get("stripe_subscription_id") == subscription_id:
                    subscriptions[index] = entry
                    break
            else:
                subscriptions.append(entry)
            return {"subscriptions": subscriptions, skip_sync_field: True}

        store.modify(customers, customer["id"], upsert)
        logger.debug(f"Stored subscription {subscription_id} on customer {customer['id']}")

    return sync_subscription


def make_subscription_delete_handler(connector: Optional[RemoteConnector], config: PluginConfig) -> WebhookHandler:
    """Build a handler that removes the subscription from its customer's document."""
    customers = linked_collection(config, "customer")
    remote_id_field = config.remote_id_field
    skip_sync_field = config.skip_sync_field

    def remove_subscription(payload: Dict[str, Any], store: DocumentStore) -> None:
        subscription_id = payload.get("id")
        customer_id = payload.get("customer")

        customer = store.find_by_remote_id(customers, remote_id_field, customer_id)
        if customer is None:
            logger.warning(f"No local customer for Stripe customer {customer_id}; nothing to remove")
            return

        def remove(doc: Dict[str, Any]) -> Optional[Dict[str, Any]]:
            subscriptions = list(doc.get("subscriptions") or [])
            remaining = _without(subscriptions, subscription_id)
            if len(remaining) == len(subscriptions):
                # Already removed by an earlier delivery
                return None
            return {"subscriptions": remaining, skip_sync_field: True}

        store.modify(customers, customer["id"], remove)
        logger.debug(f"Subscription {subscription_id} no longer on customer {customer['id']}")

    return remove_subscription
