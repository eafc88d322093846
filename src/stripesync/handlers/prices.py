"""
Webhook handler storing a product's default price on the product document.
"""

import json
import logging
from typing import Any, Dict, Optional

from ..connectors.base import DocumentStore, RemoteConnector, WebhookHandler
from ..exceptions import ConfigurationError
from ..models.config import PluginConfig
from .subscriptions import linked_collection

logger = logging.getLogger(__name__)


def make_price_sync_handler(connector: Optional[RemoteConnector], config: PluginConfig) -> WebhookHandler:
    """
    Build a ``product.created``/``product.updated`` handler.

    The handler fetches the product's default price from Stripe and stores it
    under the product document's ``price`` field as
    ``{"stripe_price_id": ..., "stripe_json": "<price as JSON>"}``.

    Args:
        connector: Connector used to retrieve the price
        config: Plugin configuration naming the product collection and local fields

    Returns:
        Webhook handler

    Raises:
        ConfigurationError: no connector, or no sync rule for products
    """
    if connector is None:
        raise ConfigurationError("The price sync handler needs a remote connector")
    products = linked_collection(config, "product")
    remote_id_field = config.remote_id_field
    skip_sync_field = config.skip_sync_field

    def sync_price_json(payload: Dict[str, Any], store: DocumentStore) -> None:
        product_id = payload.get("id")
        default_price = payload.get("default_price")
        if not default_price:
            logger.debug(f"Product {product_id} has no default price")
            return

        product = store.find_by_remote_id(products, remote_id_field, product_id)
        if product is None:
            logger.warning(f"No local product for Stripe product {product_id}; price not stored")
            return

        if isinstance(default_price, dict):
            price = default_price
        else:
            price = connector.retrieve("prices", default_price)

        store.update(products, product["id"], {
            "price": {
                "stripe_price_id": price.get("id"),
                "stripe_json": json.dumps(price, sort_keys=True),
            },
            skip_sync_field: True,
        })
        logger.debug(f"Stored price {price.get('id')} on product {product['id']}")

    return sync_price_json
