"""
Sync engine facade wiring the registry, verifier and both sync directions.
"""

import logging
from typing import Any, Dict, Optional, Union

from ..connectors.base import DocumentStore, RemoteConnector
from ..exceptions import ConfigurationError
from ..models.config import PluginConfig
from ..models.events import HandlerResult, SyncEvent
from ..models.sync import OutboundResult
from .inbound import InboundSyncHandler
from .outbound import OutboundSyncDispatcher
from .registry import SyncRegistry
from .webhooks import DEFAULT_TOLERANCE, WebhookVerifier

logger = logging.getLogger(__name__)


class SyncEngine:
    """
    Main engine keeping local collections and Stripe resources in sync.

    All configuration, including secrets, is passed in explicitly. The
    registry is built and frozen here, so an invalid configuration fails at
    construction with ConfigurationError.

    Args:
        config: Plugin configuration
        connector: Remote API connector
        store: Local document store
        webhook_secret: Webhook endpoint signing secret
        signature_tolerance: Maximum webhook signature age in seconds
        registry: Prebuilt registry to use instead of building one from ``config``
    """

    def __init__(
        self,
        config: PluginConfig,
        connector: RemoteConnector,
        store: DocumentStore,
        webhook_secret: Optional[str] = None,
        signature_tolerance: int = DEFAULT_TOLERANCE,
        registry: Optional[SyncRegistry] = None,
    ):
        self.config = config
        self.connector = connector
        self.store = store
        self.webhook_secret = webhook_secret

        if registry is None:
            registry = SyncRegistry.from_config(config, connector)
        elif not registry.frozen:
            registry.freeze()
        self.registry = registry

        self.verifier = WebhookVerifier(tolerance=signature_tolerance)
        self.inbound = InboundSyncHandler(
            registry,
            store,
            remote_id_field=config.remote_id_field,
            skip_sync_field=config.skip_sync_field,
            logs=config.logs,
        )
        self.outbound = OutboundSyncDispatcher(
            registry,
            connector,
            store=store,
            remote_id_field=config.remote_id_field,
            skip_sync_field=config.skip_sync_field,
            logs=config.logs,
        )

        logger.info(
            f"Sync engine ready: {len(registry.rules)} collections, "
            f"{len(registry.webhook_bindings)} custom webhook handlers"
        )

    def verify_webhook(self, raw_body: Union[bytes, str], signature_header: str) -> SyncEvent:
        """Verify a webhook; raises VerificationError or MalformedPayloadError."""
        if not self.webhook_secret:
            raise ConfigurationError("No webhook endpoint secret configured")
        return self.verifier.verify(raw_body, signature_header, self.webhook_secret)

    def handle_event(self, event: SyncEvent) -> HandlerResult:
        return self.inbound.handle(event)

    def process_webhook(self, raw_body: Union[bytes, str], signature_header: str) -> HandlerResult:
        """
        Verify a webhook and apply it.

        Verification problems raise; handler problems come back in the result.
        """
        event = self.verify_webhook(raw_body, signature_header)
        if self.config.logs:
            logger.info(f"Received webhook {event.type} ({event.id}) for {event.remote_id}")
        return self.handle_event(event)

    def dispatch(self, collection: str, data: Dict[str, Any]) -> OutboundResult:
        return self.outbound.dispatch(collection, data)

    def sync_document(self, collection: str, doc_id: str, force: bool = False) -> OutboundResult:
        return self.outbound.sync_document(collection, doc_id, force=force)

    def dispatch_delete(self, collection: str, doc: Dict[str, Any]) -> OutboundResult:
        return self.outbound.dispatch_delete(collection, doc)
