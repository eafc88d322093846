"""
Registry of sync rules and webhook bindings.
"""

import importlib
import logging
from typing import Any, Callable, Dict, List, Optional

from ..connectors.base import RemoteConnector, WebhookHandler
from ..exceptions import ConfigurationError
from ..models.config import (
    EventAction, HandlerFactoryReference, HandlerReference, PluginConfig, SyncRule,
    split_event_type, validate_event_type, validate_flat_name
)

logger = logging.getLogger(__name__)


def import_object(path: str) -> Any:
    """Import ``package.module:attribute``."""
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise ConfigurationError(f"Handler reference must look like 'package.module:attribute', got {path!r}")
    try:
        module = importlib.import_module(module_name)
        return getattr(module, attribute)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Could not import {path!r}: {e}") from e


def resolve_handler(reference: HandlerReference, connector: Optional[RemoteConnector] = None,
                    config: Optional[PluginConfig] = None) -> WebhookHandler:
    """
    Turn a configured handler reference into a callable.

    Args:
        reference: Import path of a handler, or a factory reference
        connector: Remote connector passed to handler factories
        config: Plugin configuration passed to handler factories

    Returns:
        A ``handler(payload, store)`` callable

    Raises:
        ConfigurationError: the reference cannot be imported, or the factory rejects its arguments
    """
    if isinstance(reference, HandlerFactoryReference):
        factory = import_object(reference.factory)
        return factory(connector, config if config is not None else PluginConfig())
    return import_object(reference)


class SyncRegistry:
    """
    Holds the per-collection sync rules and the webhook dispatch table.

    The registry is mutable only while it is being built. ``freeze()`` makes
    it read-only, after which it is safe to share between threads.
    """

    def __init__(self):
        self._rules: Dict[str, SyncRule] = {}
        self._bindings: Dict[str, WebhookHandler] = {}
        self._frozen = False

    @classmethod
    def from_config(cls, config: PluginConfig, connector: Optional[RemoteConnector] = None) -> "SyncRegistry":
        """Build and freeze a registry from a plugin configuration."""
        registry = cls()
        for rule in config.sync:
            registry.register(rule)
        for event_type, reference in config.webhooks.items():
            registry.bind_webhook(event_type, resolve_handler(reference, connector, config))
        registry.freeze()
        return registry

    def _check_mutable(self) -> None:
        if self._frozen:
            raise ConfigurationError("Sync registry is frozen; rebuild it to change the configuration")

    def register(self, rule: SyncRule) -> None:
        """
        Register a sync rule for a collection.

        Raises:
            ConfigurationError: duplicate collection, nested field, or no mappings
        """
        self._check_mutable()
        if rule.collection in self._rules:
            raise ConfigurationError(f"Collection '{rule.collection}' already has a sync rule")
        if not rule.field_mappings:
            raise ConfigurationError(f"Sync rule for '{rule.collection}' has no field mappings")
        # model_construct() bypasses the FieldMapping validators
        for mapping in rule.field_mappings:
            validate_flat_name(mapping.field_path, "field path")
            validate_flat_name(mapping.stripe_property, "Stripe property")

        self._rules[rule.collection] = rule
        logger.debug(f"Registered sync rule: {rule.collection} -> {rule.remote_resource_type}")

    def lookup(self, collection: str) -> Optional[SyncRule]:
        """Return the rule registered for the collection, if any."""
        return self._rules.get(collection)

    def bind_webhook(self, event_type: str, handler: Callable) -> None:
        """
        Bind a custom handler to a Stripe event type.

        Raises:
            ConfigurationError: malformed event type, second binding, or non-callable handler
        """
        self._check_mutable()
        validate_event_type(event_type)
        if not callable(handler):
            raise ConfigurationError(f"Webhook handler for '{event_type}' is not callable")
        if event_type in self._bindings:
            raise ConfigurationError(f"Event type '{event_type}' already has a handler")

        self._bindings[event_type] = handler
        logger.debug(f"Bound webhook handler {getattr(handler, '__name__', handler)!r} to {event_type}")

    def rule_for_event(self, event_type: str) -> Optional[SyncRule]:
        """
        Return the rule whose resource a created/updated event belongs to.

        ``customer.updated`` matches the rule whose singular type is
        ``customer``; ``customer.subscription.updated`` matches none.
        """
        resource, action = split_event_type(event_type)
        if action not in (EventAction.CREATED.value, EventAction.UPDATED.value):
            return None
        for rule in self._rules.values():
            if rule.remote_resource_type_singular == resource:
                return rule
        return None

    def get_handler(self, event_type: str) -> Optional[WebhookHandler]:
        return self._bindings.get(event_type)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def rules(self) -> List[SyncRule]:
        return list(self._rules.values())

    @property
    def webhook_bindings(self) -> Dict[str, WebhookHandler]:
        # Copy so callers cannot patch the dispatch table
        return dict(self._bindings)
