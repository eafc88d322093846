"""
Configuration models for collection sync rules and webhook bindings.
"""

import json
import re
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..exceptions import ConfigurationError

# A flat property name: no dot paths, no array indexing.
FLAT_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_\-]*$")
EVENT_TYPE_PATTERN = re.compile(r"^[a-z_]+(\.[a-z_]+)+$")


class EventAction(str, Enum):
    """Actions the engine knows how to apply for a synced resource."""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


def split_event_type(event_type: str) -> tuple:
    """
    Split a Stripe event type into its resource and action parts.

    ``customer.subscription.updated`` -> ``("customer.subscription", "updated")``
    """
    resource, _, action = event_type.rpartition(".")
    return resource, action


def validate_event_type(event_type: str) -> str:
    """Raise ConfigurationError unless the event type is a dotted lowercase name."""
    if not isinstance(event_type, str) or not EVENT_TYPE_PATTERN.match(event_type):
        raise ConfigurationError(f"Invalid webhook event type: {event_type!r}")
    return event_type


def validate_flat_name(name: str, kind: str) -> str:
    """Raise ConfigurationError if the name addresses a nested value."""
    if not isinstance(name, str) or not FLAT_NAME_PATTERN.match(name):
        raise ConfigurationError(
            f"Nested or invalid {kind} {name!r}: only flat top-level properties can be synced. "
            f"Use a custom webhook handler for nested data."
        )
    return name


class FieldMapping(BaseModel):
    """Maps one local document field to one Stripe property."""
    field_path: str = Field(..., description="Top-level field on the local document")
    stripe_property: str = Field(..., description="Top-level property on the Stripe resource")

    @field_validator("field_path")
    @classmethod
    def _flat_field_path(cls, v: str) -> str:
        return validate_flat_name(v, "field path")

    @field_validator("stripe_property")
    @classmethod
    def _flat_stripe_property(cls, v: str) -> str:
        return validate_flat_name(v, "Stripe property")


class SyncRule(BaseModel):
    """
    Declares how one local collection is kept in sync with a Stripe resource.
    """
    model_config = ConfigDict(populate_by_name=True)

    collection: str = Field(..., description="Local collection slug")
    remote_resource_type: str = Field(..., description="Stripe resource type, e.g. 'customers'")
    remote_resource_type_singular: str = Field(..., description="Singular form used in event types, e.g. 'customer'")
    field_mappings: List[FieldMapping] = Field(
        ..., alias="fields", description="Ordered field mappings"
    )

    @field_validator("field_mappings")
    @classmethod
    def _at_least_one_mapping(cls, v: List[FieldMapping]) -> List[FieldMapping]:
        if not v:
            raise ConfigurationError("A sync rule needs at least one field mapping")
        return v

    def event_type(self, action: EventAction) -> str:
        """Event type Stripe sends for this resource, e.g. ``customer.updated``."""
        return f"{self.remote_resource_type_singular}.{action.value}"


class HandlerFactoryReference(BaseModel):
    """Import path of a factory called with ``(connector, config)`` to build a handler."""
    factory: str


# "package.module:attribute" or {"factory": "package.module:attribute"}
HandlerReference = Union[str, HandlerFactoryReference]


class PluginConfig(BaseModel):
    """
    Complete declarative sync configuration.

    Secrets are not part of this model; they are supplied separately to the
    engine so the configuration file can be committed.
    """
    sync: List[SyncRule] = Field(default_factory=list)
    webhooks: Dict[str, HandlerReference] = Field(default_factory=dict)
    logs: bool = Field(False, description="Log every sync operation at info level")
    rest: bool = Field(False, description="Expose the Stripe REST proxy endpoint")
    is_test_key: bool = Field(True, description="Whether the Stripe key is a test-mode key")
    remote_id_field: str = Field("stripe_id", description="Local field holding the Stripe ID")
    skip_sync_field: str = Field("skip_sync", description="Local flag marking engine-originated writes")

    @field_validator("remote_id_field", "skip_sync_field")
    @classmethod
    def _flat_local_fields(cls, v: str) -> str:
        return validate_flat_name(v, "field path")

    @field_validator("webhooks")
    @classmethod
    def _valid_event_types(cls, v: Dict[str, HandlerReference]) -> Dict[str, HandlerReference]:
        for event_type in v:
            validate_event_type(event_type)
        return v

    @classmethod
    def from_dict(cls, data: Dict) -> "PluginConfig":
        """Build a config, reporting schema problems as ConfigurationError."""
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid plugin configuration: {e}") from e

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "PluginConfig":
        """Load a JSON configuration file."""
        config_path = Path(path)
        try:
            data = json.loads(config_path.read_text())
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Could not read plugin configuration {config_path}: {e}") from e
        return cls.from_dict(data)

    def get_rule(self, collection: str) -> Optional[SyncRule]:
        for rule in self.sync:
            if rule.collection == collection:
                return rule
        return None

    def collection_for_resource(self, resource_singular: str) -> Optional[str]:
        """Local collection synced with a Stripe resource, e.g. ``customer`` -> ``customers``."""
        for rule in self.sync:
            if rule.remote_resource_type_singular == resource_singular:
                return rule.collection
        return None
