"""Command line interface for stripesync."""

import json
import sys
from typing import Optional

import click
import uvicorn

from .config import Settings, load_environment, setup_logging
from ..connectors.stripe import StripeConnector
from ..engine.sync import SyncEngine
from ..engine.webhooks import WebhookVerifier, sign
from ..exceptions import ConfigurationError, MalformedPayloadError, StripeSyncException, VerificationError
from ..integrations.stripe.client import create_client_from_settings
from ..models.config import PluginConfig
from ..services.firestore import FirestoreDocumentStore


@click.group()
@click.option('--log-level', default='INFO', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Set the logging level')
@click.option('--env-file', type=click.Path(exists=True), help='Path to .env file')
def cli(log_level: str, env_file: Optional[str]) -> None:
    """Stripe collection sync tool."""
    setup_logging(log_level)
    load_environment(env_file)


def _load_config(config_path: Optional[str]) -> PluginConfig:
    path = config_path or Settings.from_env().config_path
    if not path:
        raise click.UsageError("Pass --config or set STRIPESYNC_CONFIG")
    return PluginConfig.from_file(path)


@cli.command()
@click.option('--config', 'config_path', type=click.Path(exists=True), help='Plugin configuration JSON')
@click.option('--output', type=click.Choice(['table', 'json']), default='table', help='Output format')
def rules(config_path: Optional[str], output: str) -> None:
    """Show the configured sync rules and webhook handlers."""
    try:
        config = _load_config(config_path)
    except ConfigurationError as e:
        click.echo(f"Configuration Error: {e}", err=True)
        sys.exit(1)

    if output == 'json':
        click.echo(config.model_dump_json(indent=2, by_alias=True))
        return

    click.echo(f"{'Collection':<20} {'Resource':<15} {'Field':<20} {'Stripe property':<20}")
    click.echo("-" * 78)
    for rule in config.sync:
        for mapping in rule.field_mappings:
            click.echo(f"{rule.collection:<20} {rule.remote_resource_type:<15} "
                       f"{mapping.field_path:<20} {mapping.stripe_property:<20}")
    if config.webhooks:
        click.echo("\nWebhook handlers:")
        for event_type, reference in sorted(config.webhooks.items()):
            target = reference if isinstance(reference, str) else f"{reference.factory} (factory)"
            click.echo(f"  {event_type:<35} {target}")


@cli.command('sign')
@click.argument('payload_file', type=click.File('rb'))
@click.option('--secret', envvar='STRIPE_WEBHOOKS_ENDPOINT_SECRET', required=True,
              help='Webhook endpoint secret (defaults to STRIPE_WEBHOOKS_ENDPOINT_SECRET)')
@click.option('--timestamp', type=int, help='Unix timestamp to sign with (defaults to now)')
def sign_payload(payload_file, secret: str, timestamp: Optional[int]) -> None:
    """Print a Stripe-Signature header for a payload file."""
    click.echo(sign(payload_file.read(), secret, timestamp))


@cli.command()
@click.argument('payload_file', type=click.File('rb'))
@click.option('--signature', required=True, help='Stripe-Signature header value')
@click.option('--secret', envvar='STRIPE_WEBHOOKS_ENDPOINT_SECRET', required=True,
              help='Webhook endpoint secret (defaults to STRIPE_WEBHOOKS_ENDPOINT_SECRET)')
@click.option('--tolerance', type=int, default=0, help='Maximum signature age in seconds (0 disables)')
def verify(payload_file, signature: str, secret: str, tolerance: int) -> None:
    """Verify a webhook payload file against its signature."""
    try:
        event = WebhookVerifier(tolerance=tolerance).verify(payload_file.read(), signature, secret)
    except VerificationError as e:
        click.echo(f"Verification failed: {e}", err=True)
        sys.exit(1)
    except MalformedPayloadError as e:
        click.echo(f"Signature valid but payload malformed: {e}", err=True)
        sys.exit(2)

    click.echo(json.dumps({
        "id": event.id,
        "type": event.type,
        "resource_type": event.resource_type,
        "remote_id": event.remote_id,
    }, indent=2))


@cli.command('sync-document')
@click.argument('collection')
@click.argument('doc_id')
@click.option('--config', 'config_path', type=click.Path(exists=True), help='Plugin configuration JSON')
@click.option('--project', envvar='GOOGLE_CLOUD_PROJECT', help='Google Cloud project of the Firestore database')
def sync_document(collection: str, doc_id: str, config_path: Optional[str], project: Optional[str]) -> None:
    """Push one Firestore document to Stripe."""
    try:
        settings = Settings.from_env()
        config = _load_config(config_path)
        connector = StripeConnector(create_client_from_settings(settings), is_test_key=config.is_test_key)
        engine = SyncEngine(config, connector, FirestoreDocumentStore(project_id=project))

        if engine.registry.lookup(collection) is None:
            click.echo(f"Collection '{collection}' has no sync rule", err=True)
            sys.exit(1)

        result = engine.sync_document(collection, doc_id, force=True)
        click.echo(json.dumps(result.get_summary(), indent=2))
        if not result.ok:
            sys.exit(1)
        if result.remote_id:
            click.echo(connector.dashboard_url(engine.registry.lookup(collection).remote_resource_type,
                                               result.remote_id))

    except (ConfigurationError, ValueError) as e:
        click.echo(f"Configuration Error: {e}", err=True)
        sys.exit(1)
    except StripeSyncException as e:
        click.echo(f"Sync Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option('--host', default='0.0.0.0', help='Interface to bind')
@click.option('--port', default=8000, type=int, help='Port to listen on')
def serve(host: str, port: int) -> None:
    """Run the webhook API server."""
    uvicorn.run("stripesync.api.app:app", host=host, port=port)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
