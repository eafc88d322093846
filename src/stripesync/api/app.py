"""
FastAPI application exposing the Stripe webhook endpoint.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from ..connectors.stripe import StripeConnector
from ..core.config import Settings, load_environment, setup_logging
from ..engine.sync import SyncEngine
from ..exceptions import (
    ConfigurationError, MalformedPayloadError, StripeAPIError, VerificationError
)
from ..integrations.stripe.client import StripeClient, create_client_from_settings
from ..models.config import PluginConfig
from ..services.firestore import FirestoreDocumentStore
from ..services.secrets import SecretManagerService
from ..version import __version__

logger = logging.getLogger(__name__)

# Global services (initialized in lifespan)
settings: Optional[Settings] = None
stripe_client: Optional[StripeClient] = None
sync_engine: Optional[SyncEngine] = None


def build_engine(app_settings: Settings) -> SyncEngine:
    """
    Build the sync engine from settings.

    Raises:
        ConfigurationError: if the plugin configuration is missing or invalid
    """
    global stripe_client

    if not app_settings.config_path:
        raise ConfigurationError("STRIPESYNC_CONFIG is not set")
    config = PluginConfig.from_file(app_settings.config_path)

    stripe_client = create_client_from_settings(app_settings)
    connector = StripeConnector(stripe_client, is_test_key=config.is_test_key)
    store = FirestoreDocumentStore(project_id=app_settings.google_cloud_project)

    return SyncEngine(
        config,
        connector,
        store,
        webhook_secret=app_settings.stripe_webhooks_endpoint_secret,
        signature_tolerance=app_settings.signature_tolerance,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global settings, sync_engine

    load_environment()
    settings = Settings.from_env()
    setup_logging(settings.log_level)

    if settings.google_cloud_project:
        try:
            settings = settings.with_secret_manager(SecretManagerService(settings.google_cloud_project))
            logger.info("Secret Manager service initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize Secret Manager service: {e}")

    # A broken mapping table must stop startup
    sync_engine = build_engine(settings)
    logger.info("Application startup complete")

    yield

    logger.info("Application shutdown")


app = FastAPI(
    title="stripesync",
    description="Keeps local collections and Stripe resources in sync",
    version=__version__,
    lifespan=lifespan
)


# Dependency injection
def get_sync_engine() -> SyncEngine:
    if sync_engine is None:
        raise HTTPException(status_code=500, detail="Sync engine not initialized")
    return sync_engine


def get_stripe_client() -> StripeClient:
    if stripe_client is None:
        raise HTTPException(status_code=500, detail="Stripe client not initialized")
    return stripe_client


class RestRequest(BaseModel):
    """A Stripe API call proxied through the REST endpoint."""
    method: str = Field("GET", pattern="^(GET|POST|DELETE)$")
    path: str = Field(..., description="Path under /v1, e.g. 'customers/cus_123'")
    params: Dict[str, Any] = Field(default_factory=dict)


@app.get("/health")
async def health_check():
    """Check the health of the application and its services."""
    return {
        "status": "healthy",
        "version": __version__,
        "services": {
            "sync_engine": sync_engine is not None,
            "stripe": stripe_client is not None,
        }
    }


@app.post("/api/v1/stripe/webhooks")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    engine: SyncEngine = Depends(get_sync_engine)
):
    """
    Receive a Stripe webhook.

    Returns 400 when the signature or body is bad. Once the signature checks
    out the response is 200 even if a handler failed, so Stripe does not retry
    an event that failed on our side.
    """
    payload = await request.body()

    try:
        result = await run_in_threadpool(engine.process_webhook, payload, stripe_signature or "")
    except VerificationError as e:
        logger.warning(f"Rejected webhook: {e}")
        raise HTTPException(status_code=400, detail=f"Webhook signature verification failed: {e}")
    except MalformedPayloadError as e:
        logger.error(f"Verified webhook with malformed body: {e}")
        raise HTTPException(status_code=400, detail=f"Malformed webhook payload: {e}")
    except ConfigurationError as e:
        logger.error(f"Webhook endpoint misconfigured: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return {"received": True, **result.get_summary()}


@app.get("/api/v1/stripe/rules")
async def list_rules(engine: SyncEngine = Depends(get_sync_engine)):
    """List the configured sync rules and custom webhook handlers."""
    return {
        "rules": [rule.model_dump() for rule in engine.registry.rules],
        "webhooks": sorted(engine.registry.webhook_bindings.keys()),
    }


@app.post("/api/v1/collections/{collection}/documents/{doc_id}/sync")
def sync_document(
    collection: str,
    doc_id: str,
    engine: SyncEngine = Depends(get_sync_engine)
):
    """Push one stored document to Stripe."""
    if engine.registry.lookup(collection) is None:
        raise HTTPException(status_code=404, detail=f"Collection '{collection}' is not synced")

    result = engine.sync_document(collection, doc_id, force=True)
    if not result.ok:
        raise HTTPException(status_code=502, detail=result.message)
    return result.get_summary()


@app.post("/api/v1/stripe/rest")
def stripe_rest(
    call: RestRequest,
    engine: SyncEngine = Depends(get_sync_engine),
    client: StripeClient = Depends(get_stripe_client)
):
    """Proxy a call to the Stripe API. Disabled unless the config enables ``rest``."""
    if not engine.config.rest:
        raise HTTPException(status_code=404, detail="Stripe REST proxy is disabled")
    try:
        return client.request(call.method, call.path, call.params)
    except StripeAPIError as e:
        raise HTTPException(status_code=e.status_code or 502, detail=str(e))
