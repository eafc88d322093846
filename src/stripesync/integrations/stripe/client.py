"""Stripe API client."""

import logging
from typing import Any, Dict, Optional

import requests
import stripe
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ...exceptions import StripeAPIError
from ...version import __version__

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


def _to_dict(obj: Any) -> Dict[str, Any]:
    return obj.to_dict() if isinstance(obj, stripe.StripeObject) else obj


class StripeClient:
    """Client for the Stripe v1 API, built on the ``stripe`` SDK."""

    def __init__(self, api_key: str, timeout: int = DEFAULT_TIMEOUT,
                 sdk_client: Optional[stripe.StripeClient] = None):
        """Initialize the Stripe client.

        Args:
            api_key: Stripe secret key (sk_test_... or sk_live_...)
            timeout: Request timeout in seconds
            sdk_client: Existing SDK client to use instead of creating one
        """
        if not api_key:
            raise ValueError("A Stripe secret key is required")

        self.api_key = api_key
        self.timeout = timeout

        if sdk_client is None:
            # Retry only idempotent methods; a retried POST could create duplicates
            session = requests.Session()
            retry_strategy = Retry(
                total=3,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["GET", "DELETE"],
                backoff_factor=1
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
            session.headers.update({'User-Agent': f'stripesync/{__version__}'})

            sdk_client = stripe.StripeClient(
                api_key,
                http_client=stripe.RequestsClient(timeout=timeout, session=session),
                max_network_retries=0,
            )
        self.sdk = sdk_client

    @property
    def is_test_key(self) -> bool:
        return self.api_key.startswith(("sk_test_", "rk_test_"))

    def _service(self, resource_type: str):
        service = getattr(self.sdk, resource_type, None)
        if service is None:
            raise StripeAPIError(f"Unsupported Stripe resource type: {resource_type}")
        return service

    def _call(self, description: str, func, *args, **kwargs) -> Dict[str, Any]:
        """Run an SDK call, mapping SDK errors to StripeAPIError."""
        try:
            logger.debug(f"Stripe request: {description}")
            return _to_dict(func(*args, **kwargs))
        except stripe.StripeError as e:
            logger.error(f"Stripe API request failed ({description}): {e}")
            error = getattr(e, "error", None)
            raise StripeAPIError(
                f"API Error: {e.user_message or e}",
                status_code=e.http_status,
                error_type=getattr(error, "type", None),
            ) from e

    def request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Call an arbitrary Stripe endpoint under ``/v1``."""
        endpoint = path if path.startswith("/v1/") else f"/v1/{path.lstrip('/')}"
        response = self._call(f"{method.upper()} {endpoint}", self.sdk.raw_request,
                              method.lower(), endpoint, **(params or {}))
        return _to_dict(self.sdk.deserialize(response, api_mode="V1"))

    def create(self, resource_type: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create a resource, e.g. ``create("customers", {"name": "Acme"})``.

        ``None`` values are left out of the request.
        """
        params = {k: v for k, v in payload.items() if v is not None}
        return self._call(f"create {resource_type}", self._service(resource_type).create, params=params)

    def update(self, resource_type: str, resource_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Update a resource by ID.

        ``None`` values are sent as ``""``, which Stripe treats as unsetting
        the property.
        """
        params = {k: "" if v is None else v for k, v in payload.items()}
        return self._call(f"update {resource_type}/{resource_id}", self._service(resource_type).update,
                          resource_id, params=params)

    def retrieve(self, resource_type: str, resource_id: str) -> Dict[str, Any]:
        """Retrieve a resource by ID."""
        return self._call(f"retrieve {resource_type}/{resource_id}", self._service(resource_type).retrieve,
                          resource_id)

    def delete(self, resource_type: str, resource_id: str) -> Dict[str, Any]:
        """Delete a resource by ID."""
        return self._call(f"delete {resource_type}/{resource_id}", self._service(resource_type).delete,
                          resource_id)


def create_client_from_settings(settings) -> StripeClient:
    """Create a Stripe client from application settings.

    Args:
        settings: Settings carrying ``stripe_secret_key``

    Returns:
        Configured Stripe client

    Raises:
        ValueError: If no secret key is configured
    """
    if not settings.stripe_secret_key:
        raise ValueError("STRIPE_SECRET_KEY is not configured")
    return StripeClient(api_key=settings.stripe_secret_key)
