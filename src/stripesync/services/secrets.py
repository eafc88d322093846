"""
Secret Manager service for retrieving the Stripe credentials.
"""

import logging
from typing import Dict, Optional

from google.cloud import secretmanager

logger = logging.getLogger(__name__)

STRIPE_SECRET_KEY_SECRET = "stripe-secret-key"
STRIPE_WEBHOOK_SECRET_SECRET = "stripe-webhooks-endpoint-secret"


class SecretManagerService:
    """Service for retrieving secrets from Google Secret Manager."""

    def __init__(self, project_id: str, client: Optional[secretmanager.SecretManagerServiceClient] = None):
        """Initialize Secret Manager service."""
        if not project_id:
            raise ValueError("A Google Cloud project ID is required for Secret Manager")

        self.project_id = project_id
        self.client = client or secretmanager.SecretManagerServiceClient()
        self._cache: Dict[str, str] = {}

    def get_secret(self, secret_name: str, version: str = "latest") -> str:
        """Retrieve a secret value from Secret Manager."""
        cache_key = f"{secret_name}:{version}"

        if cache_key in self._cache:
            return self._cache[cache_key]

        try:
            secret_path = f"projects/{self.project_id}/secrets/{secret_name}/versions/{version}"
            response = self.client.access_secret_version(request={"name": secret_path})
            secret_value = response.payload.data.decode("UTF-8")

            self._cache[cache_key] = secret_value
            logger.info(f"Retrieved secret: {secret_name}")
            return secret_value

        except Exception as e:
            logger.error(f"Failed to retrieve secret {secret_name}: {e}")
            raise

    def get_stripe_credentials(self) -> Dict[str, str]:
        """Get the Stripe secret key and webhook endpoint secret."""
        return {
            "stripe_secret_key": self.get_secret(STRIPE_SECRET_KEY_SECRET),
            "stripe_webhooks_endpoint_secret": self.get_secret(STRIPE_WEBHOOK_SECRET_SECRET),
        }
