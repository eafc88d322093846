"""Runtime settings, environment loading and logging setup."""

import os
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Set up logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def load_environment(env_file: Optional[str] = None) -> None:
    """Load environment variables from .env file.

    Args:
        env_file: Path to .env file. If None, looks for .env in current directory.
    """
    env_path = Path(env_file) if env_file else Path('.env')

    if env_path.exists():
        load_dotenv(env_path)
        logger.info(f"Loaded environment from {env_path}")
    else:
        logger.debug(f"No .env file found at {env_path}")


class Settings(BaseModel):
    """Secrets and runtime options, resolved once at the application edge."""
    stripe_secret_key: str = Field("", description="Stripe secret API key")
    stripe_webhooks_endpoint_secret: str = Field("", description="Webhook endpoint signing secret")
    config_path: Optional[str] = Field(None, description="Path of the plugin configuration JSON")
    log_level: str = Field("INFO")
    google_cloud_project: Optional[str] = Field(None)
    signature_tolerance: int = Field(300, description="Maximum webhook signature age in seconds")

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from environment variables."""
        return cls(
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY", ""),
            stripe_webhooks_endpoint_secret=os.getenv("STRIPE_WEBHOOKS_ENDPOINT_SECRET", ""),
            config_path=os.getenv("STRIPESYNC_CONFIG") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            google_cloud_project=os.getenv("GOOGLE_CLOUD_PROJECT") or None,
            signature_tolerance=int(os.getenv("STRIPE_SIGNATURE_TOLERANCE", "300")),
        )

    def with_secret_manager(self, secret_service) -> "Settings":
        """Fill missing Stripe secrets from Secret Manager.

        Environment values win; secrets that cannot be fetched are left empty.
        """
        updates = {}
        try:
            credentials = secret_service.get_stripe_credentials()
        except Exception as e:
            logger.warning(f"Failed to retrieve Stripe credentials from Secret Manager: {e}")
            return self

        for key, value in credentials.items():
            if not getattr(self, key):
                updates[key] = value
        return self.model_copy(update=updates)
