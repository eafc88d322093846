"""
Stripe webhook signature verification.
"""

import hashlib
import hmac
import json
import logging
import time
from typing import Optional, Union

import stripe

from ..exceptions import MalformedPayloadError, VerificationError
from ..models.config import split_event_type
from ..models.events import SyncEvent

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = stripe.Webhook.DEFAULT_TOLERANCE


def sign(raw_body: Union[bytes, str], secret: str, timestamp: Optional[int] = None) -> str:
    """
    Build a ``Stripe-Signature`` header value for a body.

    Used to replay saved payloads against a local endpoint. The header has
    the ``v1`` scheme that ``stripe.WebhookSignature`` verifies.

    Args:
        raw_body: Request body
        secret: Webhook endpoint secret
        timestamp: Unix timestamp to sign with; defaults to now

    Returns:
        Header value of the form ``t=<timestamp>,v1=<signature>``
    """
    if isinstance(raw_body, str):
        raw_body = raw_body.encode()
    if timestamp is None:
        timestamp = int(time.time())
    signed_payload = f"{timestamp}.".encode() + raw_body
    signature = hmac.new(secret.encode(), signed_payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},{stripe.WebhookSignature.EXPECTED_SCHEME}={signature}"


class WebhookVerifier:
    """
    Verifies webhook signatures and turns verified bodies into SyncEvents.

    Args:
        tolerance: Maximum signature age in seconds; 0 disables the check
    """

    def __init__(self, tolerance: int = DEFAULT_TOLERANCE):
        self.tolerance = tolerance

    def verify(self, raw_body: Union[bytes, str], signature_header: str, secret: str) -> SyncEvent:
        """
        Check a webhook body against its signature header.

        Args:
            raw_body: Exact request body as received
            signature_header: Value of the ``Stripe-Signature`` header
            secret: Webhook endpoint secret

        Returns:
            The parsed event

        Raises:
            VerificationError: the signature is missing, malformed, stale or wrong
            MalformedPayloadError: the signature is valid but the body is not an event
        """
        if not secret:
            raise VerificationError("No webhook secret configured")
        if not signature_header:
            raise VerificationError("Missing signature header")

        if isinstance(raw_body, bytes):
            try:
                payload = raw_body.decode("utf-8")
            except UnicodeDecodeError as e:
                raise VerificationError(f"Webhook body is not UTF-8: {e}") from e
        else:
            payload = raw_body

        try:
            stripe.WebhookSignature.verify_header(payload, signature_header, secret, self.tolerance or None)
        except stripe.SignatureVerificationError as e:
            raise VerificationError(str(e)) from e

        return self.parse_event(payload)

    @staticmethod
    def parse_event(raw_body: Union[bytes, str]) -> SyncEvent:
        """
        Parse a verified body into a SyncEvent.

        Raises:
            MalformedPayloadError: the body is not JSON or not an event envelope
        """
        try:
            data = json.loads(raw_body)
        except (UnicodeDecodeError, ValueError) as e:
            logger.error(f"Verified webhook body is not valid JSON: {e}")
            raise MalformedPayloadError(f"Webhook body is not valid JSON: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("type"), str):
            raise MalformedPayloadError("Webhook body has no event type")
        event_data = data.get("data")
        obj = event_data.get("object") if isinstance(event_data, dict) else None
        if not isinstance(obj, dict):
            raise MalformedPayloadError(f"Event {data.get('id')} has no data.object")

        resource_prefix, _ = split_event_type(data["type"])
        return SyncEvent(
            id=data.get("id"),
            type=data["type"],
            resource_type=obj.get("object") or resource_prefix,
            remote_id=obj.get("id"),
            payload=obj,
            created=data.get("created") if isinstance(data.get("created"), int) else None,
        )
