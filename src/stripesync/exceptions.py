"""
Custom exceptions for the stripesync engine.
"""

from typing import Optional


class StripeSyncException(Exception):
    """Base exception for all application-specific errors."""
    pass


class ConfigurationError(StripeSyncException):
    """Invalid sync rule, field mapping or webhook binding."""
    pass


class VerificationError(StripeSyncException):
    """Webhook signature is missing, malformed or does not match."""
    pass


class MalformedPayloadError(StripeSyncException):
    """Webhook body passed verification but is not a readable event."""
    pass


class DocumentStoreError(StripeSyncException):
    """Error raised by a local document store."""
    pass


class StripeAPIError(StripeSyncException):
    """Exception raised for Stripe API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, error_type: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type


class RemoteSyncError(StripeSyncException):
    """An outbound call to the remote API failed."""

    def __init__(self, message: str, resource_type: Optional[str] = None, remote_id: Optional[str] = None):
        super().__init__(message)
        self.resource_type = resource_type
        self.remote_id = remote_id


class SyncHandlerError(StripeSyncException):
    """An inbound webhook handler raised while applying an event."""

    def __init__(self, message: str, event_type: str, remote_id: Optional[str] = None):
        super().__init__(message)
        self.event_type = event_type
        self.remote_id = remote_id
