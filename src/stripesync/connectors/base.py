"""
Collaborator interfaces the sync engine talks to.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional


class RemoteConnector(ABC):
    """
    Abstract base class for the remote payment-provider API.

    Implementations must raise RemoteSyncError for every failure so the
    engine can report it against the originating write.
    """

    @abstractmethod
    def create(self, resource_type: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create a resource and return it (including its ``id``)."""
        pass

    @abstractmethod
    def update(self, resource_type: str, remote_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Update a resource by ID and return it."""
        pass

    @abstractmethod
    def delete(self, resource_type: str, remote_id: str) -> Dict[str, Any]:
        """Delete a resource by ID."""
        pass

    @abstractmethod
    def retrieve(self, resource_type: str, remote_id: str) -> Dict[str, Any]:
        """Fetch a resource by ID."""
        pass


class DocumentStore(ABC):
    """
    Abstract base class for the local document store.

    Only single-document operations are used. ``find_by_remote_id`` is the one
    lookup not keyed by local ID; stores should index the remote ID field.
    """

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return the document or None."""
        pass

    @abstractmethod
    def create(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a document and return it with its ``id``."""
        pass

    @abstractmethod
    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Merge ``data`` into an existing document and return the result."""
        pass

    @abstractmethod
    def modify(self, collection: str, doc_id: str,
               fn: Callable[[Dict[str, Any]], Optional[Dict[str, Any]]]) -> Dict[str, Any]:
        """
        Atomically read a document, compute changes from it, and write them.

        ``fn`` gets the current document and returns the fields to merge, or
        None to leave it unchanged. No other write to the document may land
        between the read and the write.
        """
        pass

    @abstractmethod
    def find_by_remote_id(self, collection: str, field: str, remote_id: str) -> Optional[Dict[str, Any]]:
        """Return the document whose ``field`` equals ``remote_id``, or None."""
        pass


# Signature of an inbound webhook handler: handler(payload, store)
WebhookHandler = Callable[[Dict[str, Any], DocumentStore], Any]
