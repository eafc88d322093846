"""
In-memory document store for local development and tests.
"""

import copy
import threading
import uuid
from typing import Any, Callable, Dict, Optional

from ..connectors.base import DocumentStore
from ..exceptions import DocumentStoreError


class InMemoryDocumentStore(DocumentStore):
    """Thread-safe dict-of-dicts store. Returned documents are copies."""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def create(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            doc_id = str(data.get("id") or uuid.uuid4().hex)
            if doc_id in docs:
                raise DocumentStoreError(f"Document {collection}/{doc_id} already exists")
            doc = copy.deepcopy(dict(data))
            doc["id"] = doc_id
            docs[doc_id] = doc
            return copy.deepcopy(doc)

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            if doc is None:
                raise DocumentStoreError(f"Document {collection}/{doc_id} not found")
            doc.update(copy.deepcopy({k: v for k, v in data.items() if k != "id"}))
            return copy.deepcopy(doc)

    def modify(self, collection: str, doc_id: str,
               fn: Callable[[Dict[str, Any]], Optional[Dict[str, Any]]]) -> Dict[str, Any]:
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            if doc is None:
                raise DocumentStoreError(f"Document {collection}/{doc_id} not found")
            updates = fn(copy.deepcopy(doc))
            if updates:
                doc.update(copy.deepcopy({k: v for k, v in updates.items() if k != "id"}))
            return copy.deepcopy(doc)

    def find_by_remote_id(self, collection: str, field: str, remote_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            for doc in self._collections.get(collection, {}).values():
                if doc.get(field) == remote_id:
                    return copy.deepcopy(doc)
            return None

    def all(self, collection: str) -> Dict[str, Dict[str, Any]]:
        """Snapshot of every document in a collection, keyed by ID."""
        with self._lock:
            return copy.deepcopy(self._collections.get(collection, {}))
