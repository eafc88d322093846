"""
Firestore-backed document store for synced collections.
"""

import logging
from typing import Any, Callable, Dict, Optional

from google.auth import default
from google.cloud import firestore

from ..connectors.base import DocumentStore
from ..exceptions import DocumentStoreError

logger = logging.getLogger(__name__)


class FirestoreDocumentStore(DocumentStore):
    """
    Document store that keeps each synced collection in a Firestore collection.

    Documents are returned as plain dicts with the Firestore document ID under
    ``id``.
    """

    def __init__(self, project_id: Optional[str] = None, client: Optional[firestore.Client] = None):
        """
        Initialize the Firestore store.

        Args:
            project_id: Google Cloud project ID. If None, uses default from environment.
            client: Existing Firestore client to use instead of creating one
        """
        try:
            if client is not None:
                self.db = client
            elif project_id:
                self.db = firestore.Client(project=project_id)
            else:
                # Use application default credentials
                credentials, project = default()
                self.db = firestore.Client(project=project, credentials=credentials)

            logger.info(f"Firestore document store initialized for project: {self.db.project}")

        except Exception as e:
            logger.error(f"Failed to initialize Firestore: {e}")
            raise

    @staticmethod
    def _to_dict(doc) -> Dict[str, Any]:
        data = doc.to_dict() or {}
        data["id"] = doc.id
        return data

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """
        Get a document by ID.

        Args:
            collection: Collection name
            doc_id: Document ID

        Returns:
            Document if found, None otherwise
        """
        try:
            doc = self.db.collection(collection).document(doc_id).get()
            if doc.exists:
                return self._to_dict(doc)
            return None

        except Exception as e:
            logger.error(f"Failed to get {collection}/{doc_id}: {e}")
            raise DocumentStoreError(f"Failed to get {collection}/{doc_id}: {e}") from e

    def create(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a document with a generated ID.

        Args:
            collection: Collection name
            data: Document fields

        Returns:
            Created document including its ID
        """
        try:
            fields = {k: v for k, v in data.items() if k != "id"}
            doc_ref = self.db.collection(collection).document()
            doc_ref.set(fields)

            logger.debug(f"Created {collection}/{doc_ref.id}")
            return {**fields, "id": doc_ref.id}

        except Exception as e:
            logger.error(f"Failed to create document in {collection}: {e}")
            raise DocumentStoreError(f"Failed to create document in {collection}: {e}") from e

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge fields into an existing document.

        Args:
            collection: Collection name
            doc_id: Document ID
            data: Fields to set

        Returns:
            Updated document
        """
        try:
            fields = {k: v for k, v in data.items() if k != "id"}
            doc_ref = self.db.collection(collection).document(doc_id)
            doc_ref.update(fields)

            logger.debug(f"Updated {collection}/{doc_id}")
            return self._to_dict(doc_ref.get())

        except Exception as e:
            logger.error(f"Failed to update {collection}/{doc_id}: {e}")
            raise DocumentStoreError(f"Failed to update {collection}/{doc_id}: {e}") from e

    def modify(self, collection: str, doc_id: str,
               fn: Callable[[Dict[str, Any]], Optional[Dict[str, Any]]]) -> Dict[str, Any]:
        """
        Read-modify-write a document inside a Firestore transaction.

        Firestore retries the transaction when the document changes
        concurrently, so ``fn`` may run more than once.

        Args:
            collection: Collection name
            doc_id: Document ID
            fn: Computes the fields to merge from the current document

        Returns:
            Document after the write
        """
        doc_ref = self.db.collection(collection).document(doc_id)

        @firestore.transactional
        def apply(transaction, ref):
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                raise DocumentStoreError(f"Document {collection}/{doc_id} not found")
            current = self._to_dict(snapshot)
            updates = fn(dict(current))
            if not updates:
                return current
            fields = {k: v for k, v in updates.items() if k != "id"}
            transaction.update(ref, fields)
            return {**current, **fields}

        try:
            result = apply(self.db.transaction(), doc_ref)
            logger.debug(f"Modified {collection}/{doc_id}")
            return result

        except DocumentStoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to modify {collection}/{doc_id}: {e}")
            raise DocumentStoreError(f"Failed to modify {collection}/{doc_id}: {e}") from e

    def find_by_remote_id(self, collection: str, field: str, remote_id: str) -> Optional[Dict[str, Any]]:
        """
        Find the document linked to a Stripe object.

        Args:
            collection: Collection name
            field: Field holding the Stripe ID
            remote_id: Stripe ID to look for

        Returns:
            First matching document, or None
        """
        try:
            query = self.db.collection(collection).where(field, "==", remote_id).limit(1)
            for doc in query.stream():
                return self._to_dict(doc)
            return None

        except Exception as e:
            logger.error(f"Failed to look up {collection} by {field}={remote_id}: {e}")
            raise DocumentStoreError(f"Failed to look up {collection} by {field}={remote_id}: {e}") from e
