"""
Outbound sync: pushes local document writes to Stripe.
"""

import logging
from typing import Any, Dict, Optional

from ..connectors.base import DocumentStore, RemoteConnector
from ..exceptions import RemoteSyncError
from ..models.config import SyncRule
from ..models.sync import OutboundResult, SyncStatus
from .registry import SyncRegistry
from .transforms import FieldMapper

logger = logging.getLogger(__name__)


class OutboundSyncDispatcher:
    """
    Creates or updates the Stripe resource behind a local document.

    ``dispatch`` is meant to run as a before-change hook: it returns the data
    the host should persist, with the Stripe ID filled in after a create.
    ``sync_document`` is the after-change variant that reads and writes the
    store itself.

    Args:
        registry: Frozen sync registry
        connector: Remote API connector
        store: Local document store, needed only by ``sync_document``
        remote_id_field: Local field holding the Stripe ID
        skip_sync_field: Flag marking writes that came from the engine
        logs: Log every push at info level
    """

    def __init__(
        self,
        registry: SyncRegistry,
        connector: RemoteConnector,
        store: Optional[DocumentStore] = None,
        remote_id_field: str = "stripe_id",
        skip_sync_field: str = "skip_sync",
        logs: bool = False,
    ):
        self.registry = registry
        self.connector = connector
        self.store = store
        self.remote_id_field = remote_id_field
        self.skip_sync_field = skip_sync_field
        self.logs = logs

    def dispatch(self, collection: str, data: Dict[str, Any]) -> OutboundResult:
        """
        Push a local create/update to Stripe.

        Args:
            collection: Collection the document belongs to
            data: Document data about to be written

        Returns:
            OutboundResult; on failure ``data`` is returned without a new
            Stripe ID and ``error`` holds the RemoteSyncError
        """
        data = dict(data)
        rule = self.registry.lookup(collection)
        if rule is None:
            return OutboundResult(status=SyncStatus.SKIPPED, collection=collection, data=data,
                                  message="Collection is not synced")

        if data.pop(self.skip_sync_field, False):
            logger.debug(f"Skipping outbound sync of {collection} write made by the sync engine")
            return OutboundResult(status=SyncStatus.SKIPPED, collection=collection, data=data,
                                  remote_id=data.get(self.remote_id_field),
                                  message="Write originated from Stripe")

        payload = FieldMapper.to_remote(data, rule.field_mappings)
        remote_id = data.get(self.remote_id_field)

        try:
            if remote_id:
                self._update(rule, remote_id, payload)
                status = SyncStatus.UPDATED
            else:
                remote_id = self._create(rule, payload)
                data[self.remote_id_field] = remote_id
                status = SyncStatus.CREATED
        except RemoteSyncError as e:
            logger.error(f"Outbound sync of {collection} to {rule.remote_resource_type} failed: {e}")
            return OutboundResult(status=SyncStatus.FAILED, collection=collection, data=data,
                                  remote_id=remote_id, payload=payload, message=str(e), error=e)

        return OutboundResult(status=status, collection=collection, data=data,
                              remote_id=remote_id, payload=payload)

    def _create(self, rule: SyncRule, payload: Dict[str, Any]) -> str:
        try:
            resource = self.connector.create(rule.remote_resource_type, payload)
        except RemoteSyncError:
            raise
        except Exception as e:
            raise RemoteSyncError(str(e), resource_type=rule.remote_resource_type) from e

        remote_id = (resource or {}).get("id")
        if not remote_id:
            raise RemoteSyncError(f"Stripe returned no id for new {rule.remote_resource_type_singular}",
                                  resource_type=rule.remote_resource_type)
        if self.logs:
            logger.info(f"Created {rule.remote_resource_type_singular} {remote_id} for {rule.collection}")
        return remote_id

    def _update(self, rule: SyncRule, remote_id: str, payload: Dict[str, Any]) -> None:
        try:
            self.connector.update(rule.remote_resource_type, remote_id, payload)
        except RemoteSyncError:
            raise
        except Exception as e:
            raise RemoteSyncError(str(e), resource_type=rule.remote_resource_type, remote_id=remote_id) from e
        if self.logs:
            logger.info(f"Updated {rule.remote_resource_type_singular} {remote_id} from {rule.collection}")

    def sync_document(self, collection: str, doc_id: str, force: bool = False) -> OutboundResult:
        """
        Push a stored document to Stripe and link a newly created resource.

        The skip flag stays on documents the engine wrote, so a plain call
        after an engine write is skipped. Hosts clear the flag on user writes.

        Args:
            collection: Collection the document belongs to
            doc_id: Local document ID
            force: Push even if the stored document carries the skip flag

        Returns:
            OutboundResult of the push
        """
        if self.store is None:
            raise RuntimeError("sync_document needs a document store")

        doc = self.store.get(collection, doc_id)
        if doc is None:
            return OutboundResult(status=SyncStatus.SKIPPED, collection=collection,
                                  message=f"Document {doc_id} not found")
        if force:
            doc.pop(self.skip_sync_field, None)

        result = self.dispatch(collection, doc)
        if result.status != SyncStatus.CREATED:
            return result

        try:
            self.store.update(collection, doc_id, {
                self.remote_id_field: result.remote_id,
                self.skip_sync_field: True,
            })
        except Exception as e:
            # The Stripe resource exists but nothing points at it
            singular = self.registry.lookup(collection).remote_resource_type_singular
            logger.error(
                f"Orphaned Stripe {singular} {result.remote_id}: "
                f"created for {collection}/{doc_id} but linking it failed: {e}"
            )
            error = RemoteSyncError(f"Created {result.remote_id} but could not store it on {doc_id}: {e}",
                                    remote_id=result.remote_id)
            result.status = SyncStatus.FAILED
            result.message = str(error)
            result.error = error
        return result

    def dispatch_delete(self, collection: str, doc: Dict[str, Any]) -> OutboundResult:
        """
        Delete the Stripe resource behind a deleted local document.

        Args:
            collection: Collection the document belonged to
            doc: The deleted document

        Returns:
            OutboundResult of the delete
        """
        rule = self.registry.lookup(collection)
        remote_id = doc.get(self.remote_id_field)
        if rule is None or not remote_id:
            return OutboundResult(status=SyncStatus.SKIPPED, collection=collection, data=dict(doc),
                                  message="Nothing to delete in Stripe")

        try:
            self.connector.delete(rule.remote_resource_type, remote_id)
        except Exception as e:
            error = e if isinstance(e, RemoteSyncError) else RemoteSyncError(
                str(e), resource_type=rule.remote_resource_type, remote_id=remote_id)
            logger.error(f"Deleting {rule.remote_resource_type_singular} {remote_id} failed: {error}")
            return OutboundResult(status=SyncStatus.FAILED, collection=collection, data=dict(doc),
                                  remote_id=remote_id, message=str(error), error=error)

        if self.logs:
            logger.info(f"Deleted {rule.remote_resource_type_singular} {remote_id} for {collection}")
        return OutboundResult(status=SyncStatus.DELETED, collection=collection, data=dict(doc),
                              remote_id=remote_id)
