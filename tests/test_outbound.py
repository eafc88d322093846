# tests/test_outbound.py
# Outbound sync tests

import pytest

from stripesync.exceptions import DocumentStoreError, RemoteSyncError
from stripesync.models.sync import SyncStatus


class TestDispatch:
    """Before-change hook behaviour"""

    def test_create_pushes_mapped_fields_and_sets_id(self, engine, connector):
        data = {"name": "Acme", "email": "a@acme.test", "internalNotes": "secret"}

        result = engine.dispatch("customers", data)

        assert result.status == SyncStatus.CREATED
        assert connector.calls == [("create", "customers", None, {"name": "Acme", "email": "a@acme.test"})]
        assert result.remote_id == "cus_1"
        assert result.data["stripe_id"] == "cus_1"
        assert result.data["internalNotes"] == "secret"
        assert "stripe_id" not in data

    def test_update_targets_existing_id(self, engine, connector):
        result = engine.dispatch("customers", {"name": "Acme", "stripe_id": "cus_9"})

        assert result.status == SyncStatus.UPDATED
        assert connector.calls == [("update", "customers", "cus_9", {"name": "Acme"})]

    def test_absent_fields_are_not_cleared(self, engine, connector):
        engine.dispatch("customers", {"name": "Acme", "stripe_id": "cus_9"})

        assert "email" not in connector.calls[0][3]

    def test_unsynced_collection_is_skipped(self, engine, connector):
        result = engine.dispatch("orders", {"total": 5})

        assert result.status == SyncStatus.SKIPPED
        assert connector.calls == []

    def test_skip_flag_is_consumed(self, engine, connector):
        result = engine.dispatch("customers", {"name": "Acme", "stripe_id": "cus_1", "skip_sync": True})

        assert result.status == SyncStatus.SKIPPED
        assert "skip_sync" not in result.data
        assert connector.calls == []

    def test_remote_failure_returns_failed_without_id(self, engine, connector):
        connector.fail_with = "card_declined"

        result = engine.dispatch("customers", {"name": "Acme"})

        assert result.status == SyncStatus.FAILED
        assert not result.ok
        assert isinstance(result.error, RemoteSyncError)
        assert "stripe_id" not in result.data

    def test_unexpected_connector_error_is_wrapped(self, engine, connector, monkeypatch):
        def broken(resource_type, payload):
            raise ConnectionError("network down")

        monkeypatch.setattr(connector, "create", broken)

        result = engine.dispatch("customers", {"name": "Acme"})

        assert result.status == SyncStatus.FAILED
        assert result.error.resource_type == "customers"

    def test_create_without_returned_id_fails(self, engine, connector, monkeypatch):
        monkeypatch.setattr(connector, "create", lambda resource_type, payload: {})

        result = engine.dispatch("customers", {"name": "Acme"})

        assert result.status == SyncStatus.FAILED


class TestSyncDocument:
    """After-change hook behaviour"""

    def test_create_links_document(self, engine, store, connector):
        store.create("customers", {"id": "c1", "name": "Acme"})

        result = engine.sync_document("customers", "c1")

        assert result.status == SyncStatus.CREATED
        doc = store.get("customers", "c1")
        assert doc["stripe_id"] == result.remote_id
        assert doc["skip_sync"] is True

    def test_link_write_does_not_echo(self, engine, store, connector):
        store.create("customers", {"id": "c1", "name": "Acme"})
        engine.sync_document("customers", "c1")

        result = engine.sync_document("customers", "c1")

        assert result.status == SyncStatus.SKIPPED
        assert len(connector.calls) == 1

    def test_force_pushes_flagged_document(self, engine, store, connector):
        store.create("customers", {"id": "c1", "name": "Acme", "stripe_id": "cus_5", "skip_sync": True})

        result = engine.sync_document("customers", "c1", force=True)

        assert result.status == SyncStatus.UPDATED
        assert connector.calls == [("update", "customers", "cus_5", {"name": "Acme"})]

    def test_missing_document(self, engine):
        assert engine.sync_document("customers", "nope").status == SyncStatus.SKIPPED

    def test_update_leaves_document_untouched(self, engine, store, connector):
        store.create("customers", {"id": "c1", "name": "Acme", "stripe_id": "cus_5"})

        result = engine.sync_document("customers", "c1")

        assert result.status == SyncStatus.UPDATED
        assert store.get("customers", "c1") == {"id": "c1", "name": "Acme", "stripe_id": "cus_5"}

    def test_failed_link_reports_orphan(self, engine, store, connector, monkeypatch, caplog):
        store.create("customers", {"id": "c1", "name": "Acme"})

        def refuse(collection, doc_id, data):
            raise DocumentStoreError("write conflict")

        monkeypatch.setattr(store, "update", refuse)

        with caplog.at_level("ERROR"):
            result = engine.sync_document("customers", "c1")

        assert result.status == SyncStatus.FAILED
        assert result.remote_id == "cus_1"
        assert "Orphaned Stripe customer cus_1" in caplog.text

    def test_needs_store(self, engine):
        engine.outbound.store = None

        with pytest.raises(RuntimeError):
            engine.sync_document("customers", "c1")


class TestDispatchDelete:

    def test_deletes_remote_resource(self, engine, connector):
        result = engine.dispatch_delete("customers", {"id": "c1", "stripe_id": "cus_3"})

        assert result.status == SyncStatus.DELETED
        assert connector.calls == [("delete", "customers", "cus_3", {})]

    def test_unlinked_document_is_skipped(self, engine, connector):
        assert engine.dispatch_delete("customers", {"id": "c1"}).status == SyncStatus.SKIPPED
        assert connector.calls == []

    def test_delete_failure(self, engine, connector):
        connector.fail_with = "resource_missing"

        result = engine.dispatch_delete("products", {"id": "p1", "stripe_id": "prod_3"})

        assert result.status == SyncStatus.FAILED
        assert result.error.remote_id == "prod_3"
