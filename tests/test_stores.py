# tests/test_stores.py
# Document store tests

import threading
from unittest.mock import MagicMock

import pytest

from stripesync.exceptions import DocumentStoreError
from stripesync.services import firestore as firestore_store
from stripesync.services.firestore import FirestoreDocumentStore
from stripesync.services.memory import InMemoryDocumentStore


def snapshot(doc_id, data, exists=True):
    doc = MagicMock()
    doc.id = doc_id
    doc.exists = exists
    doc.to_dict.return_value = dict(data) if exists else None
    return doc


class TestInMemoryDocumentStore:

    def test_create_and_get(self):
        store = InMemoryDocumentStore()

        created = store.create("customers", {"name": "Acme"})

        assert store.get("customers", created["id"]) == created

    def test_returned_documents_are_copies(self):
        store = InMemoryDocumentStore()
        created = store.create("customers", {"id": "c1", "tags": ["a"]})

        created["tags"].append("b")

        assert store.get("customers", "c1")["tags"] == ["a"]

    def test_duplicate_id(self):
        store = InMemoryDocumentStore()
        store.create("customers", {"id": "c1"})

        with pytest.raises(DocumentStoreError):
            store.create("customers", {"id": "c1"})

    def test_update_missing(self):
        with pytest.raises(DocumentStoreError):
            InMemoryDocumentStore().update("customers", "nope", {"name": "x"})

    def test_find_by_remote_id(self):
        store = InMemoryDocumentStore()
        store.create("customers", {"id": "c1", "stripe_id": "cus_1"})
        store.create("customers", {"id": "c2", "stripe_id": "cus_2"})

        assert store.find_by_remote_id("customers", "stripe_id", "cus_2")["id"] == "c2"
        assert store.find_by_remote_id("customers", "stripe_id", "cus_3") is None

    def test_modify_merges_computed_fields(self):
        store = InMemoryDocumentStore()
        store.create("customers", {"id": "c1", "tags": ["a"]})

        updated = store.modify("customers", "c1", lambda doc: {"tags": doc["tags"] + ["b"]})

        assert updated["tags"] == ["a", "b"]
        assert store.get("customers", "c1")["tags"] == ["a", "b"]

    def test_modify_without_changes(self):
        store = InMemoryDocumentStore()
        store.create("customers", {"id": "c1", "name": "Acme"})

        assert store.modify("customers", "c1", lambda doc: None) == {"id": "c1", "name": "Acme"}

    def test_modify_missing(self):
        with pytest.raises(DocumentStoreError):
            InMemoryDocumentStore().modify("customers", "nope", lambda doc: {"name": "x"})

    def test_concurrent_modify_keeps_every_change(self):
        store = InMemoryDocumentStore()
        store.create("customers", {"id": "c1", "tags": []})

        def add(tag):
            store.modify("customers", "c1", lambda doc: {"tags": doc["tags"] + [tag]})

        threads = [threading.Thread(target=add, args=(f"t{n}",)) for n in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(5)

        assert sorted(store.get("customers", "c1")["tags"]) == sorted(f"t{n}" for n in range(10))


class TestFirestoreDocumentStore:

    @pytest.fixture
    def db(self):
        client = MagicMock()
        client.project = "test-project"
        return client

    def test_get(self, db):
        db.collection.return_value.document.return_value.get.return_value = snapshot("c1", {"name": "Acme"})

        doc = FirestoreDocumentStore(client=db).get("customers", "c1")

        assert doc == {"id": "c1", "name": "Acme"}
        db.collection.assert_called_with("customers")

    def test_get_missing(self, db):
        db.collection.return_value.document.return_value.get.return_value = snapshot("c1", {}, exists=False)

        assert FirestoreDocumentStore(client=db).get("customers", "c1") is None

    def test_create_uses_generated_id(self, db):
        doc_ref = db.collection.return_value.document.return_value
        doc_ref.id = "generated"

        created = FirestoreDocumentStore(client=db).create("customers", {"id": "ignored", "name": "Acme"})

        assert created == {"id": "generated", "name": "Acme"}
        doc_ref.set.assert_called_once_with({"name": "Acme"})

    def test_find_by_remote_id(self, db):
        query = db.collection.return_value.where.return_value.limit.return_value
        query.stream.return_value = iter([snapshot("c1", {"stripe_id": "cus_1"})])

        doc = FirestoreDocumentStore(client=db).find_by_remote_id("customers", "stripe_id", "cus_1")

        assert doc["id"] == "c1"
        db.collection.return_value.where.assert_called_once_with("stripe_id", "==", "cus_1")

    def test_errors_are_wrapped(self, db):
        db.collection.return_value.document.return_value.update.side_effect = RuntimeError("permission denied")

        with pytest.raises(DocumentStoreError):
            FirestoreDocumentStore(client=db).update("customers", "c1", {"name": "x"})

    def test_modify_runs_in_transaction(self, db, monkeypatch):
        monkeypatch.setattr(firestore_store.firestore, "transactional", lambda fn: fn)
        doc_ref = db.collection.return_value.document.return_value
        doc_ref.get.return_value = snapshot("c1", {"tags": ["a"]})
        transaction = db.transaction.return_value

        updated = FirestoreDocumentStore(client=db).modify(
            "customers", "c1", lambda doc: {"tags": doc["tags"] + ["b"]}
        )

        assert updated == {"id": "c1", "tags": ["a", "b"]}
        doc_ref.get.assert_called_once_with(transaction=transaction)
        transaction.update.assert_called_once_with(doc_ref, {"tags": ["a", "b"]})

    def test_modify_missing(self, db, monkeypatch):
        monkeypatch.setattr(firestore_store.firestore, "transactional", lambda fn: fn)
        db.collection.return_value.document.return_value.get.return_value = snapshot("c1", {}, exists=False)

        with pytest.raises(DocumentStoreError):
            FirestoreDocumentStore(client=db).modify("customers", "c1", lambda doc: {"name": "x"})
        db.transaction.return_value.update.assert_not_called()
