from __future__ import annotations

from decimal import Decimal

import pytest

from resale_ledger.core.errors import DocumentNotFoundError, PersistenceError
from resale_ledger.persistence.codec import DocumentCodecError, merge_documents, to_document_obj
from resale_ledger.persistence.store import SqlDocumentStore


def test_add_get_and_list_ordering(store: SqlDocumentStore):
    first = store.add_document("orders", {"customer": "Alice", "createdAt": 1})
    second = store.add_document("orders", {"customer": "Bob", "createdAt": 2})

    assert store.get_document("orders", first) == {"id": first, "customer": "Alice", "createdAt": 1}
    assert [d["id"] for d in store.list_documents("orders")] == [second, first]
    assert [d["id"] for d in store.list_documents("orders", descending=False, limit=1)] == [first]
    assert store.get_document("orders", "missing") is None


def test_update_replaces_top_level_fields(store: SqlDocumentStore):
    doc_id = store.add_document("orders", {"customer": "Alice", "status": {"isPaid": False, "isShipped": True}})
    store.update_document("orders", doc_id, {"status": {"isPaid": True}})
    assert store.get_document("orders", doc_id)["status"] == {"isPaid": True}


def test_update_of_missing_document_raises(store: SqlDocumentStore):
    with pytest.raises(DocumentNotFoundError):
        store.update_document("orders", "nope", {"customer": "X"})


def test_set_with_merge_deep_merges(store: SqlDocumentStore):
    store.set_document("exchangeRates", "r1", {"currency": "KRW", "cash": "41", "meta": {"a": 1}})
    store.set_document("exchangeRates", "r1", {"visa": "42", "meta": {"b": 2}}, merge=True)
    assert store.get_document("exchangeRates", "r1") == {
        "id": "r1",
        "currency": "KRW",
        "cash": "41",
        "visa": "42",
        "meta": {"a": 1, "b": 2},
    }

    store.set_document("exchangeRates", "r1", {"currency": "JPY"})
    assert store.get_document("exchangeRates", "r1") == {"id": "r1", "currency": "JPY"}


def test_delete_documents(store: SqlDocumentStore):
    ids = [store.add_document("orders", {"n": i}) for i in range(3)]
    store.delete_document("orders", ids[0])
    store.delete_document("orders", "already-gone")
    assert store.delete_documents("orders", ids[1:] + ["unknown"]) == 2
    assert store.delete_documents("orders", []) == 0
    assert store.list_documents("orders") == []


def test_subscribers_get_full_snapshots(store: SqlDocumentStore):
    snapshots = []
    unsubscribe = store.subscribe_collection("products", snapshots.append, order_by="name", descending=False)
    assert snapshots == [[]]

    store.add_document("products", {"name": "Widget"})
    store.add_document("products", {"name": "Gadget"})
    assert [d["name"] for d in snapshots[-1]] == ["Gadget", "Widget"]

    store.add_document("orders", {"customer": "Alice"})
    assert len(snapshots) == 3

    unsubscribe()
    store.add_document("products", {"name": "Gizmo"})
    assert len(snapshots) == 3


def test_failing_listener_does_not_break_writes(store: SqlDocumentStore):
    calls = []

    def listener(snapshot):
        calls.append(len(snapshot))
        if snapshot:
            raise RuntimeError("boom")

    store.subscribe_collection("orders", listener)
    store.add_document("orders", {"customer": "Alice"})
    assert calls == [0, 1]
    assert len(store.list_documents("orders")) == 1


def test_store_failures_surface_as_persistence_error():
    from contextlib import contextmanager

    from sqlalchemy.exc import OperationalError

    @contextmanager
    def broken_scope():
        raise OperationalError("INSERT", {}, Exception("database is locked"))
        yield

    store = SqlDocumentStore(scope=broken_scope)
    with pytest.raises(PersistenceError):
        store.add_document("orders", {"customer": "Alice"})
    with pytest.raises(PersistenceError):
        store.list_documents("orders")


def test_codec_encodes_decimals_and_rejects_floats():
    assert to_document_obj({"price": Decimal("12.50"), "items": [Decimal("1E+2")]}) == {"price": "12.50", "items": ["100"]}
    with pytest.raises(DocumentCodecError):
        to_document_obj({"price": 1.5})
    with pytest.raises(DocumentCodecError):
        to_document_obj(Decimal("NaN"))


def test_merge_documents_is_non_destructive():
    base = {"status": {"isPaid": False}, "customer": "Alice"}
    merged = merge_documents(base, {"status": {"isShipped": True}})
    assert merged == {"status": {"isPaid": False, "isShipped": True}, "customer": "Alice"}
    assert base == {"status": {"isPaid": False}, "customer": "Alice"}
