from __future__ import annotations

import logging
import threading
from contextlib import AbstractContextManager
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from resale_ledger.core.errors import DocumentNotFoundError, PersistenceError
from resale_ledger.domain.money import now_ms
from resale_ledger.persistence import pg
from resale_ledger.persistence.codec import merge_documents, to_document_obj
from resale_ledger.persistence.models import DocumentModel, new_document_id

logger = logging.getLogger(__name__)

Snapshot = list[dict[str, Any]]
SnapshotListener = Callable[[Snapshot], None]


class DocumentStore(Protocol):
    def subscribe_collection(
        self,
        name: str,
        listener: SnapshotListener,
        order_by: str = "createdAt",
        descending: bool = True,
        limit: int | None = None,
    ) -> Callable[[], None]:
        ...

    def add_document(self, collection: str, data: dict[str, Any]) -> str:
        ...

    def update_document(self, collection: str, doc_id: str, partial: dict[str, Any]) -> None:
        ...

    def set_document(self, collection: str, doc_id: str, data: dict[str, Any], merge: bool = False) -> None:
        ...

    def delete_document(self, collection: str, doc_id: str) -> None:
        ...

    def delete_documents(self, collection: str, doc_ids: list[str]) -> int:
        ...

    def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        ...

    def list_documents(
        self,
        collection: str,
        order_by: str = "createdAt",
        descending: bool = True,
        limit: int | None = None,
    ) -> Snapshot:
        ...


@dataclass
class _Subscription:
    listener: SnapshotListener
    order_by: str
    descending: bool
    limit: int | None


def _sort_value(value: Any) -> tuple[int, Any]:
    return (0, "") if value is None else (1, value)


def _materialize(row: DocumentModel) -> dict[str, Any]:
    return {"id": row.doc_id, **(row.data or {})}


class SqlDocumentStore:
    """Document-collection store kept in one SQL table.

    Every write is its own transaction. Subscribers of a collection receive a
    complete, freshly materialized snapshot after each committed write.
    """

    def __init__(self, scope: Callable[[], AbstractContextManager[Session]] | None = None):
        self._scope = scope or pg.session_scope
        self._lock = threading.Lock()
        self._subscriptions: dict[str, list[_Subscription]] = {}

    def _find(self, session: Session, collection: str, doc_id: str) -> DocumentModel | None:
        stmt = (
            select(DocumentModel)
            .where(DocumentModel.collection == collection)
            .where(DocumentModel.doc_id == doc_id)
        )
        return session.scalar(stmt)

    def _write(self, collection: str, action: str, fn: Callable[[Session], Any]) -> Any:
        try:
            with self._scope() as session:
                result = fn(session)
        except SQLAlchemyError as exc:
            logger.warning("store write failed: action=%s collection=%s error=%s", action, collection, exc)
            raise PersistenceError(f"{action} on {collection} failed: {exc}") from exc
        self._notify(collection)
        return result

    def add_document(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = new_document_id()
        encoded = to_document_obj(data)

        def _add(session: Session) -> str:
            session.add(DocumentModel(collection=collection, doc_id=doc_id, data=encoded, written_at=now_ms()))
            session.flush()
            return doc_id

        return self._write(collection, "add", _add)

    def update_document(self, collection: str, doc_id: str, partial: dict[str, Any]) -> None:
        encoded = to_document_obj(partial)

        def _update(session: Session) -> None:
            row = self._find(session, collection, doc_id)
            if row is None:
                raise DocumentNotFoundError(collection, doc_id)
            # top-level fields are replaced wholesale, as a document update does
            row.data = {**(row.data or {}), **encoded}
            row.written_at = now_ms()

        self._write(collection, "update", _update)

    def set_document(self, collection: str, doc_id: str, data: dict[str, Any], merge: bool = False) -> None:
        encoded = to_document_obj(data)

        def _set(session: Session) -> None:
            row = self._find(session, collection, doc_id)
            if row is None:
                session.add(DocumentModel(collection=collection, doc_id=doc_id, data=encoded, written_at=now_ms()))
                return
            row.data = merge_documents(row.data or {}, encoded) if merge else encoded
            row.written_at = now_ms()

        self._write(collection, "set", _set)

    def delete_document(self, collection: str, doc_id: str) -> None:
        def _delete(session: Session) -> None:
            row = self._find(session, collection, doc_id)
            if row is not None:
                session.delete(row)

        self._write(collection, "delete", _delete)

    def delete_documents(self, collection: str, doc_ids: list[str]) -> int:
        wanted = set(doc_ids)

        def _delete_many(session: Session) -> int:
            rows = session.scalars(
                select(DocumentModel)
                .where(DocumentModel.collection == collection)
                .where(DocumentModel.doc_id.in_(sorted(wanted)))
            ).all()
            for row in rows:
                session.delete(row)
            return len(rows)

        if not wanted:
            return 0
        return self._write(collection, "delete_many", _delete_many)

    def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        try:
            with self._scope() as session:
                row = self._find(session, collection, doc_id)
                return _materialize(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"get on {collection} failed: {exc}") from exc

    def list_documents(
        self,
        collection: str,
        order_by: str = "createdAt",
        descending: bool = True,
        limit: int | None = None,
    ) -> Snapshot:
        try:
            with self._scope() as session:
                rows = session.scalars(
                    select(DocumentModel)
                    .where(DocumentModel.collection == collection)
                    .order_by(DocumentModel.seq_id.asc())
                ).all()
                docs = [_materialize(row) for row in rows]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"list on {collection} failed: {exc}") from exc

        docs.sort(key=lambda doc: _sort_value(doc.get(order_by)), reverse=descending)
        return docs[:limit] if limit is not None else docs

    def subscribe_collection(
        self,
        name: str,
        listener: SnapshotListener,
        order_by: str = "createdAt",
        descending: bool = True,
        limit: int | None = None,
    ) -> Callable[[], None]:
        subscription = _Subscription(listener=listener, order_by=order_by, descending=descending, limit=limit)
        with self._lock:
            self._subscriptions.setdefault(name, []).append(subscription)
        self._deliver(name, subscription)

        def unsubscribe() -> None:
            with self._lock:
                bucket = self._subscriptions.get(name, [])
                if subscription in bucket:
                    bucket.remove(subscription)

        return unsubscribe

    def _deliver(self, collection: str, subscription: _Subscription) -> None:
        snapshot = self.list_documents(
            collection,
            order_by=subscription.order_by,
            descending=subscription.descending,
            limit=subscription.limit,
        )
        try:
            subscription.listener(snapshot)
        except Exception:
            logger.exception("snapshot listener failed for collection=%s", collection)

    def _notify(self, collection: str) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions.get(collection, []))
        for subscription in subscriptions:
            self._deliver(collection, subscription)


@lru_cache(maxsize=1)
def get_document_store() -> SqlDocumentStore:
    return SqlDocumentStore()
