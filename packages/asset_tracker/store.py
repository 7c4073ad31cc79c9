"""Document store collaborators.

The engine persists records as JSON documents grouped in named collections
(``assets``, ``accruals``, ``prepaids``, ``settings``). Two implementations
satisfy the ``DocumentStore`` protocol:

- ``InMemoryStore``: thread-safe dict of dicts, for tests and one-shot runs.
- ``SqlDocumentStore``: SQLAlchemy over the ``at_documents`` table owned by
  ``libs/db`` (see ``db.models.documents``).

``open_store(settings)`` chooses between them explicitly; nothing in the
package falls back to a store on its own. Every returned document carries its
``id``. Backend failures surface as ``StoreUnavailableError`` and unknown ids
as ``RecordNotFoundError``.
"""

from __future__ import annotations

import copy
import threading
import uuid
from collections.abc import Mapping
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings
from .errors import PayloadError, RecordNotFoundError, StoreUnavailableError
from .logging_setup import get_logger

logger = get_logger("asset_tracker.store")

type Document = dict[str, Any]


class DocumentStore(Protocol):
    def get(self, collection: str) -> list[Document]: ...

    def get_one(self, collection: str, doc_id: str) -> Document: ...

    def add(self, collection: str, record: Mapping[str, Any]) -> str: ...

    def put(self, collection: str, doc_id: str, record: Mapping[str, Any]) -> None: ...

    def update(self, collection: str, doc_id: str, partial: Mapping[str, Any]) -> None: ...

    def delete(self, collection: str, doc_id: str) -> None: ...


def _check_record(record: Any) -> dict[str, Any]:
    if not isinstance(record, Mapping):
        raise PayloadError(f"document must be a mapping, got {type(record).__name__}")
    return dict(record)


def _doc_id_for(record: Mapping[str, Any]) -> str:
    raw = record.get("id")
    return str(raw) if raw else uuid.uuid4().hex


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class InMemoryStore:
    """Process-local store; documents are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, dict[str, Document]] = {}

    def get(self, collection: str) -> list[Document]:
        with self._lock:
            return [copy.deepcopy(d) for d in self._data.get(collection, {}).values()]

    def get_one(self, collection: str, doc_id: str) -> Document:
        with self._lock:
            doc = self._data.get(collection, {}).get(doc_id)
            if doc is None:
                raise RecordNotFoundError(collection, doc_id)
            return copy.deepcopy(doc)

    def add(self, collection: str, record: Mapping[str, Any]) -> str:
        payload = _check_record(record)
        doc_id = _doc_id_for(payload)
        payload["id"] = doc_id
        with self._lock:
            self._data.setdefault(collection, {})[doc_id] = copy.deepcopy(payload)
        return doc_id

    def put(self, collection: str, doc_id: str, record: Mapping[str, Any]) -> None:
        payload = _check_record(record)
        payload["id"] = doc_id
        with self._lock:
            self._data.setdefault(collection, {})[doc_id] = copy.deepcopy(payload)

    def update(self, collection: str, doc_id: str, partial: Mapping[str, Any]) -> None:
        changes = _check_record(partial)
        with self._lock:
            docs = self._data.get(collection, {})
            if doc_id not in docs:
                raise RecordNotFoundError(collection, doc_id)
            docs[doc_id].update(copy.deepcopy(changes))
            docs[doc_id]["id"] = doc_id

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            docs = self._data.get(collection, {})
            if doc_id not in docs:
                raise RecordNotFoundError(collection, doc_id)
            del docs[doc_id]


# ---------------------------------------------------------------------------
# SQL (SQLAlchemy)
# ---------------------------------------------------------------------------


class SqlDocumentStore:
    """Documents in the ``at_documents`` table, one transaction per call."""

    def __init__(self, database_url: str) -> None:
        if not database_url:
            raise StoreUnavailableError("SQL store requires DATABASE_URL")
        self.database_url = database_url

    def _scope(self):
        from db.client import session_scope

        return session_scope(database_url=self.database_url)

    def create_schema(self) -> None:
        """Create ``at_documents`` when missing (Alembic is the normal path)."""

        from db import Base
        from db.client import get_engine

        try:
            Base.metadata.create_all(bind=get_engine(database_url=self.database_url))
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"could not create schema: {exc}") from exc

    def get(self, collection: str) -> list[Document]:
        from db.models.documents import AtDocument

        stmt = (
            select(AtDocument)
            .where(AtDocument.collection == collection)
            .order_by(AtDocument.created_at, AtDocument.doc_id)
        )
        try:
            with self._scope() as session:
                rows = session.scalars(stmt).all()
                return [{**row.payload, "id": row.doc_id} for row in rows]
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"get {collection} failed: {exc}") from exc

    def get_one(self, collection: str, doc_id: str) -> Document:
        from db.models.documents import AtDocument

        try:
            with self._scope() as session:
                row = session.get(AtDocument, (collection, doc_id))
                if row is None:
                    raise RecordNotFoundError(collection, doc_id)
                return {**row.payload, "id": row.doc_id}
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"get {collection}/{doc_id} failed: {exc}") from exc

    def add(self, collection: str, record: Mapping[str, Any]) -> str:
        from db.models.documents import AtDocument

        payload = _check_record(record)
        doc_id = _doc_id_for(payload)
        payload["id"] = doc_id
        try:
            with self._scope() as session:
                session.add(AtDocument(collection=collection, doc_id=doc_id, payload=payload))
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"add {collection}/{doc_id} failed: {exc}") from exc
        return doc_id

    def put(self, collection: str, doc_id: str, record: Mapping[str, Any]) -> None:
        from db.models.documents import AtDocument

        payload = _check_record(record)
        payload["id"] = doc_id
        try:
            with self._scope() as session:
                row = session.get(AtDocument, (collection, doc_id))
                if row is None:
                    session.add(AtDocument(collection=collection, doc_id=doc_id, payload=payload))
                else:
                    row.payload = payload
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"put {collection}/{doc_id} failed: {exc}") from exc

    def update(self, collection: str, doc_id: str, partial: Mapping[str, Any]) -> None:
        from db.models.documents import AtDocument

        changes = _check_record(partial)
        try:
            with self._scope() as session:
                row = session.get(AtDocument, (collection, doc_id))
                if row is None:
                    raise RecordNotFoundError(collection, doc_id)
                # Reassign so the JSON column is flagged dirty.
                row.payload = {**row.payload, **changes, "id": doc_id}
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"update {collection}/{doc_id} failed: {exc}") from exc

    def delete(self, collection: str, doc_id: str) -> None:
        from db.models.documents import AtDocument

        stmt = delete(AtDocument).where(
            AtDocument.collection == collection, AtDocument.doc_id == doc_id
        )
        try:
            with self._scope() as session:
                result = session.execute(stmt)
                if result.rowcount == 0:
                    raise RecordNotFoundError(collection, doc_id)
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"delete {collection}/{doc_id} failed: {exc}") from exc


def open_store(settings: Settings) -> DocumentStore:
    """Return the store selected by ``settings.store``."""

    if settings.store == "memory":
        logger.debug("open_store: using in-memory store")
        return InMemoryStore()
    if settings.store == "sql":
        if not settings.database_url:
            raise StoreUnavailableError("ASSET_TRACKER_STORE=sql but DATABASE_URL is not set")
        logger.debug("open_store: using SQL store")
        return SqlDocumentStore(settings.database_url)
    raise StoreUnavailableError(f"unknown store kind: {settings.store!r}")


__all__ = [
    "Document",
    "DocumentStore",
    "InMemoryStore",
    "SqlDocumentStore",
    "open_store",
]
