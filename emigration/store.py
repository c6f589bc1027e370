"""Document store adapters.

Every dataset lives in its own collection; a document is a flat mapping of
category field -> count plus ``year``. The store assigns an opaque ``id`` and
returns it alongside the body on ``list``. Updates overwrite the whole body.
"""

from __future__ import annotations

import copy
import json
import logging
import sqlite3
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List

from emigration.config import Settings
from emigration.errors import StoreError

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


class DocumentStore(ABC):
    @abstractmethod
    def create(self, collection: str, doc: Document) -> str:
        ...

    @abstractmethod
    def list(self, collection: str) -> List[Document]:
        ...

    @abstractmethod
    def update(self, collection: str, doc_id: str, doc: Document) -> None:
        ...

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document. Deleting an unknown id is not an error."""


def _body(doc: Document) -> Document:
    return {k: v for k, v in doc.items() if k != "id"}


class MemoryStore(DocumentStore):
    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Document]] = {}
        self._lock = threading.Lock()

    def create(self, collection: str, doc: Document) -> str:
        doc_id = uuid.uuid4().hex
        with self._lock:
            self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(_body(doc))
        logger.debug("created %s/%s", collection, doc_id)
        return doc_id

    def list(self, collection: str) -> List[Document]:
        with self._lock:
            docs = self._collections.get(collection, {})
            return [{"id": doc_id, **copy.deepcopy(body)} for doc_id, body in docs.items()]

    def update(self, collection: str, doc_id: str, doc: Document) -> None:
        with self._lock:
            docs = self._collections.get(collection, {})
            if doc_id not in docs:
                raise StoreError(f"No document {doc_id} in {collection}", code="not-found")
            docs[doc_id] = copy.deepcopy(_body(doc))
        logger.debug("updated %s/%s", collection, doc_id)

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            self._collections.get(collection, {}).pop(doc_id, None)
        logger.debug("deleted %s/%s", collection, doc_id)


SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    id TEXT NOT NULL,
    body TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (collection, id)
);
"""


class SqliteStore(DocumentStore):
    """JSON documents in a single SQLite table keyed by (collection, id)."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(SCHEMA)

    @property
    def db_path(self) -> Path:
        return self._db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(str(self._db_path), timeout=10)
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot open {self._db_path}: {exc}", code="unavailable") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StoreError(str(exc), code="unavailable") from exc
        finally:
            conn.close()

    @staticmethod
    def _encode(doc: Document) -> str:
        try:
            return json.dumps(_body(doc))
        except (TypeError, ValueError) as exc:
            raise StoreError(f"Document is not JSON-serializable: {exc}", code="invalid-argument") from exc

    def create(self, collection: str, doc: Document) -> str:
        doc_id = uuid.uuid4().hex
        body = self._encode(doc)
        with self._connect() as conn:
            conn.execute("INSERT INTO documents (collection, id, body) VALUES (?, ?, ?)", (collection, doc_id, body))
        logger.debug("created %s/%s", collection, doc_id)
        return doc_id

    def list(self, collection: str) -> List[Document]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, body FROM documents WHERE collection = ? ORDER BY created_at, rowid",
                (collection,),
            ).fetchall()
        return [{"id": row["id"], **json.loads(row["body"])} for row in rows]

    def update(self, collection: str, doc_id: str, doc: Document) -> None:
        body = self._encode(doc)
        with self._connect() as conn:
            cur = conn.execute("UPDATE documents SET body = ? WHERE collection = ? AND id = ?", (body, collection, doc_id))
            if cur.rowcount == 0:
                raise StoreError(f"No document {doc_id} in {collection}", code="not-found")
        logger.debug("updated %s/%s", collection, doc_id)

    def delete(self, collection: str, doc_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM documents WHERE collection = ? AND id = ?", (collection, doc_id))
        logger.debug("deleted %s/%s", collection, doc_id)


def open_store(settings: Settings) -> DocumentStore:
    if settings.store == "memory":
        logger.info("Using in-memory document store")
        return MemoryStore()
    logger.info("Using SQLite document store at %s", settings.db_path)
    return SqliteStore(settings.db_path)
