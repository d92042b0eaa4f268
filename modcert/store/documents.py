"""Document store used by the governance pipeline and the callable functions.

Documents live in named collections and are addressed by id. Two backends
share one interface:

- ``MemoryDocumentStore`` -- process-local dicts (tests, ``MODCERT_STORE=memory``)
- ``JsonDocumentStore`` -- one ``<collection>.json`` file per collection under
  ``~/.modcert/data/``
"""

from __future__ import annotations

import copy
import json
import re
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from modcert.errors import NotFoundError

_COLLECTION_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class _ServerTimestamp:
    """Sentinel replaced by the current UTC time when a document is written."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"

    def __copy__(self) -> "_ServerTimestamp":
        return self

    def __deepcopy__(self, memo: dict) -> "_ServerTimestamp":
        return self


SERVER_TIMESTAMP = _ServerTimestamp()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _resolve_sentinels(data: dict[str, Any]) -> dict[str, Any]:
    now = _now_iso()
    return {k: (now if v is SERVER_TIMESTAMP else v) for k, v in data.items()}


@dataclass
class DocumentSnapshot:
    id: str
    _data: Optional[dict[str, Any]] = None

    @property
    def exists(self) -> bool:
        return self._data is not None

    def data(self) -> Optional[dict[str, Any]]:
        return copy.deepcopy(self._data)


@dataclass
class QuerySnapshot:
    docs: list[DocumentSnapshot] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.docs

    def __len__(self) -> int:
        return len(self.docs)

    def __iter__(self):
        return iter(self.docs)


class DocumentReference:
    def __init__(self, store: "DocumentStore", collection: str, doc_id: str) -> None:
        self._store = store
        self.collection = collection
        self.id = doc_id

    def get(self) -> DocumentSnapshot:
        return self._store.get(self.collection, self.id)


class Query:
    """Equality-only query builder: ``store.query(c).where(f, "==", v).limit(n).get()``."""

    def __init__(
        self,
        store: "DocumentStore",
        collection: str,
        filters: Optional[list[tuple[str, Any]]] = None,
        limit: Optional[int] = None,
    ) -> None:
        self._store = store
        self._collection = collection
        self._filters = list(filters or [])
        self._limit = limit

    def where(self, field_name: str, op: str, value: Any) -> "Query":
        if op != "==":
            raise ValueError(f"Unsupported query operator: {op!r}")
        return Query(self._store, self._collection, self._filters + [(field_name, value)], self._limit)

    def limit(self, n: int) -> "Query":
        return Query(self._store, self._collection, self._filters, n)

    def get(self) -> QuerySnapshot:
        return self._store._run_query(self._collection, self._filters, self._limit)


class DocumentStore:
    """Shared CRUD logic on top of ``_load`` / ``_save`` of whole collections."""

    def __init__(self) -> None:
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------

    def _load(self, collection: str) -> dict[str, dict[str, Any]]:
        raise NotImplementedError

    def _save(self, collection: str, docs: dict[str, dict[str, Any]]) -> None:
        raise NotImplementedError

    @staticmethod
    def _check_collection(collection: str) -> None:
        if not _COLLECTION_RE.match(collection):
            raise ValueError(f"Invalid collection name: {collection!r}")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        self._check_collection(collection)
        with self._lock:
            docs = self._load(collection)
            return DocumentSnapshot(id=doc_id, _data=copy.deepcopy(docs.get(doc_id)))

    def query(self, collection: str) -> Query:
        self._check_collection(collection)
        return Query(self, collection)

    def add(self, collection: str, data: dict[str, Any]) -> DocumentReference:
        """Insert a document under a generated id."""
        doc_id = uuid.uuid4().hex[:20]
        self.set(collection, doc_id, data)
        return DocumentReference(self, collection, doc_id)

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> DocumentReference:
        """Create or overwrite a document."""
        self._check_collection(collection)
        with self._lock:
            docs = self._load(collection)
            docs[doc_id] = _resolve_sentinels(copy.deepcopy(data))
            self._save(collection, docs)
        return DocumentReference(self, collection, doc_id)

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> DocumentReference:
        """Merge *fields* into an existing document."""
        self._check_collection(collection)
        with self._lock:
            docs = self._load(collection)
            if doc_id not in docs:
                raise NotFoundError(f"{collection} not found")
            docs[doc_id].update(_resolve_sentinels(copy.deepcopy(fields)))
            self._save(collection, docs)
        return DocumentReference(self, collection, doc_id)

    def delete(self, collection: str, doc_id: str) -> bool:
        self._check_collection(collection)
        with self._lock:
            docs = self._load(collection)
            if doc_id not in docs:
                return False
            del docs[doc_id]
            self._save(collection, docs)
            return True

    def _run_query(
        self, collection: str, filters: list[tuple[str, Any]], limit: Optional[int]
    ) -> QuerySnapshot:
        with self._lock:
            docs = self._load(collection)
            matches: list[DocumentSnapshot] = []
            for doc_id, data in docs.items():
                if all(data.get(f) == v for f, v in filters):
                    matches.append(DocumentSnapshot(id=doc_id, _data=copy.deepcopy(data)))
                    if limit is not None and len(matches) >= limit:
                        break
            return QuerySnapshot(docs=matches)


class MemoryDocumentStore(DocumentStore):
    def __init__(self) -> None:
        super().__init__()
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    def _load(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    def _save(self, collection: str, docs: dict[str, dict[str, Any]]) -> None:
        self._collections[collection] = docs


class JsonDocumentStore(DocumentStore):
    """File-based document store.

    Storage path: ``~/.modcert/data/`` (or *base_dir*) with one
    ``<collection>.json`` file per collection, holding an object keyed by
    document id.
    """

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        super().__init__()
        if base_dir is None:
            self._base = Path.home() / ".modcert" / "data"
        else:
            self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)

    def _path(self, collection: str) -> Path:
        return self._base / f"{collection}.json"

    def _load(self, collection: str) -> dict[str, dict[str, Any]]:
        path = self._path(collection)
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text())
            return data if isinstance(data, dict) else {}
        except (json.JSONDecodeError, OSError):
            return {}

    def _save(self, collection: str, docs: dict[str, dict[str, Any]]) -> None:
        self._path(collection).write_text(json.dumps(docs, indent=2, default=str))


def open_store(settings) -> DocumentStore:
    """Build the store selected by ``settings.store_backend``."""
    if settings.store_backend == "memory":
        return MemoryDocumentStore()
    if settings.store_backend == "json":
        return JsonDocumentStore(settings.data_dir)
    raise ValueError(f"Unknown store backend: {settings.store_backend!r}")
