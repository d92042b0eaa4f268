"""Document store backends (memory and JSON files)."""

from modcert.store.documents import (
    SERVER_TIMESTAMP,
    DocumentReference,
    DocumentSnapshot,
    DocumentStore,
    JsonDocumentStore,
    MemoryDocumentStore,
    QuerySnapshot,
    open_store,
)

__all__ = [
    "SERVER_TIMESTAMP",
    "DocumentReference",
    "DocumentSnapshot",
    "DocumentStore",
    "JsonDocumentStore",
    "MemoryDocumentStore",
    "QuerySnapshot",
    "open_store",
]
