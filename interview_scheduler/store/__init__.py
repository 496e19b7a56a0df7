"""
Document store collaborator.

The core reaches Event and User records only through the `DocumentStore`
protocol, so the consistency logic can run against any backend offering
atomic single-document conditional writes.
"""

from .memory import InMemoryDocumentStore, get_document_store
from .protocols import EVENTS, USERS, DeleteResult, DocumentStore, StoreError, UpdateResult

__all__ = [
    "DeleteResult",
    "DocumentStore",
    "EVENTS",
    "InMemoryDocumentStore",
    "StoreError",
    "USERS",
    "UpdateResult",
    "get_document_store",
]
