"""
In-memory implementation of the DocumentStore protocol.

Serves as the default store when no external one is injected and as the
fake collaborator in tests. Every operation runs under a single asyncio lock
and works on deep copies, so callers never share state with stored documents
and each `update_one` is atomic with respect to other coroutines.
"""

import asyncio
import copy
import logging
import uuid
from collections import OrderedDict
from typing import Dict, List, Optional

from .protocols import DeleteResult, Document, Mutation, Predicate, StoreError, UpdateResult

logger = logging.getLogger(__name__)


class InMemoryDocumentStore:
    """Dict-of-collections document store with atomic conditional writes."""

    def __init__(self):
        self._collections: Dict[str, "OrderedDict[str, Document]"] = {}
        self._lock = asyncio.Lock()

    def _collection(self, name: str) -> "OrderedDict[str, Document]":
        return self._collections.setdefault(name, OrderedDict())

    async def get(self, collection: str, document_id: str) -> Optional[Document]:
        async with self._lock:
            document = self._collection(collection).get(document_id)
            return copy.deepcopy(document) if document is not None else None

    async def find_one(self, collection: str, predicate: Predicate) -> Optional[Document]:
        async with self._lock:
            for document in self._collection(collection).values():
                if predicate(document):
                    return copy.deepcopy(document)
            return None

    async def find(self, collection: str, predicate: Optional[Predicate] = None) -> List[Document]:
        async with self._lock:
            return [
                copy.deepcopy(document)
                for document in self._collection(collection).values()
                if predicate is None or predicate(document)
            ]

    async def insert_one(self, collection: str, document: Document) -> str:
        async with self._lock:
            document = copy.deepcopy(document)
            document_id = document.setdefault("_id", str(uuid.uuid4()))
            documents = self._collection(collection)
            if document_id in documents:
                raise StoreError(f"Duplicate _id '{document_id}' in collection '{collection}'")
            documents[document_id] = document
            logger.debug(f"Inserted document {document_id} into '{collection}'")
            return document_id

    async def update_one(self, collection: str, predicate: Predicate, mutation: Mutation) -> UpdateResult:
        async with self._lock:
            documents = self._collection(collection)
            for document_id, document in documents.items():
                if predicate(document):
                    documents[document_id] = self._apply(document, mutation)
                    modified = documents[document_id] != document
                    return UpdateResult(matched_count=1, modified_count=int(modified))
            return UpdateResult()

    async def update_many(self, collection: str, predicate: Predicate, mutation: Mutation) -> UpdateResult:
        async with self._lock:
            documents = self._collection(collection)
            result = UpdateResult()
            for document_id in [key for key, doc in documents.items() if predicate(doc)]:
                original = documents[document_id]
                documents[document_id] = self._apply(original, mutation)
                result.matched_count += 1
                result.modified_count += int(documents[document_id] != original)
            return result

    async def delete_one(self, collection: str, predicate: Predicate) -> DeleteResult:
        async with self._lock:
            documents = self._collection(collection)
            for document_id, document in documents.items():
                if predicate(document):
                    del documents[document_id]
                    logger.debug(f"Deleted document {document_id} from '{collection}'")
                    return DeleteResult(deleted_count=1)
            return DeleteResult()

    @staticmethod
    def _apply(document: Document, mutation: Mutation) -> Document:
        # Mutate a copy so a failing mutation leaves the stored document untouched
        updated = copy.deepcopy(document)
        mutation(updated)
        if updated.get("_id") != document.get("_id"):
            raise StoreError("Mutations may not change a document's _id")
        return updated


# Global store instance
_default_store: Optional[InMemoryDocumentStore] = None


def get_document_store() -> InMemoryDocumentStore:
    """Get the process-wide default store, creating it on first use."""
    global _default_store
    if _default_store is None:
        _default_store = InMemoryDocumentStore()
    return _default_store
