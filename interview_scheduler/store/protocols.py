"""
Defines the Protocol interface for the document store the core writes through.

The store is an external key-value collaborator: documents are dicts keyed by
`_id` inside named collections. Each `update_one` call is atomic at single
document granularity: the predicate is evaluated and the mutation applied
without another writer interleaving, which is what makes conditional pushes
safe against racing adds.
"""

from typing import Any, Callable, Dict, List, Optional, Protocol

from pydantic import BaseModel

Document = Dict[str, Any]
Predicate = Callable[[Document], bool]
Mutation = Callable[[Document], None]

EVENTS = "events"
USERS = "users"


class StoreError(Exception):
    """
    Raised when the document store cannot complete an operation.

    Adapters wrap their driver errors in it; the membership ledger treats it
    as the recoverable failure of one side of a dual write.
    """

    pass


class UpdateResult(BaseModel):
    matched_count: int = 0
    modified_count: int = 0


class DeleteResult(BaseModel):
    deleted_count: int = 0


class DocumentStore(Protocol):
    """Protocol for the document store collaborator."""

    async def get(self, collection: str, document_id: str) -> Optional[Document]:
        """Returns a copy of the document with `_id == document_id`, or None."""
        ...

    async def find_one(self, collection: str, predicate: Predicate) -> Optional[Document]:
        """Returns a copy of the first document matching `predicate`, or None."""
        ...

    async def find(self, collection: str, predicate: Optional[Predicate] = None) -> List[Document]:
        """Returns copies of every matching document in insertion order."""
        ...

    async def insert_one(self, collection: str, document: Document) -> str:
        """Stores a new document and returns its `_id`."""
        ...

    async def update_one(self, collection: str, predicate: Predicate, mutation: Mutation) -> UpdateResult:
        """Applies `mutation` to the first document matching `predicate`, atomically."""
        ...

    async def update_many(self, collection: str, predicate: Predicate, mutation: Mutation) -> UpdateResult:
        """Applies `mutation` to every matching document, each one atomically."""
        ...

    async def delete_one(self, collection: str, predicate: Predicate) -> DeleteResult:
        """Deletes the first document matching `predicate`."""
        ...
