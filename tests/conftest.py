"""
tests/conftest.py

Shared fixtures for the scheduling core.

Tests run against the real in-memory document store. `FailingStore` wraps it
with opt-in failure injection so the ledger's repair and best-effort paths
can be exercised without mocking the store away.
"""

from collections import defaultdict
from datetime import date
from typing import Dict

import pytest

from interview_scheduler.domain.aggregates import EventAggregate
from interview_scheduler.domain.models import Event, User
from interview_scheduler.ledger.membership import MembershipLedger
from interview_scheduler.store.memory import InMemoryDocumentStore
from interview_scheduler.store.protocols import EVENTS, USERS, StoreError
from interview_scheduler.utils.metrics import metrics_tracker


class FailingStore(InMemoryDocumentStore):
    """In-memory store that raises StoreError for the next N calls of a given kind."""

    def __init__(self):
        super().__init__()
        self._failures: Dict[tuple, int] = defaultdict(int)
        self.calls: Dict[tuple, int] = defaultdict(int)

    def fail_next(self, collection: str, method: str = "update_one", times: int = 1) -> None:
        self._failures[(collection, method)] += times

    def _maybe_fail(self, collection: str, method: str) -> None:
        self.calls[(collection, method)] += 1
        if self._failures[(collection, method)] > 0:
            self._failures[(collection, method)] -= 1
            raise StoreError(f"injected {method} failure on '{collection}'")

    async def update_one(self, collection, predicate, mutation):
        self._maybe_fail(collection, "update_one")
        return await super().update_one(collection, predicate, mutation)

    async def update_many(self, collection, predicate, mutation):
        self._maybe_fail(collection, "update_many")
        return await super().update_many(collection, predicate, mutation)

    async def delete_one(self, collection, predicate):
        self._maybe_fail(collection, "delete_one")
        return await super().delete_one(collection, predicate)


@pytest.fixture(autouse=True)
def reset_metrics():
    """Each test starts from zeroed membership metrics."""
    metrics_tracker.reset()
    yield
    metrics_tracker.reset()


@pytest.fixture
def store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def ledger(store) -> MembershipLedger:
    return MembershipLedger(store, repair_attempts=1)


@pytest.fixture
async def users(store) -> Dict[str, User]:
    """Four stored users keyed by first name."""
    created = {}
    for name in ("alice", "bob", "carol", "dave"):
        user = User(email=f"{name}@example.com", name=name.title())
        await store.insert_one(USERS, user.to_document())
        created[name] = user
    return created


@pytest.fixture
async def event(store) -> Event:
    """A stored three-day event needing two interviewers, with empty rosters."""
    aggregate = EventAggregate.create(
        title="Onsite loop",
        description="Backend engineer onsite",
        start_date=date(2021, 2, 17),
        end_date=date(2021, 2, 19),
        interviewers_needed=2,
        slots_per_day=8,
    )
    await store.insert_one(EVENTS, aggregate.event.to_document())
    return aggregate.event
