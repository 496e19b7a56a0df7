"""
Repository pattern implementation over the document store.

Provides loading and saving of Events and Users. Event saves replace the
whole document conditioned on its `version`, giving optimistic concurrency
control; `EventRepository.modify` reloads and re-applies a change when a
concurrent writer wins.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Generic, List, Optional, Tuple, TypeVar

from interview_scheduler.config import config
from interview_scheduler.domain.aggregates import EventAggregate
from interview_scheduler.domain.models import Event, User
from interview_scheduler.errors import ConcurrencyError, NotFoundError, UnknownUserError
from interview_scheduler.store import operations as ops
from interview_scheduler.store.protocols import EVENTS, USERS, DocumentStore
from interview_scheduler.utils.metrics import metrics_tracker

logger = logging.getLogger(__name__)

T = TypeVar("T", Event, User)
R = TypeVar("R")


class Repository(ABC, Generic[T]):
    """
    Abstract base repository for stored entities.

    Subclasses name their collection and how to build the entity from a
    stored document.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    @property
    @abstractmethod
    def collection(self) -> str:
        """Collection the entities live in."""
        pass

    @abstractmethod
    def _from_document(self, document: dict) -> T:
        pass

    async def load(self, entity_id: str) -> Optional[T]:
        """
        Load an entity by id.

        Returns:
            T: The loaded entity, or None if not found
        """
        document = await self.store.get(self.collection, entity_id)
        if document is None:
            logger.debug(f"No document {entity_id} in '{self.collection}'")
            return None
        return self._from_document(document)

    async def get(self, entity_id: str) -> T:
        """
        Load an entity by id, failing if it does not exist.

        Raises:
            NotFoundError: If no document has this id
        """
        entity = await self.load(entity_id)
        if entity is None:
            raise NotFoundError(f"{self.collection[:-1].capitalize()} {entity_id} not found")
        return entity

    async def insert(self, entity: T) -> str:
        return await self.store.insert_one(self.collection, entity.to_document())

    async def exists(self, entity_id: str) -> bool:
        return await self.store.get(self.collection, entity_id) is not None

    async def list(self) -> List[T]:
        return [self._from_document(document) for document in await self.store.find(self.collection)]


class EventRepository(Repository[Event]):
    """Repository for Event documents."""

    collection = EVENTS

    def _from_document(self, document: dict) -> Event:
        return Event.from_document(document)

    async def save(self, event: Event) -> Event:
        """
        Replace the stored event, conditioned on its version being unchanged.

        Raises:
            NotFoundError: If the event was deleted
            ConcurrencyError: If another writer bumped the version first
        """
        expected_version = event.version
        document = event.to_document()
        document["version"] = expected_version + 1

        result = await self.store.update_one(
            EVENTS,
            ops.all_of(ops.by_id(event.id), ops.field_equals("version", expected_version)),
            ops.set_fields(**document),
        )
        if result.matched_count == 0:
            current = await self.store.get(EVENTS, event.id)
            if current is None:
                raise NotFoundError(f"Event {event.id} not found")
            raise ConcurrencyError(
                f"Concurrency conflict on event {event.id}: expected version "
                f"{expected_version}, actual version {current.get('version', -1)}",
                expected_version,
                current.get("version", -1),
            )

        event.version = expected_version + 1
        logger.debug(f"Saved event {event.id} at version {event.version}")
        return event

    async def modify(
        self,
        event_id: str,
        change: Callable[[EventAggregate], R],
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ) -> Tuple[EventAggregate, R]:
        """
        Load an event, apply `change` and save, retrying on conflicts.

        On a ConcurrencyError the event is reloaded and `change` re-applied to
        the fresh state, so its validation always sees what it will overwrite.
        Domain errors raised by `change` propagate without a save.

        Returns:
            Tuple[EventAggregate, R]: The saved aggregate and `change`'s return value
        """
        settings = config["membership"]
        if max_retries is None:
            max_retries = settings["save_retries"]
        if retry_delay is None:
            retry_delay = settings["retry_delay"]

        for attempt in range(max_retries + 1):
            aggregate = EventAggregate(await self.get(event_id))
            outcome = change(aggregate)
            try:
                await self.save(aggregate.event)
                return aggregate, outcome
            except ConcurrencyError as e:
                metrics_tracker.increment_save_conflicts()
                if attempt < max_retries:
                    logger.warning(f"Conflict on attempt {attempt + 1} for event {event_id}: {e}. Retrying with reload...")
                    await asyncio.sleep(retry_delay)
                    continue
                logger.error(f"Failed to save event {event_id} after {max_retries} retries due to concurrency conflicts")
                raise

        raise ConcurrencyError(f"Failed to save event {event_id} after {max_retries} retries")


class UserRepository(Repository[User]):
    """Repository for User documents."""

    collection = USERS

    def _from_document(self, document: dict) -> User:
        return User.from_document(document)

    async def find_by_email(self, email: str) -> Optional[User]:
        document = await self.store.find_one(USERS, ops.field_equals("email", email))
        return self._from_document(document) if document is not None else None

    async def resolve(self, user_id: Optional[str] = None, email: Optional[str] = None) -> User:
        """
        Resolve a participant identity by id or, failing that, by email.

        Raises:
            UnknownUserError: If no user matches
        """
        user = None
        if user_id is not None:
            user = await self.load(user_id)
        if user is None and email is not None:
            user = await self.find_by_email(email)
        if user is None:
            raise UnknownUserError(f"No user exists with {'id ' + user_id if user_id else 'email ' + str(email)}")
        return user


class RepositoryFactory:
    """
    Factory for creating repository instances.

    Provides a centralized way to create repositories sharing one store.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def create_event_repository(self) -> EventRepository:
        return EventRepository(self.store)

    def create_user_repository(self) -> UserRepository:
        return UserRepository(self.store)
