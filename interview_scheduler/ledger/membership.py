"""
Membership ledger.

The only path by which participants join or leave an Event. Event rosters are
the source of truth; each User's `events` list is a derived reverse index.
Without multi-document transactions the ledger keeps the two consistent by
ordering its writes and guarding each one:

- add: Event-side conditional push first (guard re-checked by the store at
  write time), then an idempotent User-side push. If the User-side write
  fails, the ledger re-reads the Event and retries before handing back a
  `PartialConsistencyWarning` with an otherwise successful outcome.
- remove: both sides are pulled independently and both are always attempted.
- delete: the primary delete is authoritative; the cascade into the other
  collection is best effort.
"""

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from interview_scheduler.config import config
from interview_scheduler.domain.aggregates import EventAggregate
from interview_scheduler.domain.models import Event, EventMembership, Interviewee, Interviewer, Role
from interview_scheduler.errors import (
    ConcurrencyError,
    DuplicateMembershipError,
    NotFoundError,
    PartialConsistencyWarning,
)
from interview_scheduler.repository import RepositoryFactory
from interview_scheduler.store import operations as ops
from interview_scheduler.store.protocols import EVENTS, USERS, Document, DocumentStore, StoreError
from interview_scheduler.utils.metrics import metrics_tracker

logger = logging.getLogger(__name__)

_ROSTERS = {Role.INTERVIEWER: "interviewers", Role.INTERVIEWEE: "interviewees"}


@dataclass
class MembershipOutcome:
    """Result of an add or remove; `warning` is set when the reverse index lags."""

    event_id: str
    user_id: str
    role: Role
    changed: bool = True
    warning: Optional[PartialConsistencyWarning] = None


@dataclass
class DeletionOutcome:
    """Result of deleting an Event or User and cascading into the other side."""

    entity_id: str
    cascaded: int = 0
    warning: Optional[PartialConsistencyWarning] = None


@dataclass
class ReconcileReport:
    user_id: str
    added: List[Tuple[str, Role]] = field(default_factory=list)
    removed: List[Tuple[str, Role]] = field(default_factory=list)

    @property
    def repaired(self) -> int:
        return len(self.added) + len(self.removed)


def _add_participant(role: Role, user_id: str):
    """Push a fresh roster entry, shaping availability from the stored document."""

    def mutation(doc: Document) -> None:
        if role is Role.INTERVIEWER:
            matrix = EventAggregate(Event.from_document(doc)).blank_availability()
            entry = Interviewer(user_id=user_id, availability=matrix).model_dump()
        else:
            entry = Interviewee(user_id=user_id).model_dump()
        ops.chain(ops.push(_ROSTERS[role], entry), ops.increment("version"))(doc)

    return mutation


def _remove_participant(user_id: str, roles: Tuple[Role, ...]):
    """Pull `user_id` from the given rosters and from interviewee assignments."""

    def mutation(doc: Document) -> None:
        before = copy.deepcopy(doc)
        for role in roles:
            ops.pull(_ROSTERS[role], user_id=user_id)(doc)
        if Role.INTERVIEWER in roles:
            ops.on_elements("interviewees", ops.pull_value("interviewers", user_id))(doc)
        if doc != before:
            ops.increment("version")(doc)

    return mutation


def _involves(user_id: str):
    def predicate(doc: Document) -> bool:
        return (
            ops.array_contains("interviewers", user_id=user_id)(doc)
            or ops.array_contains("interviewees", user_id=user_id)(doc)
            or any(user_id in (entry.get("interviewers") or []) for entry in doc.get("interviewees") or [])
        )

    return predicate


class MembershipLedger:
    """
    Keeps Event rosters and User reverse indexes mutually consistent.

    Args:
        store: Document store both collections live in
        repair_attempts: Reconciliation retries after a failed reverse-index
            write (defaults to `membership.repair_attempts`)
    """

    def __init__(self, store: DocumentStore, repair_attempts: Optional[int] = None):
        self.store = store
        factory = RepositoryFactory(store)
        self.events = factory.create_event_repository()
        self.users = factory.create_user_repository()
        if repair_attempts is None:
            repair_attempts = config["membership"]["repair_attempts"]
        self.repair_attempts = repair_attempts

    async def add(
        self,
        event_id: str,
        role: Union[Role, str],
        user_id: Optional[str] = None,
        email: Optional[str] = None,
    ) -> MembershipOutcome:
        """
        Add a participant to an event under `role`.

        Raises:
            UnknownUserError: If neither `user_id` nor `email` resolves
            NotFoundError: If the event does not exist
            DuplicateMembershipError: If the user is already on the event under
                either role, including when a concurrent add won the race
        """
        role = Role(role)
        user = await self.users.resolve(user_id=user_id, email=email)
        event = await self.events.get(event_id)

        existing = event.role_of(user.id)
        if existing is not None:
            raise DuplicateMembershipError(
                f"User {user.id} is already an {existing.value} of event {event_id}",
                event_id=event_id,
                user_id=user.id,
            )

        guard = ops.all_of(
            ops.by_id(event_id),
            ops.array_lacks("interviewers", user_id=user.id),
            ops.array_lacks("interviewees", user_id=user.id),
        )
        result = await self.store.update_one(EVENTS, guard, _add_participant(role, user.id))
        if result.matched_count == 0:
            if not await self.events.exists(event_id):
                raise NotFoundError(f"Event {event_id} not found")
            raise DuplicateMembershipError(
                f"User {user.id} was added to event {event_id} concurrently",
                event_id=event_id,
                user_id=user.id,
            )

        metrics_tracker.increment_added()
        logger.info(f"Added user {user.id} to event {event_id} as {role.value}")

        warning = await self._index_membership(event_id, user.id, role)
        return MembershipOutcome(event_id=event_id, user_id=user.id, role=role, warning=warning)

    async def remove(self, event_id: str, user_id: str, role: Union[Role, str]) -> MembershipOutcome:
        """
        Remove a participant from an event; removing an absent one is a no-op.

        Both the Event-side and User-side pulls are attempted even if the
        first one fails.

        Raises:
            StoreError: If the Event-side pull failed; any other error from
                that write is re-raised as is, after the User-side pull
            NotFoundError: If the event does not exist
        """
        role = Role(role)
        event_error: Optional[Exception] = None
        user_error: Optional[StoreError] = None
        matched = changed = False

        try:
            result = await self.store.update_one(EVENTS, ops.by_id(event_id), _remove_participant(user_id, (role,)))
            matched, changed = result.matched_count > 0, result.modified_count > 0
        except Exception as e:
            logger.error(f"Failed to remove user {user_id} from event {event_id}: {e}", exc_info=True)
            event_error = e

        try:
            await self.store.update_one(
                USERS, ops.by_id(user_id), ops.pull("events", event_id=event_id, role=role.value)
            )
        except StoreError as e:
            logger.warning(f"Failed to remove event {event_id} from user {user_id}'s index: {e}")
            user_error = e

        if event_error is not None:
            raise event_error
        if not matched:
            raise NotFoundError(f"Event {event_id} not found")

        if changed:
            metrics_tracker.increment_removed()
            logger.info(f"Removed {role.value} {user_id} from event {event_id}")

        warning = None
        if user_error is not None:
            metrics_tracker.increment_warnings()
            warning = PartialConsistencyWarning(
                f"User {user_id} removed from event {event_id} but their event index was not updated: {user_error}",
                event_id=event_id,
                user_id=user_id,
            )
        return MembershipOutcome(event_id=event_id, user_id=user_id, role=role, changed=changed, warning=warning)

    async def delete_event(self, event_id: str) -> DeletionOutcome:
        """
        Delete an event, then pull it from every User's index.

        Raises:
            NotFoundError: If the event does not exist
        """
        result = await self.store.delete_one(EVENTS, ops.by_id(event_id))
        if result.deleted_count == 0:
            raise NotFoundError(f"Event {event_id} not found")
        logger.info(f"Deleted event {event_id}")

        try:
            cascade = await self.store.update_many(
                USERS, ops.array_contains("events", event_id=event_id), ops.pull("events", event_id=event_id)
            )
        except StoreError as e:
            metrics_tracker.increment_cascade_failures()
            logger.warning(f"Cascade after deleting event {event_id} failed: {e}")
            return DeletionOutcome(
                entity_id=event_id,
                warning=PartialConsistencyWarning(
                    f"Event {event_id} deleted but user indexes still reference it: {e}", event_id=event_id
                ),
            )
        return DeletionOutcome(entity_id=event_id, cascaded=cascade.modified_count)

    async def delete_user(self, user_id: str) -> DeletionOutcome:
        """
        Delete a user, then pull them from every Event roster and assignment.

        Raises:
            NotFoundError: If the user does not exist
        """
        result = await self.store.delete_one(USERS, ops.by_id(user_id))
        if result.deleted_count == 0:
            raise NotFoundError(f"User {user_id} not found")
        logger.info(f"Deleted user {user_id}")

        try:
            cascade = await self.store.update_many(
                EVENTS, _involves(user_id), _remove_participant(user_id, (Role.INTERVIEWER, Role.INTERVIEWEE))
            )
        except StoreError as e:
            metrics_tracker.increment_cascade_failures()
            logger.warning(f"Cascade after deleting user {user_id} failed: {e}")
            return DeletionOutcome(
                entity_id=user_id,
                warning=PartialConsistencyWarning(
                    f"User {user_id} deleted but some event rosters still list them: {e}",
                    event_id="*",
                    user_id=user_id,
                ),
            )
        return DeletionOutcome(entity_id=user_id, cascaded=cascade.modified_count)

    async def reconcile_user(self, user_id: str, max_retries: Optional[int] = None) -> ReconcileReport:
        """
        Rebuild a user's event index from the Event rosters.

        Entries that still match a roster keep their order; missing ones are
        appended in event order; stale or duplicate ones are dropped. The
        rewrite is conditioned on the index being unchanged since it was read.

        Raises:
            NotFoundError: If the user does not exist
            ConcurrencyError: If the index kept changing underneath the repair
        """
        if max_retries is None:
            max_retries = config["membership"]["save_retries"]

        for attempt in range(max_retries + 1):
            user_doc = await self.store.get(USERS, user_id)
            if user_doc is None:
                raise NotFoundError(f"User {user_id} not found")
            original_index = user_doc.get("events") or []

            expected = {}
            for document in await self.store.find(EVENTS, _involves(user_id)):
                role = Event.from_document(document).role_of(user_id)
                if role is not None:
                    expected[document["_id"]] = role

            report = ReconcileReport(user_id=user_id)
            rebuilt: List[EventMembership] = []
            seen = set()
            for entry in original_index:
                membership = EventMembership(**entry)
                role = Role(membership.role)
                if expected.get(membership.event_id) == role and membership.event_id not in seen:
                    rebuilt.append(membership)
                    seen.add(membership.event_id)
                else:
                    report.removed.append((membership.event_id, role))
            for event_id, role in expected.items():
                if event_id not in seen:
                    rebuilt.append(EventMembership(event_id=event_id, role=role))
                    report.added.append((event_id, role))

            if not report.repaired:
                return report

            result = await self.store.update_one(
                USERS,
                ops.all_of(ops.by_id(user_id), ops.field_equals("events", original_index)),
                ops.set_fields(events=[m.model_dump() for m in rebuilt]),
            )
            if result.matched_count:
                metrics_tracker.increment_repairs(report.repaired)
                logger.info(
                    f"Reconciled user {user_id}: added {len(report.added)}, removed {len(report.removed)} index entries"
                )
                return report

            logger.warning(f"User {user_id} index changed during reconcile attempt {attempt + 1}; retrying")
            await asyncio.sleep(config["membership"]["retry_delay"])

        raise ConcurrencyError(f"Could not reconcile user {user_id} after {max_retries} retries")

    async def _index_membership(self, event_id: str, user_id: str, role: Role) -> Optional[PartialConsistencyWarning]:
        try:
            await self._push_index_entry(event_id, user_id, role)
            return None
        except (StoreError, NotFoundError) as e:
            logger.warning(f"Index write failed for user {user_id} on event {event_id}: {e}. Reconciling...")
            last_error: Exception = e

        for attempt in range(self.repair_attempts):
            try:
                event = await self.events.load(event_id)
                if event is None or event.role_of(user_id) != role:
                    logger.info(f"Membership of {user_id} in {event_id} is gone; nothing to index")
                    return None
                await self._push_index_entry(event_id, user_id, role)
                metrics_tracker.increment_repairs()
                logger.info(f"Repaired index of user {user_id} for event {event_id} on attempt {attempt + 1}")
                return None
            except (StoreError, NotFoundError) as e:
                logger.warning(f"Repair attempt {attempt + 1} for user {user_id} on event {event_id} failed: {e}")
                last_error = e

        metrics_tracker.increment_warnings()
        return PartialConsistencyWarning(
            f"User {user_id} added to event {event_id} but their event index could not be updated: {last_error}",
            event_id=event_id,
            user_id=user_id,
        )

    async def _push_index_entry(self, event_id: str, user_id: str, role: Role) -> None:
        """
        Make `(event_id, role)` the user's only index entry for the event.

        Entries for the event under another role are stale leftovers of a
        failed removal and are replaced in the same write.
        """
        entry = EventMembership(event_id=event_id, role=role).model_dump()
        stale: List[Document] = []

        def needs_entry(doc: Document) -> bool:
            return [e for e in doc.get("events") or [] if e.get("event_id") == event_id] != [entry]

        def replace_entry(doc: Document) -> None:
            stale.extend(e for e in doc.get("events") or [] if e.get("event_id") == event_id and e != entry)
            ops.chain(ops.pull("events", event_id=event_id), ops.push("events", entry))(doc)

        result = await self.store.update_one(USERS, ops.all_of(ops.by_id(user_id), needs_entry), replace_entry)
        if result.matched_count == 0 and not await self.users.exists(user_id):
            raise NotFoundError(f"User {user_id} not found")
        if stale:
            metrics_tracker.increment_repairs(len(stale))
            logger.warning(f"Replaced stale index entries {stale} of user {user_id} for event {event_id}")
