"""
Read-side queries over events and users.

Feasibility is derived on demand from the stored interviewer matrices and is
never persisted.
"""

import logging
from datetime import datetime
from typing import List, Optional

from interview_scheduler.domain.aggregates import EventAggregate
from interview_scheduler.domain.availability import AvailabilityMatrix
from interview_scheduler.domain.models import Event, EventMembership, Interviewee, Interviewer, User
from interview_scheduler.repository import RepositoryFactory
from interview_scheduler.store.protocols import DocumentStore

logger = logging.getLogger(__name__)


class EventQueries:
    """Queries the HTTP layer renders directly."""

    def __init__(self, store: DocumentStore):
        factory = RepositoryFactory(store)
        self.events = factory.create_event_repository()
        self.users = factory.create_user_repository()

    async def list_events(self) -> List[Event]:
        return await self.events.list()

    async def get_event(self, event_id: str) -> Event:
        return await self.events.get(event_id)

    async def get_interviewers(self, event_id: str) -> List[Interviewer]:
        return (await self.events.get(event_id)).interviewers

    async def get_interviewees(self, event_id: str) -> List[Interviewee]:
        return (await self.events.get(event_id)).interviewees

    async def get_time_slots(self, event_id: str, threshold: Optional[int] = None) -> AvailabilityMatrix:
        """
        Feasibility matrix for an event.

        Args:
            event_id: Event to evaluate
            threshold: Override for the event's `interviewers_needed`

        Raises:
            NotFoundError: If the event does not exist
            NoInterviewersError: If the event has no interviewers
            ShapeMismatchError: If stored interviewer matrices are misaligned
        """
        aggregate = EventAggregate(await self.events.get(event_id))
        feasibility = aggregate.feasibility(threshold)
        logger.debug(f"Computed feasibility for event {event_id} over {len(aggregate.event.interviewers)} interviewers")
        return feasibility

    async def get_feasible_slot_times(self, event_id: str) -> List[datetime]:
        """Start times of every feasible slot, in chronological order."""
        return EventAggregate(await self.events.get(event_id)).feasible_slot_times()

    async def get_user(self, user_id: str) -> User:
        return await self.users.get(user_id)

    async def get_user_events(self, user_id: str) -> List[EventMembership]:
        return (await self.users.get(user_id)).events
