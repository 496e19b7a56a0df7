"""
Event aggregate.

Wraps an `Event` and holds the business rules for creating an event, partial
field updates, availability submission, slot choice and interviewee
assignment. The aggregate is pure in-memory state; repositories persist it
and the membership ledger owns roster additions and removals.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from interview_scheduler.config import config
from interview_scheduler.errors import (
    DuplicateMembershipError,
    InfeasibleSlotError,
    NoInterviewersError,
    NotFoundError,
)

from .availability import AvailabilityMatrix, Day, DateLike, to_date
from .models import Event, Interviewee, Interviewer
from .quorum import compute_feasibility

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("title", "description", "start_date", "end_date", "interviewers_needed")


class EventAggregate:
    """
    Aggregate root for a single interview event.

    Command methods validate against the current state and mutate the wrapped
    `Event` in place; nothing is written until a repository saves it.
    """

    def __init__(self, event: Event):
        self.event = event

    @property
    def event_id(self) -> str:
        return self.event.id

    @property
    def version(self) -> int:
        return self.event.version

    @classmethod
    def create(
        cls,
        title: str,
        start_date: DateLike,
        end_date: DateLike,
        interviewers_needed: int = 1,
        description: str = "",
        availability_increment: Optional[int] = None,
        slots_per_day: Optional[int] = None,
        event_id: Optional[str] = None,
    ) -> "EventAggregate":
        """
        Create a new event with empty rosters.

        The creator is added afterwards through the membership ledger so the
        reverse index is written the same way as for any other participant.

        Raises:
            InvalidRangeError: If end_date falls before start_date
        """
        if slots_per_day is None:
            slots_per_day = config["scheduling"]["slots_per_day"]
        # Validates the range before anything is stored
        AvailabilityMatrix.build(start_date, end_date, slots_per_day)

        fields: Dict[str, Any] = {
            "title": title,
            "description": description,
            "start_date": to_date(start_date),
            "end_date": to_date(end_date),
            "interviewers_needed": interviewers_needed,
            "slots_per_day": slots_per_day,
            "availability_increment": availability_increment,
        }
        if event_id is not None:
            fields["id"] = event_id
        return cls(Event(**fields))

    def blank_availability(self) -> AvailabilityMatrix:
        """Zero matrix shaped like the event's existing interviewer matrices."""
        if self.event.interviewers:
            return self.event.interviewers[0].availability.blank_copy()
        return AvailabilityMatrix.build(self.event.start_date, self.event.end_date, self.event.slots_per_day)

    def update_fields(
        self,
        title: Optional[str] = None,
        description: Optional[str] = None,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None,
        interviewers_needed: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Merge the provided fields; None leaves a field untouched.

        A changed date range regenerates every interviewer matrix by calendar
        date: surviving days keep their slots, new days start unavailable.

        Returns:
            Dict[str, Any]: The fields that were applied

        Raises:
            InvalidRangeError: If the resulting range is inverted
        """
        provided = {
            "title": title,
            "description": description,
            "start_date": to_date(start_date) if start_date is not None else None,
            "end_date": to_date(end_date) if end_date is not None else None,
            "interviewers_needed": interviewers_needed,
        }
        changes = {name: value for name, value in provided.items() if value is not None}

        new_start = changes.get("start_date", self.event.start_date)
        new_end = changes.get("end_date", self.event.end_date)
        range_changed = (new_start, new_end) != (self.event.start_date, self.event.end_date)
        if range_changed:
            AvailabilityMatrix.build(new_start, new_end, self.event.slots_per_day)
            resized = [
                interviewer.availability.resized(new_start, new_end, self.event.slots_per_day)
                for interviewer in self.event.interviewers
            ]
            for interviewer, matrix in zip(self.event.interviewers, resized):
                interviewer.availability = matrix
            logger.info(
                f"Event {self.event_id} range changed to {new_start}..{new_end}; "
                f"resized {len(resized)} availability matrices"
            )

        for name in _UPDATABLE_FIELDS:
            if name in changes:
                setattr(self.event, name, changes[name])
        return changes

    def submit_availability(self, user_id: str, days: Sequence[Union[Day, Sequence[bool]]]) -> AvailabilityMatrix:
        """
        Replace an interviewer's whole availability matrix.

        Raises:
            NotFoundError: If `user_id` is not an interviewer of this event
            ShapeMismatchError: If `days` does not match the matrix shape
        """
        interviewer = self._require_interviewer(user_id)
        interviewer.availability = interviewer.availability.replace(days)
        return interviewer.availability

    def feasibility(self, threshold: Optional[int] = None) -> AvailabilityMatrix:
        """
        Feasibility matrix over the current interviewer roster.

        Raises:
            NoInterviewersError: If the event has no interviewers
            ShapeMismatchError: If interviewer matrices are misaligned
        """
        if threshold is None:
            threshold = self.event.interviewers_needed
        return compute_feasibility([i.availability for i in self.event.interviewers], threshold)

    @property
    def slot_length(self) -> timedelta:
        minutes = self.event.availability_increment or config["scheduling"]["slot_minutes"]
        return timedelta(minutes=minutes)

    def slot_start(self, day: date, slot_index: int) -> datetime:
        day_start = datetime.combine(day, datetime.min.time()) + timedelta(
            hours=config["scheduling"]["day_start_hour"]
        )
        return day_start + slot_index * self.slot_length

    def locate_slot(self, moment: datetime) -> Optional[Tuple[int, int]]:
        """
        Map a point in time to its (day index, slot index).

        Aware datetimes are compared in UTC. Returns None when the moment falls
        outside every slot of the event.
        """
        if moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
        reference = self.blank_availability()
        for day_index, day in enumerate(reference.days):
            if day.date != moment.date():
                continue
            offset = moment - self.slot_start(day.date, 0)
            if offset < timedelta(0):
                return None
            slot_index = int(offset / self.slot_length)
            return (day_index, slot_index) if slot_index < len(day.times) else None
        return None

    def feasible_slot_times(self) -> List[datetime]:
        feasible = self.feasibility()
        return [
            self.slot_start(day.date, slot_index)
            for day in feasible.days
            for slot_index, free in enumerate(day.times)
            if free
        ]

    def record_chosen_slot(self, interviewee_id: str, slot_datetime: datetime) -> Interviewee:
        """
        Record the slot an interviewee picked.

        When `scheduling.enforce_feasible_choice` is on, the time must fall in
        a slot that currently has interviewer quorum.

        Raises:
            NotFoundError: If the interviewee is not on this event
            InfeasibleSlotError: If the slot lacks quorum or lies outside the event
        """
        interviewee = self._require_interviewee(interviewee_id)

        if config["scheduling"]["enforce_feasible_choice"]:
            position = self.locate_slot(slot_datetime)
            if position is None:
                raise InfeasibleSlotError(f"{slot_datetime.isoformat()} is not a slot of event {self.event_id}")
            try:
                feasible = self.feasibility()
            except NoInterviewersError:
                raise InfeasibleSlotError(f"Event {self.event_id} has no interviewers to hold a slot")
            if not feasible.is_free(*position):
                raise InfeasibleSlotError(
                    f"Slot {slot_datetime.isoformat()} does not have {self.event.interviewers_needed} free interviewers"
                )

        interviewee.time_chosen = slot_datetime
        return interviewee

    def assign_interviewer(self, interviewee_id: str, interviewer_id: str) -> Interviewee:
        """
        Add an interviewer to an interviewee's assignment set.

        Raises:
            NotFoundError: If either participant is missing from the roster
            DuplicateMembershipError: If the interviewer is already assigned
        """
        interviewee = self._require_interviewee(interviewee_id)
        self._require_interviewer(interviewer_id)
        if interviewer_id in interviewee.interviewers:
            raise DuplicateMembershipError(
                f"Interviewer {interviewer_id} already assigned to {interviewee_id}",
                event_id=self.event_id,
                user_id=interviewer_id,
            )
        interviewee.interviewers.append(interviewer_id)
        return interviewee

    def unassign_interviewer(self, interviewee_id: str, interviewer_id: str) -> Interviewee:
        """Remove an interviewer from an interviewee's assignment set; absent ids are a no-op."""
        interviewee = self._require_interviewee(interviewee_id)
        interviewee.interviewers = [i for i in interviewee.interviewers if i != interviewer_id]
        return interviewee

    def _require_interviewer(self, user_id: str) -> Interviewer:
        interviewer = self.event.find_interviewer(user_id)
        if interviewer is None:
            raise NotFoundError(f"User {user_id} is not an interviewer of event {self.event_id}")
        return interviewer

    def _require_interviewee(self, user_id: str) -> Interviewee:
        interviewee = self.event.find_interviewee(user_id)
        if interviewee is None:
            raise NotFoundError(f"User {user_id} is not an interviewee of event {self.event_id}")
        return interviewee
