"""
Unit tests for the Event aggregate (interview_scheduler/domain/aggregates.py).

Tests creation, partial field updates, availability submission, slot choice
and the interviewee assignment flow on in-memory state.
"""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from interview_scheduler.config import config
from interview_scheduler.domain.aggregates import EventAggregate
from interview_scheduler.domain.availability import AvailabilityMatrix
from interview_scheduler.domain.models import Interviewee, Interviewer, Role
from interview_scheduler.errors import (
    DuplicateMembershipError,
    InfeasibleSlotError,
    InvalidRangeError,
    NoInterviewersError,
    NotFoundError,
    ShapeMismatchError,
)


@pytest.fixture
def aggregate() -> EventAggregate:
    """Two-day, four-slot event with interviewers i1, i2 and interviewee v1."""
    agg = EventAggregate.create(
        title="Phone screens",
        start_date=date(2021, 2, 17),
        end_date=date(2021, 2, 18),
        interviewers_needed=2,
        slots_per_day=4,
        event_id="event-1",
    )
    for user_id in ("i1", "i2"):
        agg.event.interviewers.append(Interviewer(user_id=user_id, availability=agg.blank_availability()))
    agg.event.interviewees.append(Interviewee(user_id="v1"))
    return agg


class TestCreate:
    def test_create_event(self):
        agg = EventAggregate.create(
            title="Onsite",
            description="Final round",
            start_date="2021-02-17T18:10:00.064Z",
            end_date="2021-03-17T18:10:00.064Z",
            interviewers_needed=2,
            availability_increment=30,
        )

        assert agg.event.title == "Onsite"
        assert agg.event.start_date == date(2021, 2, 17)
        assert agg.event.end_date == date(2021, 3, 17)
        assert agg.event.slots_per_day == config["scheduling"]["slots_per_day"]
        assert agg.event.interviewers == []
        assert agg.version == 0

    def test_create_with_inverted_range_raises(self):
        with pytest.raises(InvalidRangeError):
            EventAggregate.create(title="Bad", start_date=date(2021, 3, 1), end_date=date(2021, 2, 1))

    def test_blank_availability_without_interviewers_uses_range(self):
        agg = EventAggregate.create(title="Empty", start_date=date(2021, 2, 17), end_date=date(2021, 2, 19), slots_per_day=5)

        assert agg.blank_availability().shape == (5, 5, 5)

    def test_blank_availability_follows_existing_interviewers(self, aggregate):
        aggregate.event.start_date = date(2021, 1, 1)

        assert len(aggregate.blank_availability().days) == 2


class TestUpdateFields:
    """Test partial-update semantics."""

    def test_only_provided_fields_change(self, aggregate):
        changes = aggregate.update_fields(title="Renamed")

        assert changes == {"title": "Renamed"}
        assert aggregate.event.title == "Renamed"
        assert aggregate.event.interviewers_needed == 2

    def test_zero_threshold_is_applied(self, aggregate):
        aggregate.update_fields(interviewers_needed=0)

        assert aggregate.event.interviewers_needed == 0

    def test_range_change_resizes_matrices(self, aggregate):
        aggregate.submit_availability("i1", [[True, False, False, False], [False, True, False, False]])

        aggregate.update_fields(end_date=date(2021, 2, 20))

        matrix = aggregate.event.find_interviewer("i1").availability
        assert len(matrix.days) == 4
        assert matrix.days[1].times == [False, True, False, False]
        assert matrix.days[3].times == [False] * 4
        assert aggregate.event.end_date == date(2021, 2, 20)

    def test_inverted_range_rejected_without_changes(self, aggregate):
        with pytest.raises(InvalidRangeError):
            aggregate.update_fields(title="Never applied", end_date=date(2021, 2, 1))

        assert aggregate.event.title == "Phone screens"
        assert len(aggregate.event.interviewers[0].availability.days) == 2


class TestSubmitAvailability:
    def test_submit_replaces_matrix(self, aggregate):
        matrix = aggregate.submit_availability("i2", [[True] * 4, [False] * 4])

        assert aggregate.event.find_interviewer("i2").availability == matrix
        assert matrix.days[0].times == [True] * 4

    def test_unknown_interviewer_raises(self, aggregate):
        with pytest.raises(NotFoundError):
            aggregate.submit_availability("v1", [[True] * 4, [True] * 4])

    def test_wrong_shape_raises(self, aggregate):
        with pytest.raises(ShapeMismatchError):
            aggregate.submit_availability("i1", [[True] * 4])


class TestFeasibility:
    def test_uses_interviewers_needed_by_default(self, aggregate):
        aggregate.submit_availability("i1", [[True, True, False, False], [False] * 4])
        aggregate.submit_availability("i2", [[True, False, False, False], [False] * 4])

        assert aggregate.feasibility().days[0].times == [True, False, False, False]
        assert aggregate.feasibility(threshold=1).days[0].times == [True, True, False, False]

    def test_no_interviewers_raises(self):
        agg = EventAggregate.create(title="Empty", start_date=date(2021, 2, 17), end_date=date(2021, 2, 17))

        with pytest.raises(NoInterviewersError):
            agg.feasibility()


class TestSlotTimes:
    """Test mapping between slots and datetimes."""

    def test_slot_start_uses_day_start_and_increment(self, aggregate):
        aggregate.event.availability_increment = 30

        assert aggregate.slot_start(date(2021, 2, 17), 3) == datetime(2021, 2, 17, 10, 30)

    def test_locate_slot(self, aggregate):
        assert aggregate.locate_slot(datetime(2021, 2, 18, 11, 15)) == (1, 2)

    def test_locate_slot_outside_event(self, aggregate):
        assert aggregate.locate_slot(datetime(2021, 2, 17, 8, 0)) is None
        assert aggregate.locate_slot(datetime(2021, 2, 17, 13, 0)) is None
        assert aggregate.locate_slot(datetime(2021, 2, 19, 9, 0)) is None

    def test_locate_slot_converts_aware_times_to_utc(self, aggregate):
        moment = datetime(2021, 2, 17, 4, 0, tzinfo=timezone(timedelta(hours=-5)))

        assert aggregate.locate_slot(moment) == (0, 0)

    def test_feasible_slot_times(self, aggregate):
        aggregate.submit_availability("i1", [[False, True, False, False], [False, False, False, True]])
        aggregate.submit_availability("i2", [[False, True, False, False], [False, False, False, True]])

        assert aggregate.feasible_slot_times() == [datetime(2021, 2, 17, 10), datetime(2021, 2, 18, 12)]


class TestRecordChosenSlot:
    def test_feasible_slot_recorded(self, aggregate):
        aggregate.submit_availability("i1", [[True] * 4, [False] * 4])
        aggregate.submit_availability("i2", [[True] * 4, [False] * 4])

        interviewee = aggregate.record_chosen_slot("v1", datetime(2021, 2, 17, 9))

        assert interviewee.time_chosen == datetime(2021, 2, 17, 9)
        assert aggregate.event.find_interviewee("v1").time_chosen == datetime(2021, 2, 17, 9)

    def test_infeasible_slot_rejected(self, aggregate):
        aggregate.submit_availability("i1", [[True] * 4, [False] * 4])

        with pytest.raises(InfeasibleSlotError, match="2 free interviewers"):
            aggregate.record_chosen_slot("v1", datetime(2021, 2, 17, 9))

        assert aggregate.event.find_interviewee("v1").time_chosen is None

    def test_time_outside_event_rejected(self, aggregate):
        with pytest.raises(InfeasibleSlotError, match="not a slot"):
            aggregate.record_chosen_slot("v1", datetime(2021, 3, 1, 9))

    def test_unknown_interviewee_raises(self, aggregate):
        with pytest.raises(NotFoundError):
            aggregate.record_chosen_slot("i1", datetime(2021, 2, 17, 9))

    def test_without_interviewers_rejected(self):
        agg = EventAggregate.create(title="Solo", start_date=date(2021, 2, 17), end_date=date(2021, 2, 17))
        agg.event.interviewees.append(Interviewee(user_id="v1"))

        with pytest.raises(InfeasibleSlotError, match="no interviewers"):
            agg.record_chosen_slot("v1", datetime(2021, 2, 17, 9))

    def test_enforcement_can_be_disabled(self, aggregate):
        with patch.dict(config["scheduling"], {"enforce_feasible_choice": False}):
            aggregate.record_chosen_slot("v1", datetime(2021, 3, 1, 9))

        assert aggregate.event.find_interviewee("v1").time_chosen == datetime(2021, 3, 1, 9)


class TestAssignment:
    def test_assign_and_unassign(self, aggregate):
        aggregate.assign_interviewer("v1", "i1")
        aggregate.assign_interviewer("v1", "i2")
        aggregate.unassign_interviewer("v1", "i1")

        assert aggregate.event.find_interviewee("v1").interviewers == ["i2"]

    def test_duplicate_assignment_raises(self, aggregate):
        aggregate.assign_interviewer("v1", "i1")

        with pytest.raises(DuplicateMembershipError):
            aggregate.assign_interviewer("v1", "i1")

        assert aggregate.event.find_interviewee("v1").interviewers == ["i1"]

    def test_only_roster_interviewers_can_be_assigned(self, aggregate):
        with pytest.raises(NotFoundError, match="not an interviewer"):
            aggregate.assign_interviewer("v1", "stranger")

    def test_unassign_absent_is_noop(self, aggregate):
        interviewee = aggregate.unassign_interviewer("v1", "i1")

        assert interviewee.interviewers == []

    def test_role_lookup(self, aggregate):
        assert aggregate.event.role_of("i1") is Role.INTERVIEWER
        assert aggregate.event.role_of("v1") is Role.INTERVIEWEE
        assert aggregate.event.role_of("nobody") is None
