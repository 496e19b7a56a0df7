"""
tests/test_service.py

End-to-end tests of the SchedulerService facade: commands in, stored state
and query results out.
"""

from datetime import datetime
from unittest.mock import patch

import pytest

from interview_scheduler.commands import Command, CommandValidationError
from interview_scheduler.commands.event_commands import (
    CreateEventCommand,
    DeleteEventCommand,
    RecordChosenSlotCommand,
    SubmitAvailabilityCommand,
)
from interview_scheduler.commands.membership_commands import AddParticipantCommand, RemoveParticipantCommand
from interview_scheduler.service import SchedulerService, get_scheduler_service
from interview_scheduler.store.protocols import USERS


@pytest.fixture
def service(store) -> SchedulerService:
    return SchedulerService(store)


@pytest.mark.asyncio
class TestSchedulerService:
    """Test command routing and a full scheduling round."""

    async def test_register_user(self, service, store):
        user = await service.register_user("erin@example.com", "Erin")

        assert (await store.get(USERS, user.id))["email"] == "erin@example.com"

    async def test_full_scheduling_round(self, service, store):
        """Test create, staff, submit availability, pick a slot and tear down."""
        alice = await service.register_user("alice@example.com", "Alice")
        bob = await service.register_user("bob@example.com", "Bob")
        carol = await service.register_user("carol@example.com", "Carol")

        created = await service.execute(
            CreateEventCommand(
                title="Onsite",
                start_date="2021-02-17T10:00:00.000Z",
                end_date="2021-02-17T10:00:00.000Z",
                interviewers_needed=2,
                creator_user_id=alice.id,
                availability_increment=30,
            )
        )
        event_id = created.aggregate_id
        await service.execute(AddParticipantCommand(event_id=event_id, role="interviewer", email="bob@example.com"))
        await service.execute(AddParticipantCommand(event_id=event_id, role="interviewee", user_id=carol.id))

        days = [[False, True] + [False] * 6]
        for user in (alice, bob):
            await service.execute(SubmitAvailabilityCommand(event_id=event_id, user_id=user.id, days=days))

        slot_times = await service.queries.get_feasible_slot_times(event_id)
        assert slot_times == [datetime(2021, 2, 17, 9, 30)]

        await service.execute(
            RecordChosenSlotCommand(event_id=event_id, interviewee_id=carol.id, time_chosen=slot_times[0])
        )
        interviewees = await service.queries.get_interviewees(event_id)
        assert interviewees[0].time_chosen == datetime(2021, 2, 17, 9, 30)

        await service.execute(RemoveParticipantCommand(event_id=event_id, user_id=bob.id, role="interviewer"))
        assert await service.queries.get_user_events(bob.id) == []

        deleted = await service.execute(DeleteEventCommand(event_id=event_id))
        assert deleted.data == {"users_updated": 2}
        assert await service.queries.get_user_events(alice.id) == []
        assert await service.queries.get_user_events(carol.id) == []

    async def test_warnings_are_logged(self, service, store, users, event):
        store.fail_next(USERS, times=2)

        with patch("interview_scheduler.service.logger") as mock_logger:
            result = await service.execute(
                AddParticipantCommand(event_id=event.id, role="interviewer", user_id=users["alice"].id)
            )

        assert result.warnings
        mock_logger.warning.assert_called_once()

    async def test_unknown_command(self, service):
        with pytest.raises(CommandValidationError):
            await service.execute(Command())


class TestGlobalService:
    def test_get_scheduler_service_is_shared(self):
        with patch("interview_scheduler.service._service", None):
            first = get_scheduler_service()
            assert get_scheduler_service() is first
