"""
Command handler implementations.

Handlers load entities through repositories, run the aggregate's business
rules, persist through guarded single-document writes, and route every roster
change through the membership ledger.
"""

import logging
from typing import Optional

from interview_scheduler.domain.aggregates import EventAggregate
from interview_scheduler.domain.models import Role
from interview_scheduler.errors import SchedulingError
from interview_scheduler.ledger.membership import MembershipLedger
from interview_scheduler.repository import RepositoryFactory
from interview_scheduler.store import operations as ops
from interview_scheduler.store.protocols import EVENTS, DocumentStore

from . import CommandExecutionError, CommandHandler, CommandResult, CommandValidationError
from .event_commands import (
    AssignInterviewerCommand,
    CreateEventCommand,
    DeleteEventCommand,
    RecordChosenSlotCommand,
    SubmitAvailabilityCommand,
    UnassignInterviewerCommand,
    UpdateEventCommand,
)
from .membership_commands import (
    AddParticipantCommand,
    DeleteUserCommand,
    ReconcileUserCommand,
    RemoveParticipantCommand,
)

logger = logging.getLogger(__name__)


def _warnings(*warnings) -> list:
    return [str(w) for w in warnings if w is not None]


class EventCommandHandler(CommandHandler):
    """Handles event lifecycle and interviewee flow commands."""

    def __init__(self, store: DocumentStore, ledger: Optional[MembershipLedger] = None):
        """
        Initialize the handler.

        Args:
            store: Document store holding events and users
            ledger: Membership ledger (built over `store` if not provided)
        """
        self.store = store
        self.ledger = ledger or MembershipLedger(store)
        self.repo_factory = RepositoryFactory(store)

    async def handle(self, command) -> CommandResult:
        """
        Handle an event command.

        Args:
            command: Event command to handle

        Returns:
            CommandResult: Result of command execution
        """
        if isinstance(command, CreateEventCommand):
            return await self._run(self._handle_create, command, "create event")
        elif isinstance(command, UpdateEventCommand):
            return await self._run(self._handle_update, command, "update event")
        elif isinstance(command, SubmitAvailabilityCommand):
            return await self._run(self._handle_submit_availability, command, "submit availability")
        elif isinstance(command, RecordChosenSlotCommand):
            return await self._run(self._handle_record_slot, command, "record chosen slot")
        elif isinstance(command, AssignInterviewerCommand):
            return await self._run(self._handle_assign, command, "assign interviewer")
        elif isinstance(command, UnassignInterviewerCommand):
            return await self._run(self._handle_unassign, command, "unassign interviewer")
        elif isinstance(command, DeleteEventCommand):
            return await self._run(self._handle_delete, command, "delete event")
        else:
            raise CommandValidationError(f"Unknown command type: {type(command)}")

    async def _run(self, handler, command, action: str) -> CommandResult:
        try:
            return await handler(command)
        except (SchedulingError, CommandValidationError):
            raise
        except Exception as e:
            logger.error(f"Failed to {action} ({command.correlation_id}): {e}", exc_info=True)
            raise CommandExecutionError(f"Failed to {action}: {e}", original_error=e)

    async def _handle_create(self, command: CreateEventCommand) -> CommandResult:
        """Handle CreateEventCommand."""
        events = self.repo_factory.create_event_repository()
        users = self.repo_factory.create_user_repository()

        # Resolve the creator first so an unknown user leaves nothing behind
        creator = await users.resolve(user_id=command.creator_user_id)

        aggregate = EventAggregate.create(
            title=command.title,
            description=command.description,
            start_date=command.start_date,
            end_date=command.end_date,
            interviewers_needed=command.interviewers_needed,
            availability_increment=command.availability_increment,
            event_id=command.event_id,
        )
        event_id = await events.insert(aggregate.event)

        try:
            outcome = await self.ledger.add(event_id, Role.INTERVIEWER, user_id=creator.id)
        except Exception:
            await self.store.delete_one(EVENTS, ops.by_id(event_id))
            logger.warning(f"Rolled back event {event_id}: creator {creator.id} could not be added")
            raise

        event = await events.get(event_id)
        logger.info(f"Created event {event_id} '{command.title}' for creator {creator.id}")
        return CommandResult(
            aggregate_id=event_id,
            version=event.version,
            message=f"Event '{command.title}' created successfully",
            warnings=_warnings(outcome.warning),
            data=event.model_dump(),
        )

    async def _handle_update(self, command: UpdateEventCommand) -> CommandResult:
        """Handle UpdateEventCommand."""
        events = self.repo_factory.create_event_repository()
        aggregate, changes = await events.modify(
            command.event_id,
            lambda agg: agg.update_fields(
                title=command.title,
                description=command.description,
                start_date=command.start_date,
                end_date=command.end_date,
                interviewers_needed=command.interviewers_needed,
            ),
        )
        logger.info(f"Updated event {command.event_id}: {sorted(changes)}")
        return CommandResult(
            aggregate_id=command.event_id,
            version=aggregate.version,
            message="Event updated",
            data=aggregate.event.model_dump(),
        )

    async def _handle_submit_availability(self, command: SubmitAvailabilityCommand) -> CommandResult:
        """Handle SubmitAvailabilityCommand."""
        events = self.repo_factory.create_event_repository()
        aggregate, matrix = await events.modify(
            command.event_id, lambda agg: agg.submit_availability(command.user_id, command.days)
        )
        logger.debug(f"Interviewer {command.user_id} submitted availability for event {command.event_id}")
        return CommandResult(
            aggregate_id=command.event_id,
            version=aggregate.version,
            message="Availability updated",
            data=matrix.model_dump(),
        )

    async def _handle_record_slot(self, command: RecordChosenSlotCommand) -> CommandResult:
        """Handle RecordChosenSlotCommand."""
        events = self.repo_factory.create_event_repository()
        aggregate, interviewee = await events.modify(
            command.event_id, lambda agg: agg.record_chosen_slot(command.interviewee_id, command.time_chosen)
        )
        logger.info(
            f"Interviewee {command.interviewee_id} chose {command.time_chosen.isoformat()} in event {command.event_id}"
        )
        return CommandResult(
            aggregate_id=command.event_id,
            version=aggregate.version,
            message="Time slot recorded",
            data=interviewee.model_dump(),
        )

    async def _handle_assign(self, command: AssignInterviewerCommand) -> CommandResult:
        """Handle AssignInterviewerCommand."""
        events = self.repo_factory.create_event_repository()
        aggregate, interviewee = await events.modify(
            command.event_id, lambda agg: agg.assign_interviewer(command.interviewee_id, command.interviewer_id)
        )
        logger.info(f"Assigned {command.interviewer_id} to interviewee {command.interviewee_id}")
        return CommandResult(
            aggregate_id=command.event_id,
            version=aggregate.version,
            message="Interviewer assigned",
            data=interviewee.model_dump(),
        )

    async def _handle_unassign(self, command: UnassignInterviewerCommand) -> CommandResult:
        """Handle UnassignInterviewerCommand."""
        events = self.repo_factory.create_event_repository()
        aggregate, interviewee = await events.modify(
            command.event_id, lambda agg: agg.unassign_interviewer(command.interviewee_id, command.interviewer_id)
        )
        logger.info(f"Unassigned {command.interviewer_id} from interviewee {command.interviewee_id}")
        return CommandResult(
            aggregate_id=command.event_id,
            version=aggregate.version,
            message="Interviewer unassigned",
            data=interviewee.model_dump(),
        )

    async def _handle_delete(self, command: DeleteEventCommand) -> CommandResult:
        """Handle DeleteEventCommand."""
        outcome = await self.ledger.delete_event(command.event_id)
        return CommandResult(
            aggregate_id=command.event_id,
            message="Event deleted",
            warnings=_warnings(outcome.warning),
            data={"users_updated": outcome.cascaded},
        )


class MembershipCommandHandler(CommandHandler):
    """Handles roster membership and user lifecycle commands."""

    def __init__(self, store: DocumentStore, ledger: Optional[MembershipLedger] = None):
        self.store = store
        self.ledger = ledger or MembershipLedger(store)
        self.repo_factory = RepositoryFactory(store)

    async def handle(self, command) -> CommandResult:
        """
        Handle a membership command.

        Args:
            command: Membership command to handle

        Returns:
            CommandResult: Result of command execution
        """
        try:
            if isinstance(command, AddParticipantCommand):
                return await self._handle_add(command)
            elif isinstance(command, RemoveParticipantCommand):
                return await self._handle_remove(command)
            elif isinstance(command, DeleteUserCommand):
                return await self._handle_delete_user(command)
            elif isinstance(command, ReconcileUserCommand):
                return await self._handle_reconcile(command)
        except (SchedulingError, CommandValidationError):
            raise
        except Exception as e:
            logger.error(f"Failed to handle {type(command).__name__}: {e}", exc_info=True)
            raise CommandExecutionError(f"Failed to handle {type(command).__name__}: {e}", original_error=e)
        raise CommandValidationError(f"Unknown command type: {type(command)}")

    async def _handle_add(self, command: AddParticipantCommand) -> CommandResult:
        """Handle AddParticipantCommand."""
        outcome = await self.ledger.add(command.event_id, command.role, user_id=command.user_id, email=command.email)
        event = await self.repo_factory.create_event_repository().get(command.event_id)
        return CommandResult(
            aggregate_id=command.event_id,
            version=event.version,
            message="1 user(s) added successfully",
            warnings=_warnings(outcome.warning),
            data=event.model_dump(),
        )

    async def _handle_remove(self, command: RemoveParticipantCommand) -> CommandResult:
        """Handle RemoveParticipantCommand."""
        outcome = await self.ledger.remove(command.event_id, command.user_id, command.role)
        event = await self.repo_factory.create_event_repository().get(command.event_id)
        return CommandResult(
            aggregate_id=command.event_id,
            version=event.version,
            message=f"{int(outcome.changed)} user(s) removed",
            warnings=_warnings(outcome.warning),
            data=event.model_dump(),
        )

    async def _handle_delete_user(self, command: DeleteUserCommand) -> CommandResult:
        """Handle DeleteUserCommand."""
        outcome = await self.ledger.delete_user(command.user_id)
        return CommandResult(
            aggregate_id=command.user_id,
            message="User deleted",
            warnings=_warnings(outcome.warning),
            data={"events_updated": outcome.cascaded},
        )

    async def _handle_reconcile(self, command: ReconcileUserCommand) -> CommandResult:
        """Handle ReconcileUserCommand."""
        report = await self.ledger.reconcile_user(command.user_id)
        return CommandResult(
            aggregate_id=command.user_id,
            message=f"Repaired {report.repaired} index entries",
            data={
                "added": [{"event_id": e, "role": r.value} for e, r in report.added],
                "removed": [{"event_id": e, "role": r.value} for e, r in report.removed],
            },
        )
