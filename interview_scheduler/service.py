"""
Service wiring for the scheduling core.

`SchedulerService` is what the surrounding HTTP layer talks to: it owns one
document store, one membership ledger, both command handlers and the query
side, and routes each command to the handler that owns it.
"""

from typing import Optional

from interview_scheduler.commands import Command, CommandResult, CommandValidationError
from interview_scheduler.commands.event_commands import (
    AssignInterviewerCommand,
    CreateEventCommand,
    DeleteEventCommand,
    RecordChosenSlotCommand,
    SubmitAvailabilityCommand,
    UnassignInterviewerCommand,
    UpdateEventCommand,
)
from interview_scheduler.commands.handlers import EventCommandHandler, MembershipCommandHandler
from interview_scheduler.commands.membership_commands import (
    AddParticipantCommand,
    DeleteUserCommand,
    ReconcileUserCommand,
    RemoveParticipantCommand,
)
from interview_scheduler.domain.models import User
from interview_scheduler.ledger.membership import MembershipLedger
from interview_scheduler.queries import EventQueries
from interview_scheduler.store import get_document_store
from interview_scheduler.store.protocols import DocumentStore
from interview_scheduler.utils.logger import get_logger

logger = get_logger()

_EVENT_COMMANDS = (
    CreateEventCommand,
    UpdateEventCommand,
    SubmitAvailabilityCommand,
    RecordChosenSlotCommand,
    AssignInterviewerCommand,
    UnassignInterviewerCommand,
    DeleteEventCommand,
)
_MEMBERSHIP_COMMANDS = (
    AddParticipantCommand,
    RemoveParticipantCommand,
    DeleteUserCommand,
    ReconcileUserCommand,
)


class SchedulerService:
    """Entry point tying the store, ledger, handlers and queries together."""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.ledger = MembershipLedger(store)
        self.event_handler = EventCommandHandler(store, self.ledger)
        self.membership_handler = MembershipCommandHandler(store, self.ledger)
        self.queries = EventQueries(store)

    async def execute(self, command: Command) -> CommandResult:
        """
        Dispatch a validated command to its handler.

        Raises:
            CommandValidationError: If no handler accepts the command type
        """
        if isinstance(command, _EVENT_COMMANDS):
            result = await self.event_handler.handle(command)
        elif isinstance(command, _MEMBERSHIP_COMMANDS):
            result = await self.membership_handler.handle(command)
        else:
            raise CommandValidationError(f"Unknown command type: {type(command)}")

        for warning in result.warnings:
            logger.warning(f"{type(command).__name__} on {result.aggregate_id} succeeded with warning: {warning}")
        return result

    async def register_user(self, email: str, name: Optional[str] = None) -> User:
        """Store a new user; identity management itself lives outside the core."""
        user = User(email=email, name=name)
        await self.ledger.users.insert(user)
        logger.info(f"Registered user {user.id}")
        return user


# Global service instance
_service: Optional[SchedulerService] = None


def get_scheduler_service(store: Optional[DocumentStore] = None) -> SchedulerService:
    """
    Get the global scheduler service.

    Args:
        store: Document store (only used on first call; defaults to the
            process-wide in-memory store)
    """
    global _service
    if _service is None:
        _service = SchedulerService(store or get_document_store())
    return _service
