"""
Membership commands.

Commands that add or remove participants, delete users, and repair a user's
reverse index of event memberships.
"""

from typing import Optional

from pydantic import Field, model_validator

from interview_scheduler.domain.models import Role

from . import Command


class AddParticipantCommand(Command):
    """Command to add a user, identified by id or email, to an event."""

    event_id: str = Field(..., description="Event to join")
    role: Role = Field(..., description="interviewer or interviewee")
    user_id: Optional[str] = Field(None, description="User id of the participant")
    email: Optional[str] = Field(None, description="Email of the participant")

    @model_validator(mode="after")
    def identity_provided(self):
        if not self.user_id and not self.email:
            raise ValueError("Either user_id or email is required")
        return self


class RemoveParticipantCommand(Command):
    """Command to remove a user from an event."""

    event_id: str = Field(..., description="Event to leave")
    user_id: str = Field(..., description="User id of the participant")
    role: Role = Field(..., description="Role the participant holds")


class DeleteUserCommand(Command):
    """Command to delete a user and cascade into event rosters."""

    user_id: str = Field(..., description="User to delete")


class ReconcileUserCommand(Command):
    """Command to rebuild a user's event index from event rosters."""

    user_id: str = Field(..., description="User whose index is repaired")
