"""
Event-related commands.

Commands for creating, updating and deleting events, submitting interviewer
availability, and the interviewee slot and assignment flow.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from . import Command, coerce_date


class CreateEventCommand(Command):
    """Command to create a new event with its creator as first interviewer."""

    title: str = Field(..., min_length=1, description="Title of the event")
    description: str = Field(default="", description="Free-form description")
    start_date: date = Field(..., description="First day of the event")
    end_date: date = Field(..., description="Last day of the event, inclusive")
    interviewers_needed: int = Field(default=1, description="Interviewers required per slot")
    creator_user_id: str = Field(..., description="User creating the event")
    availability_increment: Optional[int] = Field(None, ge=1, description="Minutes per slot")
    event_id: Optional[str] = Field(None, description="Explicit id for the new event")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def truncate_dates(cls, value):
        return coerce_date(value)


class UpdateEventCommand(Command):
    """Command to merge fields into an existing event; None leaves a field alone."""

    event_id: str = Field(..., description="Event to update")
    title: Optional[str] = Field(None, min_length=1, description="Updated title")
    description: Optional[str] = Field(None, description="Updated description")
    start_date: Optional[date] = Field(None, description="Updated first day")
    end_date: Optional[date] = Field(None, description="Updated last day")
    interviewers_needed: Optional[int] = Field(None, description="Updated quorum threshold")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def truncate_dates(cls, value):
        return coerce_date(value)


class SubmitAvailabilityCommand(Command):
    """Command for an interviewer to replace their whole availability matrix."""

    event_id: str = Field(..., description="Event the availability belongs to")
    user_id: str = Field(..., description="Interviewer submitting availability")
    days: List[List[bool]] = Field(..., description="Slot availability per day, in day order")


class RecordChosenSlotCommand(Command):
    """Command to record the slot an interviewee picked."""

    event_id: str = Field(..., description="Event the interviewee belongs to")
    interviewee_id: str = Field(..., description="User id of the interviewee")
    time_chosen: datetime = Field(..., description="Start of the chosen slot")


class AssignInterviewerCommand(Command):
    """Command to add an interviewer to an interviewee's assignment set."""

    event_id: str = Field(..., description="Event both participants belong to")
    interviewee_id: str = Field(..., description="User id of the interviewee")
    interviewer_id: str = Field(..., description="User id of the interviewer")

    @model_validator(mode="after")
    def distinct_participants(self):
        if self.interviewee_id == self.interviewer_id:
            raise ValueError("An interviewee cannot be assigned to interview themselves")
        return self


class UnassignInterviewerCommand(Command):
    """Command to remove an interviewer from an interviewee's assignment set."""

    event_id: str = Field(..., description="Event both participants belong to")
    interviewee_id: str = Field(..., description="User id of the interviewee")
    interviewer_id: str = Field(..., description="User id of the interviewer")


class DeleteEventCommand(Command):
    """Command to delete an event and cascade into user indexes."""

    event_id: str = Field(..., description="Event to delete")
