"""
Scheduling data model.

Events exclusively own their Interviewer and Interviewee entries. A User's
`events` list is a reverse index back to those rosters, never an owner.
Documents are stored with their id under `_id`; `from_document` and
`to_document` translate between the two shapes.
"""

import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .availability import AvailabilityMatrix


class Role(str, Enum):
    """Role a participant holds on an event."""

    INTERVIEWER = "interviewer"
    INTERVIEWEE = "interviewee"


class Interviewer(BaseModel):
    user_id: str
    availability: AvailabilityMatrix = Field(default_factory=AvailabilityMatrix)


class Interviewee(BaseModel):
    user_id: str
    time_chosen: Optional[datetime] = None
    interviewers: List[str] = Field(default_factory=list, description="Interviewer ids assigned to this interviewee")


class EventMembership(BaseModel):
    """One entry of a User's reverse index."""

    event_id: str
    role: Role

    class Config:
        use_enum_values = True


class _Document(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def from_document(cls, document: Dict[str, Any]):
        data = dict(document)
        data["id"] = data.pop("_id")
        return cls(**data)

    def to_document(self) -> Dict[str, Any]:
        data = self.model_dump()
        data["_id"] = data.pop("id")
        return data


class Event(_Document):
    """
    An interview event and its rosters.

    `version` is bumped by every write to the stored document and backs
    optimistic concurrency for whole-document saves.
    """

    title: str
    description: str = ""
    start_date: date
    end_date: date
    interviewers_needed: int = 1
    slots_per_day: int = 8
    availability_increment: Optional[int] = Field(None, ge=1, description="Minutes per slot")
    interviewers: List[Interviewer] = Field(default_factory=list)
    interviewees: List[Interviewee] = Field(default_factory=list)
    version: int = 0

    def find_interviewer(self, user_id: str) -> Optional[Interviewer]:
        return next((i for i in self.interviewers if i.user_id == user_id), None)

    def find_interviewee(self, user_id: str) -> Optional[Interviewee]:
        return next((i for i in self.interviewees if i.user_id == user_id), None)

    def role_of(self, user_id: str) -> Optional[Role]:
        """Role `user_id` holds on this event, or None if absent."""
        if self.find_interviewer(user_id) is not None:
            return Role.INTERVIEWER
        if self.find_interviewee(user_id) is not None:
            return Role.INTERVIEWEE
        return None

    def memberships(self) -> Dict[str, Role]:
        roster = {i.user_id: Role.INTERVIEWER for i in self.interviewers}
        roster.update({i.user_id: Role.INTERVIEWEE for i in self.interviewees})
        return roster


class User(_Document):
    email: str
    name: Optional[str] = None
    events: List[EventMembership] = Field(default_factory=list)

    def has_membership(self, event_id: str, role: Optional[Role] = None) -> bool:
        return any(
            m.event_id == event_id and (role is None or Role(m.role) == role) for m in self.events
        )
