"""
Domain error taxonomy for the scheduling core.

Every failure the core reports to its caller derives from `SchedulingError`,
so the surrounding HTTP layer can map them to status codes with one except
clause. `PartialConsistencyWarning` is the one non-fatal outcome: it is
attached to a successful result instead of being raised.
"""

from typing import Optional


class SchedulingError(Exception):
    """Base exception for scheduling core operations."""

    pass


class InvalidRangeError(SchedulingError):
    """Raised when an end date falls before its start date."""

    def __init__(self, message: str, start_date=None, end_date=None):
        super().__init__(message)
        self.start_date = start_date
        self.end_date = end_date


class ShapeMismatchError(SchedulingError):
    """Raised when availability matrices disagree in day or slot count."""

    pass


class NoInterviewersError(SchedulingError):
    """Raised when a quorum is computed over an empty interviewer roster."""

    pass


class UnknownUserError(SchedulingError):
    """Raised when a participant identity cannot be resolved."""

    pass


class DuplicateMembershipError(SchedulingError):
    """Raised when a participant is already on an event under either role."""

    def __init__(self, message: str, event_id: Optional[str] = None, user_id: Optional[str] = None):
        super().__init__(message)
        self.event_id = event_id
        self.user_id = user_id


class NotFoundError(SchedulingError):
    """Raised when an Event, User or roster entry does not exist."""

    pass


class InfeasibleSlotError(SchedulingError):
    """Raised when an interviewee picks a slot that lacks interviewer quorum."""

    pass


class ConcurrencyError(SchedulingError):
    """
    Raised when an optimistic write keeps losing to concurrent writers.

    Versions are None when the conflict is not on an Event version, such as a
    user index rewrite.
    """

    def __init__(
        self, message: str, expected_version: Optional[int] = None, actual_version: Optional[int] = None
    ):
        super().__init__(message)
        self.expected_version = expected_version
        self.actual_version = actual_version


class PartialConsistencyWarning(UserWarning):
    """
    The Event side of a dual write succeeded but the User side did not.

    The Event record is authoritative, so the operation is reported as a
    success carrying this warning. `reconcile_user` repairs the reverse index.
    """

    def __init__(self, message: str, event_id: str, user_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.event_id = event_id
        self.user_id = user_id

    def __str__(self) -> str:
        return self.message
