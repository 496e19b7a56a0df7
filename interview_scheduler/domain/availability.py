"""
Per-participant availability matrices.

An availability matrix holds one `Day` per calendar date of an event's range,
each with a fixed number of boolean slots. Matrices belonging to the same
event must share day count, slot count and day order; once built, days are
addressed by position rather than by date.
"""

from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field

from interview_scheduler.config import config
from interview_scheduler.errors import InvalidRangeError, ShapeMismatchError

DateLike = Union[date, datetime, str]


def to_date(value: DateLike) -> date:
    """
    Truncate a date, datetime or ISO-8601 string to date granularity.

    Aware datetimes are converted to UTC first so that the same instant always
    lands on the same calendar day.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Cannot convert {type(value).__name__} to a date")


class Day(BaseModel):
    """One calendar day of slot availability."""

    date: date
    times: List[bool] = Field(default_factory=list)


class AvailabilityMatrix(BaseModel):
    """Ordered sequence of `Day` entries spanning an event's date range."""

    days: List[Day] = Field(default_factory=list)

    @classmethod
    def build(
        cls, start_date: DateLike, end_date: DateLike, slots_per_day: Optional[int] = None
    ) -> "AvailabilityMatrix":
        """
        Build an all-unavailable matrix covering `[start_date, end_date]`.

        Args:
            start_date: First day of the range (truncated to a date)
            end_date: Last day of the range, inclusive (truncated to a date)
            slots_per_day: Slots per day; defaults to `scheduling.slots_per_day`

        Returns:
            AvailabilityMatrix: One Day per calendar date, every slot False

        Raises:
            InvalidRangeError: If end_date falls before start_date
        """
        start = to_date(start_date)
        end = to_date(end_date)
        if end < start:
            raise InvalidRangeError(f"End date {end} is before start date {start}", start, end)

        if slots_per_day is None:
            slots_per_day = config["scheduling"]["slots_per_day"]
        if slots_per_day < 1:
            raise ValueError("slots_per_day must be at least 1")

        span = (end - start).days + 1
        return cls(
            days=[Day(date=start + timedelta(days=offset), times=[False] * slots_per_day) for offset in range(span)]
        )

    @property
    def shape(self) -> Tuple[int, ...]:
        """Slot count of every day, in day order."""
        return tuple(len(day.times) for day in self.days)

    def replace(self, new_days: Sequence[Union[Day, Sequence[bool]]]) -> "AvailabilityMatrix":
        """
        Return a copy holding `new_days`, all or nothing.

        `new_days` may be `Day` objects or bare slot lists. Dates always come
        from this matrix, position by position.

        Raises:
            ShapeMismatchError: If day count or any day's slot count differs
        """
        if len(new_days) != len(self.days):
            raise ShapeMismatchError(f"Expected {len(self.days)} days, got {len(new_days)}")

        replaced = []
        for index, (current, incoming) in enumerate(zip(self.days, new_days)):
            times = incoming.times if isinstance(incoming, Day) else incoming
            if len(times) != len(current.times):
                raise ShapeMismatchError(
                    f"Day {index} expects {len(current.times)} slots, got {len(times)}"
                )
            replaced.append(Day(date=current.date, times=[bool(slot) for slot in times]))

        return AvailabilityMatrix(days=replaced)

    def blank_copy(self) -> "AvailabilityMatrix":
        """Same shape and dates, every slot False."""
        return AvailabilityMatrix(days=[Day(date=day.date, times=[False] * len(day.times)) for day in self.days])

    def resized(self, start_date: DateLike, end_date: DateLike, slots_per_day: int) -> "AvailabilityMatrix":
        """
        Rebuild over a new date range, keeping slots of days that survive.

        Days are matched by calendar date. Days new to the range start out
        unavailable.
        """
        fresh = AvailabilityMatrix.build(start_date, end_date, slots_per_day)
        existing = {day.date: day.times for day in self.days if len(day.times) == slots_per_day}
        for day in fresh.days:
            if day.date in existing:
                day.times = list(existing[day.date])
        return fresh

    def is_free(self, day_index: int, slot_index: int) -> bool:
        return self.days[day_index].times[slot_index]
