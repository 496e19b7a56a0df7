"""
Unit tests for availability matrices (interview_scheduler/domain/availability.py).

Tests matrix construction over date ranges, whole-matrix replacement,
resizing by calendar date, and date truncation.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from interview_scheduler.domain.availability import AvailabilityMatrix, Day, to_date
from interview_scheduler.errors import InvalidRangeError, ShapeMismatchError


class TestToDate:
    """Test truncation of date-like values."""

    def test_datetime_truncated(self):
        assert to_date(datetime(2021, 2, 17, 18, 10)) == date(2021, 2, 17)

    def test_iso_string_with_zulu_suffix(self):
        assert to_date("2021-02-17T18:10:00.064Z") == date(2021, 2, 17)

    def test_aware_datetime_converted_to_utc_first(self):
        late_evening_west = datetime(2021, 2, 17, 22, 0, tzinfo=timezone(timedelta(hours=-5)))
        assert to_date(late_evening_west) == date(2021, 2, 18)

    def test_unsupported_type_raises(self):
        with pytest.raises(TypeError):
            to_date(20210217)


class TestBuild:
    """Test AvailabilityMatrix.build."""

    @pytest.mark.parametrize("span_days", [0, 1, 6, 28])
    def test_one_day_per_calendar_date(self, span_days):
        """Test that build yields (end - start) + 1 all-False days."""
        start = date(2021, 2, 17)
        matrix = AvailabilityMatrix.build(start, start + timedelta(days=span_days), slots_per_day=8)

        assert len(matrix.days) == span_days + 1
        assert all(len(day.times) == 8 for day in matrix.days)
        assert not any(slot for day in matrix.days for slot in day.times)
        assert [day.date for day in matrix.days] == [start + timedelta(days=i) for i in range(span_days + 1)]

    def test_times_are_truncated_to_dates(self):
        """Test that a range ending earlier in the day than it starts still covers both dates."""
        matrix = AvailabilityMatrix.build(datetime(2021, 2, 17, 18, 0), datetime(2021, 2, 18, 9, 0), 4)

        assert [day.date for day in matrix.days] == [date(2021, 2, 17), date(2021, 2, 18)]

    def test_default_slot_count_from_config(self):
        matrix = AvailabilityMatrix.build(date(2021, 2, 17), date(2021, 2, 17))

        assert matrix.shape == (8,)

    def test_end_before_start_raises(self):
        with pytest.raises(InvalidRangeError) as exc_info:
            AvailabilityMatrix.build(date(2021, 3, 17), date(2021, 2, 17), 8)

        assert exc_info.value.start_date == date(2021, 3, 17)
        assert exc_info.value.end_date == date(2021, 2, 17)

    def test_zero_slots_rejected(self):
        with pytest.raises(ValueError, match="at least 1"):
            AvailabilityMatrix.build(date(2021, 2, 17), date(2021, 2, 18), 0)

    def test_days_do_not_share_slot_lists(self):
        """Test that mutating one day leaves the others untouched."""
        matrix = AvailabilityMatrix.build(date(2021, 2, 17), date(2021, 2, 19), 3)
        matrix.days[0].times[1] = True

        assert matrix.days[1].times == [False, False, False]


class TestReplace:
    """Test AvailabilityMatrix.replace."""

    @pytest.fixture
    def matrix(self) -> AvailabilityMatrix:
        return AvailabilityMatrix.build(date(2021, 2, 17), date(2021, 2, 18), 3)

    def test_replace_with_slot_lists(self, matrix):
        replaced = matrix.replace([[True, False, True], [False, False, True]])

        assert replaced.days[0].times == [True, False, True]
        assert replaced.days[1].times == [False, False, True]
        assert [d.date for d in replaced.days] == [d.date for d in matrix.days]

    def test_replace_keeps_positional_dates(self, matrix):
        """Test that dates on incoming Day objects are ignored in favour of position."""
        incoming = [Day(date=date(2030, 1, 1), times=[True] * 3), Day(date=date(2030, 1, 2), times=[False] * 3)]
        replaced = matrix.replace(incoming)

        assert replaced.days[0].date == date(2021, 2, 17)
        assert replaced.days[0].times == [True, True, True]

    def test_replace_does_not_mutate_original(self, matrix):
        matrix.replace([[True] * 3, [True] * 3])

        assert matrix.days[0].times == [False, False, False]

    def test_wrong_day_count_raises(self, matrix):
        with pytest.raises(ShapeMismatchError, match="Expected 2 days"):
            matrix.replace([[True, True, True]])

    def test_wrong_slot_count_is_all_or_nothing(self, matrix):
        """Test that a bad second day rejects the whole replacement."""
        with pytest.raises(ShapeMismatchError, match="Day 1"):
            matrix.replace([[True, True, True], [True, True]])

        assert matrix.days[0].times == [False, False, False]


class TestResized:
    """Test regeneration of a matrix over a new date range."""

    def test_surviving_days_keep_slots_and_new_days_are_blank(self):
        matrix = AvailabilityMatrix.build(date(2021, 2, 17), date(2021, 2, 19), 2)
        matrix = matrix.replace([[True, False], [False, True], [True, True]])

        resized = matrix.resized(date(2021, 2, 18), date(2021, 2, 21), 2)

        assert [d.date for d in resized.days] == [date(2021, 2, d) for d in (18, 19, 20, 21)]
        assert [d.times for d in resized.days] == [[False, True], [True, True], [False, False], [False, False]]

    def test_blank_copy_keeps_shape(self):
        matrix = AvailabilityMatrix.build(date(2021, 2, 17), date(2021, 2, 18), 2).replace([[True, True], [True, False]])

        blank = matrix.blank_copy()

        assert blank.shape == matrix.shape
        assert not any(slot for day in blank.days for slot in day.times)
