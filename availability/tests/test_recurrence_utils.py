import datetime

from django.core.exceptions import ValidationError

import pytest

from availability.models import Schedule
from availability.recurrence_utils import RecurrenceExpander


UTC = datetime.UTC


def _window(start: datetime.date, end: datetime.date):
    return (
        datetime.datetime.combine(start, datetime.time.min, tzinfo=UTC),
        datetime.datetime.combine(end, datetime.time(23, 59), tzinfo=UTC),
    )


def _schedule(**kwargs) -> Schedule:
    # unsaved instances are enough, the expander never queries
    defaults = {
        "resource_id": "room-101",
        "name": "Schedule",
        "start_date": datetime.date(2025, 3, 3),
    }
    defaults.update(kwargs)
    return Schedule(**defaults)


@pytest.fixture
def expander():
    return RecurrenceExpander(tz=UTC)


class TestRecurrenceExpander:
    def test_daily_with_times(self, expander):
        schedule = _schedule(
            recurrence_frequency="daily",
            recurrence_start_time="08:00",
            recurrence_end_time="12:00",
        )

        occurrences = expander.expand(
            schedule, *_window(datetime.date(2025, 3, 3), datetime.date(2025, 3, 5))
        )

        assert [(o.start_time, o.end_time) for o in occurrences] == [
            (
                datetime.datetime(2025, 3, day, 8, tzinfo=UTC),
                datetime.datetime(2025, 3, day, 12, tzinfo=UTC),
            )
            for day in (3, 4, 5)
        ]

    def test_occurrence_without_times_spans_full_day(self, expander):
        schedule = _schedule(recurrence_frequency="daily")

        occurrences = expander.expand(
            schedule, *_window(datetime.date(2025, 3, 3), datetime.date(2025, 3, 3))
        )

        assert len(occurrences) == 1
        assert occurrences[0].start_time == datetime.datetime(2025, 3, 3, tzinfo=UTC)
        assert occurrences[0].end_time == datetime.datetime(2025, 3, 4, tzinfo=UTC)

    def test_weekly_steps_from_window_start(self, expander):
        # Monday start, queried from a Wednesday
        schedule = _schedule(recurrence_frequency="weekly")

        occurrences = expander.expand(
            schedule, *_window(datetime.date(2025, 3, 12), datetime.date(2025, 3, 26))
        )

        assert [o.start_time.date() for o in occurrences] == [
            datetime.date(2025, 3, 12),
            datetime.date(2025, 3, 19),
            datetime.date(2025, 3, 26),
        ]

    def test_weekly_interval_steps_from_start_date_inside_window(self, expander):
        schedule = _schedule(recurrence_frequency="weekly", recurrence_interval=2)

        occurrences = expander.expand(
            schedule, *_window(datetime.date(2025, 3, 1), datetime.date(2025, 4, 6))
        )

        assert [o.start_time.date() for o in occurrences] == [
            datetime.date(2025, 3, 3),
            datetime.date(2025, 3, 17),
            datetime.date(2025, 3, 31),
        ]

    def test_monthly_keeps_day_of_month_after_short_months(self, expander):
        schedule = _schedule(start_date=datetime.date(2025, 1, 31), recurrence_frequency="monthly")

        occurrences = expander.expand(
            schedule, *_window(datetime.date(2025, 1, 1), datetime.date(2025, 4, 30))
        )

        assert [o.start_time.date() for o in occurrences] == [
            datetime.date(2025, 1, 31),
            datetime.date(2025, 2, 28),
            datetime.date(2025, 3, 31),
            datetime.date(2025, 4, 30),
        ]

    def test_end_date_is_inclusive(self, expander):
        schedule = _schedule(recurrence_frequency="daily", end_date=datetime.date(2025, 3, 5))

        occurrences = expander.expand(
            schedule, *_window(datetime.date(2025, 3, 1), datetime.date(2025, 3, 31))
        )

        assert [o.start_time.date() for o in occurrences] == [
            datetime.date(2025, 3, 3),
            datetime.date(2025, 3, 4),
            datetime.date(2025, 3, 5),
        ]

    def test_never_more_than_one_hundred_occurrences(self, expander):
        schedule = _schedule(recurrence_frequency="daily")

        occurrences = expander.expand(
            schedule, *_window(datetime.date(2025, 3, 3), datetime.date(2027, 3, 3))
        )

        assert len(occurrences) == 100

    def test_custom_cap(self):
        schedule = _schedule(recurrence_frequency="daily")
        expander = RecurrenceExpander(tz=UTC, max_occurrences=5)

        occurrences = expander.expand(
            schedule, *_window(datetime.date(2025, 3, 3), datetime.date(2025, 4, 3))
        )

        assert len(occurrences) == 5

    def test_cap_cannot_be_raised_above_one_hundred(self):
        schedule = _schedule(recurrence_frequency="daily")
        expander = RecurrenceExpander(tz=UTC, max_occurrences=500)

        occurrences = expander.expand(
            schedule, *_window(datetime.date(2025, 3, 3), datetime.date(2027, 3, 3))
        )

        assert expander.max_occurrences == 100
        assert len(occurrences) == 100

    def test_unknown_frequency_is_rejected(self, expander):
        schedule = _schedule(recurrence_frequency="hourly")

        with pytest.raises(ValidationError):
            expander.expand(
                schedule, *_window(datetime.date(2025, 3, 3), datetime.date(2025, 3, 4))
            )

    def test_window_before_start_date_is_empty(self, expander):
        schedule = _schedule(recurrence_frequency="daily")

        occurrences = expander.expand(
            schedule, *_window(datetime.date(2025, 2, 1), datetime.date(2025, 2, 28))
        )

        assert occurrences == []


class TestNonRecurringSchedule:
    def test_single_occurrence_spans_date_range(self, expander):
        schedule = _schedule(end_date=datetime.date(2025, 3, 7))

        occurrences = expander.expand(
            schedule, *_window(datetime.date(2025, 3, 5), datetime.date(2025, 3, 5))
        )

        assert len(occurrences) == 1
        assert occurrences[0].start_time == datetime.datetime(2025, 3, 3, tzinfo=UTC)
        assert occurrences[0].end_time == datetime.datetime(2025, 3, 8, tzinfo=UTC)

    def test_without_end_date_covers_start_date(self, expander):
        schedule = _schedule()

        occurrences = expander.expand(
            schedule, *_window(datetime.date(2025, 3, 1), datetime.date(2025, 3, 10))
        )

        assert len(occurrences) == 1
        assert occurrences[0].end_time == datetime.datetime(2025, 3, 4, tzinfo=UTC)

    def test_outside_window(self, expander):
        schedule = _schedule(end_date=datetime.date(2025, 3, 7))

        occurrences = expander.expand(
            schedule, *_window(datetime.date(2025, 4, 1), datetime.date(2025, 4, 2))
        )

        assert occurrences == []
