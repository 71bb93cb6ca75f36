"""Recurrence expansion for schedules.

`RecurrenceExpander` turns a schedule's recurrence descriptor (daily, weekly or
monthly with a fixed interval) into concrete occurrences inside a query window.

Notes:
- The cursor starts at the later of the schedule's `start_date` and the first day
  of the window, then advances by the interval.
- Expansion stops after `MAX_RECURRENCE_OCCURRENCES` occurrences, even when a
  larger cap is configured.
- Wall-clock times are read in the organizational timezone (`TIME_ZONE`).
"""

import datetime

from django.core.exceptions import ValidationError
from django.utils import timezone

from dateutil.relativedelta import relativedelta

from availability.constants import MAX_RECURRENCE_OCCURRENCES, RecurrenceFrequency
from availability.models import Schedule
from availability.services.dataclasses import RecurrenceDescriptor, ScheduleOccurrence
from common.time_ranges import combine_local


class RecurrenceExpander:
    """Expands schedules into bounded lists of occurrences."""

    def __init__(
        self,
        tz: datetime.tzinfo | None = None,
        max_occurrences: int = MAX_RECURRENCE_OCCURRENCES,
    ):
        self.tz = tz or timezone.get_default_timezone()
        self.max_occurrences = min(max_occurrences, MAX_RECURRENCE_OCCURRENCES)

    def expand(
        self,
        schedule: Schedule,
        window_start: datetime.datetime,
        window_end: datetime.datetime,
    ) -> list[ScheduleOccurrence]:
        """Return the occurrences of ``schedule`` on the dates of [window_start, window_end].

        A schedule without recurrence yields a single occurrence spanning its whole
        date range when that range intersects the window, and nothing otherwise.
        Raises ``ValidationError`` for an unknown frequency.
        """
        first_day = timezone.localtime(window_start, self.tz).date()
        last_day = timezone.localtime(window_end, self.tz).date()

        recurrence = schedule.recurrence
        if recurrence is None:
            return self._single_occurrence(schedule, first_day, last_day)

        self._validate(recurrence)

        if schedule.end_date is not None:
            last_day = min(last_day, schedule.end_date)
        cursor = max(schedule.start_date, first_day)

        occurrences: list[ScheduleOccurrence] = []
        for occurrence_date in self._iter_dates(cursor, recurrence):
            if occurrence_date > last_day or len(occurrences) >= self.max_occurrences:
                break
            start, end = self._occurrence_bounds(occurrence_date, recurrence)
            occurrences.append(
                ScheduleOccurrence(schedule=schedule, start_time=start, end_time=end)
            )
        return occurrences

    @staticmethod
    def _validate(recurrence: RecurrenceDescriptor):
        if recurrence.frequency not in RecurrenceFrequency.values:
            raise ValidationError(
                "Unknown recurrence frequency: %(frequency)s",
                params={"frequency": recurrence.frequency},
            )
        if recurrence.interval < 1:
            raise ValidationError("Recurrence interval must be at least 1.")

    def _single_occurrence(
        self, schedule: Schedule, first_day: datetime.date, last_day: datetime.date
    ) -> list[ScheduleOccurrence]:
        if schedule.start_date > last_day:
            return []
        if schedule.end_date is not None and schedule.end_date < first_day:
            return []

        start = combine_local(schedule.start_date, datetime.time.min, self.tz)
        if schedule.end_date is not None:
            end = combine_local(
                schedule.end_date + datetime.timedelta(days=1), datetime.time.min, self.tz
            )
        else:
            end = combine_local(
                schedule.start_date + datetime.timedelta(days=1), datetime.time.min, self.tz
            )
        return [ScheduleOccurrence(schedule=schedule, start_time=start, end_time=end)]

    def _occurrence_bounds(
        self, date: datetime.date, recurrence: RecurrenceDescriptor
    ) -> tuple[datetime.datetime, datetime.datetime]:
        if recurrence.start_time is None or recurrence.end_time is None:
            return (
                combine_local(date, datetime.time.min, self.tz),
                combine_local(date + datetime.timedelta(days=1), datetime.time.min, self.tz),
            )
        return (
            combine_local(date, recurrence.start_time, self.tz),
            combine_local(date, recurrence.end_time, self.tz),
        )

    @staticmethod
    def _iter_dates(cursor: datetime.date, recurrence: RecurrenceDescriptor):
        """Yield ``cursor`` and every date ``interval`` steps after it, in order."""
        if recurrence.frequency == RecurrenceFrequency.MONTHLY:
            # offsets are taken from the cursor so day 31 doesn't drift after short months
            step_index = 0
            while True:
                yield cursor + relativedelta(months=step_index * recurrence.interval)
                step_index += 1
        else:
            step_days = recurrence.interval
            if recurrence.frequency == RecurrenceFrequency.WEEKLY:
                step_days *= 7
            candidate = cursor
            while True:
                yield candidate
                candidate += datetime.timedelta(days=step_days)
