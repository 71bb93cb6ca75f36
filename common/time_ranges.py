import datetime
import re

from django.core.exceptions import ValidationError


TIME_OF_DAY_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def overlaps(
    start1: datetime.datetime,
    end1: datetime.datetime,
    start2: datetime.datetime,
    end2: datetime.datetime,
) -> bool:
    """
    Half-open interval overlap. Touching ranges (end1 == start2) do not overlap.
    """
    return start1 < end2 and end1 > start2


def validate_time_of_day(value: str) -> None:
    if not isinstance(value, str) or not TIME_OF_DAY_RE.match(value):
        raise ValidationError(
            "%(value)s is not a valid time of day, expected HH:mm", params={"value": value}
        )


def parse_time_of_day(value: str) -> datetime.time:
    validate_time_of_day(value)
    hours, minutes = value.split(":")
    return datetime.time(int(hours), int(minutes))


def combine_local(
    date: datetime.date, time: datetime.time, tz: datetime.tzinfo
) -> datetime.datetime:
    """Aware datetime for a wall-clock time on a date in the organizational timezone."""
    return datetime.datetime.combine(date, time, tzinfo=tz)


def to_day_of_week(date: datetime.date) -> int:
    """0 is Sunday, 6 is Saturday."""
    return date.isoweekday() % 7


def iter_dates(start: datetime.date, end: datetime.date):
    current = start
    while current <= end:
        yield current
        current += datetime.timedelta(days=1)
