import datetime

from django.conf import settings
from django.utils import timezone


def get_lookahead_window(
    now: datetime.datetime | None = None,
) -> tuple[datetime.datetime, datetime.datetime]:
    """[now, now + CALENDAR_SYNC_LOOKAHEAD_DAYS), the range every adapter fetches."""
    now = now or timezone.now()
    return now, now + datetime.timedelta(days=settings.CALENDAR_SYNC_LOOKAHEAD_DAYS)


def is_all_day_event(
    start_time: datetime.datetime,
    end_time: datetime.datetime,
    has_time_component: bool = True,
) -> bool:
    """
    An event is all-day when its source has no time of day, or, as a fallback, when it
    lasts exactly 24 hours starting at midnight.
    """
    if not has_time_component:
        return True
    local_start = timezone.localtime(start_time) if timezone.is_aware(start_time) else start_time
    return end_time - start_time == datetime.timedelta(hours=24) and local_start.time() == (
        datetime.time.min
    )


def date_to_datetime(date: datetime.date) -> datetime.datetime:
    """Midnight of `date` in the organizational timezone."""
    return datetime.datetime.combine(
        date, datetime.time.min, tzinfo=timezone.get_default_timezone()
    )


def ensure_aware(value: datetime.datetime) -> datetime.datetime:
    if timezone.is_naive(value):
        return timezone.make_aware(value, timezone.get_default_timezone())
    return value
