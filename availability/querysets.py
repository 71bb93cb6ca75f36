import datetime

from django.db import models
from django.db.models import Q

from availability.constants import BLOCKING_RESERVATION_STATUSES


class ResourceQuerySetMixin:
    def for_resource(self, resource_id: str):
        return self.filter(resource_id=resource_id)

    def active(self):
        return self.filter(is_active=True)


class AvailabilityWindowQuerySet(ResourceQuerySetMixin, models.QuerySet):
    def on_day(self, day_of_week: int):
        """Filter windows by day of week, 0 is Sunday."""
        return self.filter(day_of_week=day_of_week)

    def overlapping_times(self, start_time: str, end_time: str):
        """
        Filter windows whose time-of-day range overlaps [start_time, end_time).
        Zero-padded "HH:mm" strings order the same way as the times they represent.
        """
        return self.filter(start_time__lt=end_time, end_time__gt=start_time)


class ScheduleQuerySet(ResourceQuerySetMixin, models.QuerySet):
    def overlapping_dates(self, start_date: datetime.date, end_date: datetime.date | None):
        """
        Filter schedules whose inclusive date range intersects [start_date, end_date].
        A missing end date on either side is unbounded.
        """
        queryset = self.filter(Q(end_date__isnull=True) | Q(end_date__gte=start_date))
        if end_date is not None:
            queryset = queryset.filter(start_date__lte=end_date)
        return queryset

    def of_types(self, *schedule_types: str):
        return self.filter(schedule_type__in=schedule_types)


class ReservationQuerySet(models.QuerySet):
    def for_resource(self, resource_id: str):
        return self.filter(resource_id=resource_id)

    def blocking(self):
        """Only PENDING and APPROVED reservations can block a slot."""
        return self.filter(status__in=BLOCKING_RESERVATION_STATUSES)

    def overlapping(self, start_time: datetime.datetime, end_time: datetime.datetime):
        return self.filter(start_time__lt=end_time, end_time__gt=start_time)
