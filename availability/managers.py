import datetime

from django.db import models

from availability.querysets import (
    AvailabilityWindowQuerySet,
    ReservationQuerySet,
    ScheduleQuerySet,
)


class AvailabilityWindowManager(models.Manager):
    def get_queryset(self) -> AvailabilityWindowQuerySet:
        return AvailabilityWindowQuerySet(self.model, using=self._db)

    def for_resource(self, resource_id: str) -> AvailabilityWindowQuerySet:
        return self.get_queryset().for_resource(resource_id)

    def active(self) -> AvailabilityWindowQuerySet:
        return self.get_queryset().active()


class ScheduleManager(models.Manager):
    def get_queryset(self) -> ScheduleQuerySet:
        return ScheduleQuerySet(self.model, using=self._db)

    def for_resource(self, resource_id: str) -> ScheduleQuerySet:
        return self.get_queryset().for_resource(resource_id)

    def active(self) -> ScheduleQuerySet:
        return self.get_queryset().active()

    def overlapping_dates(
        self, start_date: datetime.date, end_date: datetime.date | None
    ) -> ScheduleQuerySet:
        return self.get_queryset().overlapping_dates(start_date, end_date)


class ReservationManager(models.Manager):
    def get_queryset(self) -> ReservationQuerySet:
        return ReservationQuerySet(self.model, using=self._db)

    def for_resource(self, resource_id: str) -> ReservationQuerySet:
        return self.get_queryset().for_resource(resource_id)

    def blocking(self) -> ReservationQuerySet:
        return self.get_queryset().blocking()

    def overlapping(
        self, start_time: datetime.datetime, end_time: datetime.datetime
    ) -> ReservationQuerySet:
        return self.get_queryset().overlapping(start_time, end_time)
