import datetime

from django.db import models

from calendar_integration.querysets import CalendarEventQuerySet, CalendarIntegrationQuerySet


class CalendarIntegrationManager(models.Manager):
    def get_queryset(self) -> CalendarIntegrationQuerySet:
        return CalendarIntegrationQuerySet(self.model, using=self._db)

    def active(self) -> CalendarIntegrationQuerySet:
        return self.get_queryset().active()

    def for_resource(self, resource_id: str) -> CalendarIntegrationQuerySet:
        return self.get_queryset().for_resource(resource_id)


class CalendarEventManager(models.Manager):
    def get_queryset(self) -> CalendarEventQuerySet:
        return CalendarEventQuerySet(self.model, using=self._db)

    def for_integration(self, integration_id: int) -> CalendarEventQuerySet:
        return self.get_queryset().for_integration(integration_id)

    def blocking(self) -> CalendarEventQuerySet:
        return self.get_queryset().blocking()

    def overlapping(
        self, start_time: datetime.datetime, end_time: datetime.datetime
    ) -> CalendarEventQuerySet:
        return self.get_queryset().overlapping(start_time, end_time)
