import datetime

from django.db import models

from calendar_integration.constants import NON_BLOCKING_EVENT_STATUSES


class CalendarIntegrationQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def for_resource(self, resource_id: str):
        return self.filter(resource_id=resource_id)


class CalendarEventQuerySet(models.QuerySet):
    def for_integration(self, integration_id: int):
        return self.filter(integration_id=integration_id)

    def blocking(self):
        """Exclude cancelled and deleted events, which never block a slot."""
        return self.exclude(status__in=NON_BLOCKING_EVENT_STATUSES)

    def overlapping(self, start_time: datetime.datetime, end_time: datetime.datetime):
        return self.filter(start_time__lt=end_time, end_time__gt=start_time)
