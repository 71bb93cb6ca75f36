import datetime

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from calendar_integration.constants import (
    DEFAULT_SYNC_INTERVAL_MINUTES,
    MAX_SYNC_INTERVAL_MINUTES,
    MIN_SYNC_INTERVAL_MINUTES,
    REQUIRED_CREDENTIAL_KEYS,
    CalendarEventStatus,
    CalendarProvider,
    CalendarSyncStatus,
)
from calendar_integration.managers import CalendarEventManager, CalendarIntegrationManager
from common.models import BaseModel, ValidatedModel


class CalendarIntegration(ValidatedModel):
    """
    A connection between a resource and a calendar provider.

    Created by user action; afterwards the sync orchestrator is the only writer of
    `last_sync`, the sync status fields and the integration's events.
    """

    resource_id = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    name = models.CharField(max_length=255)
    provider = models.CharField(max_length=32, choices=CalendarProvider)
    calendar_id = models.CharField(
        max_length=255,
        blank=True,
        help_text=(
            "Provider calendar identifier. For internal calendars it filters the resource "
            "whose reservations are exposed; falls back to the integration resource."
        ),
    )
    credentials = models.JSONField(default=dict, blank=True)
    sync_interval_minutes = models.PositiveIntegerField(
        default=DEFAULT_SYNC_INTERVAL_MINUTES,
        validators=[
            MinValueValidator(MIN_SYNC_INTERVAL_MINUTES),
            MaxValueValidator(MAX_SYNC_INTERVAL_MINUTES),
        ],
    )
    last_sync = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    sync_status = models.CharField(
        max_length=16, choices=CalendarSyncStatus, default=CalendarSyncStatus.IDLE
    )
    last_sync_error = models.TextField(blank=True)

    objects: CalendarIntegrationManager = CalendarIntegrationManager()

    def __str__(self):
        return f"{self.name} ({self.provider})"

    def clean(self):
        super().clean()
        if not isinstance(self.credentials, dict):
            raise ValidationError({"credentials": "Credentials must be an object."})
        missing = [
            key
            for key in REQUIRED_CREDENTIAL_KEYS.get(self.provider, ())
            if not self.credentials.get(key)
        ]
        if missing:
            raise ValidationError(
                {
                    "credentials": (
                        f"Missing credential fields for {self.provider}: {', '.join(missing)}"
                    )
                }
            )

    def is_sync_due(self, now: datetime.datetime | None = None) -> bool:
        if not self.is_active:
            return False
        if self.last_sync is None:
            return True
        now = now or timezone.now()
        return now >= self.last_sync + datetime.timedelta(minutes=self.sync_interval_minutes)

    @property
    def provider_calendar_id(self) -> str:
        return self.calendar_id or self.resource_id or ""


class CalendarEvent(BaseModel):
    """
    Canonical event imported from a calendar provider, unique per integration and
    provider-side id. Provider payloads are kept in `meta`.
    """

    integration = models.ForeignKey(
        CalendarIntegration,
        on_delete=models.CASCADE,
        related_name="events",
    )
    external_id = models.CharField(max_length=255)
    title = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    is_all_day = models.BooleanField(default=False)
    status = models.CharField(
        max_length=16, choices=CalendarEventStatus, default=CalendarEventStatus.CONFIRMED
    )
    last_sync = models.DateTimeField(null=True, blank=True)

    objects: CalendarEventManager = CalendarEventManager()

    class Meta(BaseModel.Meta):
        constraints = (
            models.UniqueConstraint(
                fields=("integration", "external_id"),
                name="unique_calendar_event_per_integration",
            ),
        )
        indexes = (
            models.Index(
                fields=("integration", "start_time", "end_time"),
                name="calendar_event_window_idx",
            ),
        )

    def __str__(self):
        return f"{self.title} ({self.start_time} - {self.end_time})"
