import datetime

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from availability.constants import (
    BLOCKING_RESERVATION_STATUSES,
    MAX_RESERVATION_DURATION,
    MIN_RESERVATION_DURATION,
    RecurrenceFrequency,
    ReservationStatus,
    ScheduleType,
)
from availability.managers import AvailabilityWindowManager, ReservationManager, ScheduleManager
from availability.services.dataclasses import RecurrenceDescriptor
from common.models import ValidatedModel
from common.time_ranges import parse_time_of_day, validate_time_of_day


class AvailabilityWindow(ValidatedModel):
    """
    Basic weekly availability of a resource: open from `start_time` to `end_time`
    (wall-clock "HH:mm") every `day_of_week` (0 is Sunday, 6 is Saturday).
    """

    resource_id = models.CharField(max_length=255, db_index=True)
    day_of_week = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(0), MaxValueValidator(6)]
    )
    start_time = models.CharField(max_length=5, validators=[validate_time_of_day])
    end_time = models.CharField(max_length=5, validators=[validate_time_of_day])
    is_active = models.BooleanField(default=True)

    objects: AvailabilityWindowManager = AvailabilityWindowManager()

    class Meta(ValidatedModel.Meta):
        ordering = ("resource_id", "day_of_week", "start_time")

    def __str__(self):
        return f"{self.resource_id} day {self.day_of_week} {self.start_time}-{self.end_time}"

    def clean(self):
        super().clean()
        try:
            start = parse_time_of_day(self.start_time)
            end = parse_time_of_day(self.end_time)
        except ValidationError:
            # reported by the field validators
            return
        if start >= end:
            raise ValidationError({"end_time": "end_time must be after start_time."})

    @property
    def start(self) -> datetime.time:
        return parse_time_of_day(self.start_time)

    @property
    def end(self) -> datetime.time:
        return parse_time_of_day(self.end_time)


class Schedule(ValidatedModel):
    """
    Institutional schedule over a date range, optionally recurring, carrying the
    restrictions (allowed user types, advance notice, priority) applied to slots it covers.
    `end_date` is inclusive; a missing end date leaves the schedule open-ended.
    """

    resource_id = models.CharField(max_length=255, db_index=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    schedule_type = models.CharField(
        max_length=32, choices=ScheduleType, default=ScheduleType.REGULAR
    )
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)

    recurrence_frequency = models.CharField(max_length=16, choices=RecurrenceFrequency, blank=True)
    recurrence_interval = models.PositiveIntegerField(
        default=1, validators=[MinValueValidator(1)]
    )
    recurrence_start_time = models.CharField(
        max_length=5, blank=True, validators=[validate_time_of_day]
    )
    recurrence_end_time = models.CharField(
        max_length=5, blank=True, validators=[validate_time_of_day]
    )

    allowed_user_types = models.JSONField(default=list, blank=True)
    min_advance_notice_hours = models.PositiveIntegerField(null=True, blank=True)
    priority = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)

    objects: ScheduleManager = ScheduleManager()

    class Meta(ValidatedModel.Meta):
        ordering = ("resource_id", "start_date", "-priority")

    def __str__(self):
        return f"{self.name} ({self.schedule_type})"

    def clean(self):
        super().clean()
        errors = {}
        if self.end_date is not None and self.start_date and self.start_date >= self.end_date:
            errors["end_date"] = "end_date must be after start_date."

        if bool(self.recurrence_start_time) != bool(self.recurrence_end_time):
            errors["recurrence_end_time"] = (
                "recurrence_start_time and recurrence_end_time must be set together."
            )
        elif self.recurrence_start_time and not self.recurrence_frequency:
            errors["recurrence_frequency"] = "Recurrence times require a recurrence frequency."
        elif self.recurrence_start_time:
            try:
                if parse_time_of_day(self.recurrence_start_time) >= parse_time_of_day(
                    self.recurrence_end_time
                ):
                    errors["recurrence_end_time"] = (
                        "recurrence_end_time must be after recurrence_start_time."
                    )
            except ValidationError:
                pass

        if not isinstance(self.allowed_user_types, list) or not all(
            isinstance(user_type, str) for user_type in self.allowed_user_types
        ):
            errors["allowed_user_types"] = "allowed_user_types must be a list of strings."

        if errors:
            raise ValidationError(errors)

    @property
    def recurrence(self) -> RecurrenceDescriptor | None:
        if not self.recurrence_frequency:
            return None
        return RecurrenceDescriptor(
            frequency=self.recurrence_frequency,
            interval=self.recurrence_interval,
            start_time=(
                parse_time_of_day(self.recurrence_start_time)
                if self.recurrence_start_time
                else None
            ),
            end_time=(
                parse_time_of_day(self.recurrence_end_time) if self.recurrence_end_time else None
            ),
        )


class Reservation(ValidatedModel):
    resource_id = models.CharField(max_length=255, db_index=True)
    user_id = models.CharField(max_length=255, db_index=True)
    user_type = models.CharField(max_length=64, blank=True)
    title = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    status = models.CharField(
        max_length=16, choices=ReservationStatus, default=ReservationStatus.PENDING
    )

    objects: ReservationManager = ReservationManager()

    class Meta(ValidatedModel.Meta):
        ordering = ("start_time",)
        indexes = (
            models.Index(
                fields=("resource_id", "start_time", "end_time"),
                name="reservation_resource_time_idx",
            ),
        )

    def __str__(self):
        return f"{self.title or 'Reservation'} ({self.start_time} - {self.end_time})"

    def clean(self):
        super().clean()
        if not self.start_time or not self.end_time:
            return
        if self.start_time >= self.end_time:
            raise ValidationError({"end_time": "end_time must be after start_time."})
        duration = self.end_time - self.start_time
        if duration < MIN_RESERVATION_DURATION:
            raise ValidationError({"end_time": "Reservations must last at least 15 minutes."})
        if duration > MAX_RESERVATION_DURATION:
            raise ValidationError({"end_time": "Reservations cannot last more than 24 hours."})

    @property
    def is_blocking(self) -> bool:
        return self.status in BLOCKING_RESERVATION_STATUSES
