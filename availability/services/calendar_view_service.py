import datetime
import itertools
from collections import Counter
from collections.abc import Iterable

from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils import timezone

from availability.constants import (
    CALENDAR_VIEW_EVENT_COLORS,
    CalendarViewEventType,
    ExternalConflictsMode,
    ReservationStatus,
    ScheduleType,
)
from availability.models import Reservation
from availability.services.availability_service import AvailabilityService
from availability.services.dataclasses import CalendarView, CalendarViewEvent, CalendarViewSummary
from common.time_ranges import combine_local, iter_dates, overlaps, to_day_of_week


HIDDEN_RESERVATION_STATUSES = (ReservationStatus.CANCELLED, ReservationStatus.REJECTED)
WEEKEND_DAYS = (0, 6)


class CalendarViewService:
    """
    Builds the unified calendar of a time range: reservations, schedule and
    maintenance occurrences, synced external events and, on request, the free
    business-hour slots left between them.
    """

    def __init__(self, availability_service: AvailabilityService):
        self.availability_service = availability_service
        self.tz = availability_service.tz

    def get_calendar_view(
        self,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        resource_id: str | None = None,
        user_id: str | None = None,
        event_types: Iterable[str] | None = None,
        include_availability: bool = False,
        include_external_events: bool = False,
    ) -> CalendarView:
        if start_time >= end_time:
            raise ValidationError("start_time must be before end_time.")

        events = [
            *self._get_reservation_events(start_time, end_time, resource_id, user_id),
            *self._get_schedule_events(start_time, end_time, resource_id),
        ]
        # external events belong to a resource's integrations
        if include_external_events and resource_id is not None:
            events.extend(self._get_external_events(start_time, end_time, resource_id))
        if include_availability:
            events.extend(self._get_free_slot_events(start_time, end_time, resource_id, events))

        if event_types is not None:
            selected_types = set(event_types)
            events = [event for event in events if event.event_type in selected_types]

        events.sort(key=lambda event: (event.start_time, event.end_time))
        return CalendarView(
            start_time=start_time,
            end_time=end_time,
            events=events,
            summary=self._build_summary(events),
        )

    def _get_reservation_events(
        self,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        resource_id: str | None,
        user_id: str | None,
    ) -> list[CalendarViewEvent]:
        reservations = Reservation.objects.overlapping(start_time, end_time).exclude(
            status__in=HIDDEN_RESERVATION_STATUSES
        )
        if resource_id is not None:
            reservations = reservations.for_resource(resource_id)

        return [
            CalendarViewEvent(
                id=f"reservation-{reservation.pk}",
                title=reservation.title or "Reservation",
                start_time=reservation.start_time,
                end_time=reservation.end_time,
                event_type=CalendarViewEventType.RESERVATION,
                resource_id=reservation.resource_id,
                color=CALENDAR_VIEW_EVENT_COLORS[CalendarViewEventType.RESERVATION],
                editable=user_id is not None and reservation.user_id == user_id,
                status=reservation.status,
                meta={"reservation_id": reservation.pk, "user_id": reservation.user_id},
            )
            for reservation in reservations
        ]

    def _get_schedule_events(
        self,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        resource_id: str | None,
    ) -> list[CalendarViewEvent]:
        schedules = self.availability_service.get_overlapping_schedules(
            resource_id, start_time, end_time
        )
        occurrences = self.availability_service.get_schedule_occurrences(
            resource_id, start_time, end_time, schedules=schedules
        )

        events = []
        for occurrence in occurrences:
            schedule = occurrence.schedule
            event_type = (
                CalendarViewEventType.MAINTENANCE
                if schedule.schedule_type == ScheduleType.MAINTENANCE
                else CalendarViewEventType.SCHEDULE
            )
            events.append(
                CalendarViewEvent(
                    id=f"schedule-{schedule.pk}-{occurrence.start_time.isoformat()}",
                    title=schedule.name,
                    start_time=occurrence.start_time,
                    end_time=occurrence.end_time,
                    event_type=event_type,
                    resource_id=schedule.resource_id,
                    color=CALENDAR_VIEW_EVENT_COLORS[event_type],
                    editable=False,
                    is_all_day=schedule.recurrence is None
                    or schedule.recurrence.start_time is None,
                    meta={"schedule_id": schedule.pk, "schedule_type": schedule.schedule_type},
                )
            )
        return events

    def _get_external_events(
        self,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        resource_id: str,
    ) -> list[CalendarViewEvent]:
        calendar_events = self.availability_service.get_external_conflicts(
            resource_id, start_time, end_time, mode=ExternalConflictsMode.OPTIONAL
        )
        return [
            CalendarViewEvent(
                id=f"external-{calendar_event.pk}",
                title=calendar_event.title,
                start_time=calendar_event.start_time,
                end_time=calendar_event.end_time,
                event_type=CalendarViewEventType.EXTERNAL_CALENDAR,
                resource_id=resource_id,
                color=CALENDAR_VIEW_EVENT_COLORS[CalendarViewEventType.EXTERNAL_CALENDAR],
                editable=False,
                status=calendar_event.status,
                is_all_day=calendar_event.is_all_day,
                meta={
                    "integration_id": calendar_event.integration_id,
                    "external_id": calendar_event.external_id,
                },
            )
            for calendar_event in calendar_events
        ]

    def _get_free_slot_events(
        self,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        resource_id: str | None,
        busy_events: list[CalendarViewEvent],
    ) -> list[CalendarViewEvent]:
        """Hourly business-hour slots on weekdays that no other event overlaps."""
        opening_hour, closing_hour = settings.CALENDAR_VIEW_BUSINESS_HOURS
        first_day = timezone.localtime(start_time, self.tz).date()
        last_day = timezone.localtime(end_time, self.tz).date()

        free_events = []
        for date in iter_dates(first_day, last_day):
            if to_day_of_week(date) in WEEKEND_DAYS:
                continue
            for hour in range(opening_hour, closing_hour):
                slot_start = combine_local(date, datetime.time(hour), self.tz)
                slot_end = slot_start + datetime.timedelta(hours=1)
                if not overlaps(slot_start, slot_end, start_time, end_time):
                    continue
                if any(
                    overlaps(slot_start, slot_end, event.start_time, event.end_time)
                    for event in busy_events
                ):
                    continue
                free_events.append(
                    CalendarViewEvent(
                        id=f"available-{resource_id or 'all'}-{slot_start.isoformat()}",
                        title="Available",
                        start_time=slot_start,
                        end_time=slot_end,
                        event_type=CalendarViewEventType.AVAILABILITY,
                        resource_id=resource_id,
                        color=CALENDAR_VIEW_EVENT_COLORS[CalendarViewEventType.AVAILABILITY],
                        editable=True,
                    )
                )
        return free_events

    @staticmethod
    def count_conflicts(events: Iterable[CalendarViewEvent]) -> int:
        """Number of overlapping pairs of non-availability events on the same resource."""
        busy_events = [
            event for event in events if event.event_type != CalendarViewEventType.AVAILABILITY
        ]
        return sum(
            1
            for first, second in itertools.combinations(busy_events, 2)
            if first.resource_id == second.resource_id
            and overlaps(first.start_time, first.end_time, second.start_time, second.end_time)
        )

    def _build_summary(self, events: list[CalendarViewEvent]) -> CalendarViewSummary:
        events_by_type = Counter(event.event_type for event in events)
        return CalendarViewSummary(
            total_events=len(events),
            reservations=events_by_type[CalendarViewEventType.RESERVATION],
            available_slots=events_by_type[CalendarViewEventType.AVAILABILITY],
            conflicts=self.count_conflicts(events),
            events_by_type={str(event_type): count for event_type, count in events_by_type.items()},
        )
