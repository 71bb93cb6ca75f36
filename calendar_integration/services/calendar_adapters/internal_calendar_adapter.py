import datetime
import logging
from collections.abc import Mapping
from typing import Any, ClassVar

from django.db import transaction
from django.utils import timezone

from availability.constants import ReservationStatus, ScheduleType
from availability.models import Reservation, Schedule
from availability.recurrence_utils import RecurrenceExpander
from calendar_integration.constants import CalendarEventStatus, CalendarProvider
from calendar_integration.exceptions import EventOperationError, UnsupportedOperationError
from calendar_integration.services.calendar_adapters.utils import (
    get_lookahead_window,
    is_all_day_event,
)
from calendar_integration.services.dataclasses import (
    CalendarEventAdapterInputData,
    CalendarEventAdapterOutputData,
)
from calendar_integration.services.protocols.calendar_adapter import CalendarAdapter
from common.time_ranges import overlaps


logger = logging.getLogger(__name__)

INTERNAL_CALENDAR_USER_ID = "internal-calendar"
RESERVATION_ID_PREFIX = "reservation-"
SCHEDULE_ID_PREFIX = "schedule-"


class InternalCalendarAdapter(CalendarAdapter):
    """
    Exposes the reservations and maintenance schedules of a resource as calendar
    events, without any external call. `calendar_id` is the resource id.
    """

    provider = CalendarProvider.INTERNAL
    STATUS_MAPPING: ClassVar[dict[str, str]] = {
        ReservationStatus.APPROVED: CalendarEventStatus.CONFIRMED,
        ReservationStatus.COMPLETED: CalendarEventStatus.CONFIRMED,
        ReservationStatus.PENDING: CalendarEventStatus.TENTATIVE,
        ReservationStatus.REJECTED: CalendarEventStatus.CANCELLED,
        ReservationStatus.CANCELLED: CalendarEventStatus.CANCELLED,
    }

    def __init__(self, recurrence_expander: RecurrenceExpander | None = None):
        self.recurrence_expander = recurrence_expander or RecurrenceExpander()

    def validate_credentials(self, credentials: Mapping[str, Any]) -> bool:
        return True

    def fetch_events(
        self, credentials: Mapping[str, Any], calendar_id: str
    ) -> list[CalendarEventAdapterOutputData]:
        window_start, window_end = get_lookahead_window()

        events = [
            self._convert_reservation(reservation)
            for reservation in Reservation.objects.for_resource(calendar_id).overlapping(
                window_start, window_end
            )
        ]

        maintenance_schedules = (
            Schedule.objects.for_resource(calendar_id)
            .active()
            .of_types(ScheduleType.MAINTENANCE)
            .overlapping_dates(
                timezone.localdate(window_start, self.recurrence_expander.tz),
                timezone.localdate(window_end, self.recurrence_expander.tz),
            )
        )
        tz = self.recurrence_expander.tz
        for schedule in maintenance_schedules:
            for occurrence in self.recurrence_expander.expand(schedule, window_start, window_end):
                if not overlaps(
                    occurrence.start_time, occurrence.end_time, window_start, window_end
                ):
                    continue
                local_date = timezone.localdate(occurrence.start_time, tz)
                events.append(
                    CalendarEventAdapterOutputData(
                        external_id=f"{SCHEDULE_ID_PREFIX}{schedule.pk}-{local_date:%Y-%m-%d}",
                        title=schedule.name,
                        description=schedule.description,
                        start_time=occurrence.start_time,
                        end_time=occurrence.end_time,
                        is_all_day=is_all_day_event(occurrence.start_time, occurrence.end_time),
                        status=CalendarEventStatus.CONFIRMED,
                        original_payload={"schedule_id": schedule.pk},
                    )
                )
        return events

    def create_event(
        self,
        credentials: Mapping[str, Any],
        calendar_id: str,
        event_data: CalendarEventAdapterInputData,
    ) -> CalendarEventAdapterOutputData:
        with transaction.atomic():
            self._check_conflicts(calendar_id, event_data.start_time, event_data.end_time)
            reservation = Reservation.objects.create(
                resource_id=calendar_id,
                user_id=INTERNAL_CALENDAR_USER_ID,
                title=event_data.title,
                description=event_data.description,
                start_time=event_data.start_time,
                end_time=event_data.end_time,
                status=ReservationStatus.APPROVED,
            )
        logger.info("Created internal reservation %s for %s", reservation.pk, calendar_id)
        return self._convert_reservation(reservation)

    def update_event(
        self,
        credentials: Mapping[str, Any],
        calendar_id: str,
        external_id: str,
        event_data: CalendarEventAdapterInputData,
    ) -> CalendarEventAdapterOutputData:
        with transaction.atomic():
            reservation = self._get_reservation(external_id, lock=True)
            self._check_conflicts(
                reservation.resource_id,
                event_data.start_time,
                event_data.end_time,
                exclude_reservation_id=reservation.pk,
            )
            reservation.title = event_data.title
            reservation.description = event_data.description
            reservation.start_time = event_data.start_time
            reservation.end_time = event_data.end_time
            reservation.save()
        return self._convert_reservation(reservation)

    def delete_event(self, credentials: Mapping[str, Any], calendar_id: str, external_id: str):
        reservation = self._get_reservation(external_id)
        reservation.status = ReservationStatus.CANCELLED
        reservation.save(update_fields=["status", "modified"])

    def _get_reservation(self, external_id: str, lock: bool = False) -> Reservation:
        if external_id.startswith(SCHEDULE_ID_PREFIX):
            raise UnsupportedOperationError(
                "Schedule events of the internal calendar cannot be modified."
            )
        try:
            reservation_id = int(external_id.removeprefix(RESERVATION_ID_PREFIX))
        except ValueError as e:
            raise EventOperationError(f"Unknown internal calendar event: {external_id}") from e

        queryset = Reservation.objects.all()
        if lock:
            queryset = queryset.select_for_update()
        try:
            return queryset.get(pk=reservation_id)
        except Reservation.DoesNotExist as e:
            raise EventOperationError(f"Reservation {reservation_id} does not exist") from e

    @staticmethod
    def _check_conflicts(
        resource_id: str,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        exclude_reservation_id: int | None = None,
    ):
        conflicts = (
            Reservation.objects.for_resource(resource_id)
            .blocking()
            .overlapping(start_time, end_time)
            .select_for_update()
        )
        if exclude_reservation_id is not None:
            conflicts = conflicts.exclude(pk=exclude_reservation_id)
        conflict_count = len(conflicts.values_list("pk", flat=True))
        if conflict_count:
            raise EventOperationError(
                f"Conflicts with {conflict_count} existing reservation(s) on {resource_id}"
            )

    def _convert_reservation(self, reservation: Reservation) -> CalendarEventAdapterOutputData:
        return CalendarEventAdapterOutputData(
            external_id=f"{RESERVATION_ID_PREFIX}{reservation.pk}",
            title=reservation.title,
            description=reservation.description,
            start_time=reservation.start_time,
            end_time=reservation.end_time,
            is_all_day=is_all_day_event(reservation.start_time, reservation.end_time),
            status=self.STATUS_MAPPING.get(reservation.status, CalendarEventStatus.TENTATIVE),
            original_payload={
                "reservation_id": reservation.pk,
                "user_id": reservation.user_id,
                "status": reservation.status,
            },
        )
