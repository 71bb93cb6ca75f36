import datetime
import logging
from collections.abc import Iterable

from django.db import transaction
from django.utils import timezone

from availability.constants import (
    ENFORCED_RESTRICTION_KINDS,
    SCHEDULE_OVERLAP_PRECEDENCE,
    ReservationStatus,
    ScheduleType,
)
from availability.exceptions import (
    AvailabilityWindowConflictError,
    ReservationConflictError,
    RestrictionViolationError,
    ScheduleConflictError,
)
from availability.models import AvailabilityWindow, Reservation, Schedule
from availability.services.availability_service import AvailabilityService
from domain_events.constants import DomainEventType
from domain_events.services import DomainEventPublisher


logger = logging.getLogger(__name__)


class BookingService:
    """
    Creation of availability windows, schedules and reservations.

    Each creation validates the new row, rejects it on conflict and only then
    persists it. Domain events are published after the write and never undo it.
    """

    def __init__(
        self,
        availability_service: AvailabilityService,
        domain_event_publisher: DomainEventPublisher,
    ):
        self.availability_service = availability_service
        self.domain_event_publisher = domain_event_publisher

    @transaction.atomic()
    def create_availability_window(
        self,
        resource_id: str,
        day_of_week: int,
        start_time: str,
        end_time: str,
        is_active: bool = True,
    ) -> AvailabilityWindow:
        """
        :raises ValidationError: for a malformed day or time of day.
        :raises AvailabilityWindowConflictError: when an active window of the same
            resource and weekday overlaps.
        """
        window = AvailabilityWindow(
            resource_id=resource_id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            is_active=is_active,
        )
        window.full_clean()

        if is_active:
            overlapping = (
                AvailabilityWindow.objects.for_resource(resource_id)
                .active()
                .on_day(day_of_week)
                .overlapping_times(start_time, end_time)
            )
            if overlapping.exists():
                raise AvailabilityWindowConflictError()

        window.save()
        transaction.on_commit(lambda: self._publish_availability_created(window))
        return window

    @transaction.atomic()
    def create_schedule(
        self,
        resource_id: str,
        name: str,
        start_date: datetime.date,
        schedule_type: ScheduleType | str = ScheduleType.REGULAR,
        end_date: datetime.date | None = None,
        description: str = "",
        recurrence_frequency: str = "",
        recurrence_interval: int = 1,
        recurrence_start_time: str = "",
        recurrence_end_time: str = "",
        allowed_user_types: Iterable[str] | None = None,
        min_advance_notice_hours: int | None = None,
        priority: int = 0,
        is_active: bool = True,
    ) -> Schedule:
        """
        A schedule may only overlap active schedules of the types its own type takes
        precedence over: EXCEPTION, RESTRICTED and MAINTENANCE over REGULAR,
        ACADEMIC_EVENT over REGULAR and EXCEPTION.

        :raises ScheduleConflictError: for any other overlap.
        """
        schedule = Schedule(
            resource_id=resource_id,
            name=name,
            description=description,
            schedule_type=schedule_type,
            start_date=start_date,
            end_date=end_date,
            recurrence_frequency=recurrence_frequency,
            recurrence_interval=recurrence_interval,
            recurrence_start_time=recurrence_start_time,
            recurrence_end_time=recurrence_end_time,
            allowed_user_types=list(allowed_user_types or []),
            min_advance_notice_hours=min_advance_notice_hours,
            priority=priority,
            is_active=is_active,
        )
        schedule.full_clean()

        if is_active:
            allowed_types = SCHEDULE_OVERLAP_PRECEDENCE.get(schedule.schedule_type, frozenset())
            conflicting = (
                Schedule.objects.for_resource(resource_id)
                .active()
                .overlapping_dates(start_date, end_date)
                .exclude(schedule_type__in=allowed_types)
                .first()
            )
            if conflicting is not None:
                raise ScheduleConflictError(
                    schedule.schedule_type, conflicting.schedule_type, conflicting.name
                )

        schedule.save()
        logger.info(
            "Created %s schedule %s for resource %s",
            schedule.schedule_type,
            schedule.pk,
            resource_id,
        )
        return schedule

    def create_reservation(
        self,
        resource_id: str,
        user_id: str,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        title: str = "",
        description: str = "",
        user_type: str = "",
        status: ReservationStatus | str = ReservationStatus.PENDING,
        now: datetime.datetime | None = None,
    ) -> Reservation:
        """
        Create a reservation after the authoritative overlap re-check.

        Advance-notice and user-type restrictions of the schedules covering the slot
        are enforced here, while `check_slot` only reports them.

        :raises ValidationError: for invalid times or durations.
        :raises RestrictionViolationError: when a restriction is not met.
        :raises ReservationConflictError: when a blocking reservation overlaps.
        """
        now = now or timezone.now()
        reservation = Reservation(
            resource_id=resource_id,
            user_id=user_id,
            user_type=user_type,
            title=title,
            description=description,
            start_time=start_time,
            end_time=end_time,
            status=status,
        )
        reservation.full_clean()

        violations = [
            violation
            for violation in self.availability_service.get_restriction_violations(
                resource_id, start_time, end_time, now=now, user_type=user_type or None
            )
            if violation.kind in ENFORCED_RESTRICTION_KINDS
        ]
        if violations:
            raise RestrictionViolationError([violation.message for violation in violations])

        with transaction.atomic():
            if reservation.is_blocking:
                conflicting_ids = list(
                    self.availability_service.find_conflicting_reservations(
                        resource_id, start_time, end_time, lock=True
                    ).values_list("pk", flat=True)
                )
                if conflicting_ids:
                    raise ReservationConflictError(conflicting_ids)
            reservation.save()
            transaction.on_commit(lambda: self._publish_reservation_created(reservation))

        logger.info("Created reservation %s for resource %s", reservation.pk, resource_id)
        return reservation

    @transaction.atomic()
    def update_reservation_status(
        self, reservation: Reservation, status: ReservationStatus | str
    ) -> Reservation:
        """
        Moving a reservation back into a blocking status re-checks its overlaps.

        :raises ReservationConflictError: when the reservation would block an occupied slot.
        """
        if status == reservation.status:
            return reservation

        if status in (ReservationStatus.PENDING, ReservationStatus.APPROVED) and (
            not reservation.is_blocking
        ):
            conflicting_ids = list(
                self.availability_service.find_conflicting_reservations(
                    reservation.resource_id,
                    reservation.start_time,
                    reservation.end_time,
                    exclude_reservation_id=reservation.pk,
                    lock=True,
                ).values_list("pk", flat=True)
            )
            if conflicting_ids:
                raise ReservationConflictError(conflicting_ids)

        logger.info(
            "Reservation %s status changed from %s to %s",
            reservation.pk,
            reservation.status,
            status,
        )
        reservation.status = status
        reservation.save(update_fields=["status", "modified"])
        return reservation

    def _publish_availability_created(self, window: AvailabilityWindow):
        self.domain_event_publisher.publish(
            DomainEventType.AVAILABILITY_CREATED,
            {
                "availability_window_id": window.pk,
                "resource_id": window.resource_id,
                "day_of_week": window.day_of_week,
                "start_time": window.start_time,
                "end_time": window.end_time,
            },
        )

    def _publish_reservation_created(self, reservation: Reservation):
        self.domain_event_publisher.publish(
            DomainEventType.RESERVATION_CREATED,
            {
                "reservation_id": reservation.pk,
                "resource_id": reservation.resource_id,
                "user_id": reservation.user_id,
                "start_time": reservation.start_time.isoformat(),
                "end_time": reservation.end_time.isoformat(),
                "status": reservation.status,
            },
        )
