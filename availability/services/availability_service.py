import datetime
import logging
from collections.abc import Iterable

from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.utils import timezone

from availability.constants import (
    DEFAULT_SLOT_MINUTES,
    ConflictSourceKind,
    ExternalConflictsMode,
    RestrictionKind,
)
from availability.models import AvailabilityWindow, Reservation, Schedule
from availability.querysets import ReservationQuerySet
from availability.recurrence_utils import RecurrenceExpander
from availability.services.dataclasses import (
    AvailabilityResult,
    ConflictingSlot,
    ConflictSource,
    RestrictionViolation,
    ScheduleOccurrence,
    SlotCheckResult,
    SlotRestriction,
    TimeSlot,
)
from calendar_integration.constants import CalendarProvider, CalendarSyncStatus
from calendar_integration.exceptions import ExternalCalendarUnavailableError
from calendar_integration.models import CalendarEvent, CalendarIntegration
from common.time_ranges import combine_local, iter_dates, overlaps, to_day_of_week


logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Resolves what is free and what is conflicted for a resource over a time range.

    Results are derived on every call from availability windows, blocking
    reservations, expanded schedules and, on request, events synced from external
    calendars. Nothing computed here is persisted.
    """

    def __init__(self, recurrence_expander: RecurrenceExpander | None = None):
        self.recurrence_expander = recurrence_expander or RecurrenceExpander()
        self.tz = self.recurrence_expander.tz

    def get_availability(
        self,
        resource_id: str,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        slot_minutes: int | None = DEFAULT_SLOT_MINUTES,
        external_conflicts: ExternalConflictsMode | str = ExternalConflictsMode.NONE,
    ) -> AvailabilityResult:
        """
        Partition the candidate slots of `resource_id` in [start_time, end_time] into
        available and conflicting slots.

        Every candidate slot lands in exactly one of the two lists. Conflicting slots
        carry every overlapping source, internal reservations and external events alike.
        `slot_minutes=None` yields one slot per window per day instead of fixed chunks.
        """
        if start_time >= end_time:
            raise ValidationError("start_time must be before end_time.")

        slots = self.get_candidate_slots(resource_id, start_time, end_time, slot_minutes)

        sources = [
            self._reservation_source(reservation)
            for reservation in self.find_conflicting_reservations(
                resource_id, start_time, end_time
            )
        ]

        external_included = False
        if external_conflicts != ExternalConflictsMode.NONE:
            external_events = self._load_external_events(
                resource_id,
                start_time,
                end_time,
                required=external_conflicts == ExternalConflictsMode.REQUIRED,
            )
            if external_events is not None:
                external_included = True
                sources.extend(self._external_source(event) for event in external_events)

        occurrences = self.get_schedule_occurrences(resource_id, start_time, end_time)

        available: list[TimeSlot] = []
        conflicting: list[ConflictingSlot] = []
        for slot in slots:
            slot.restrictions = [
                self._slot_restriction(occurrence.schedule)
                for occurrence in occurrences
                if overlaps(
                    slot.start_time, slot.end_time, occurrence.start_time, occurrence.end_time
                )
            ]
            slot_sources = [
                source
                for source in sources
                if overlaps(slot.start_time, slot.end_time, source.start_time, source.end_time)
            ]
            if slot_sources:
                conflicting.append(ConflictingSlot(slot=slot, sources=slot_sources))
            else:
                available.append(slot)

        return AvailabilityResult(
            resource_id=resource_id,
            start_time=start_time,
            end_time=end_time,
            available=available,
            conflicting=conflicting,
            external_conflicts_included=external_included,
        )

    def get_candidate_slots(
        self,
        resource_id: str,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        slot_minutes: int | None = DEFAULT_SLOT_MINUTES,
    ) -> list[TimeSlot]:
        """
        One slot per active window per calendar day, split into `slot_minutes` chunks
        counted from the window start and clipped to the query range.
        """
        windows_by_day: dict[int, list[AvailabilityWindow]] = {}
        for window in AvailabilityWindow.objects.for_resource(resource_id).active():
            windows_by_day.setdefault(window.day_of_week, []).append(window)

        first_day = timezone.localtime(start_time, self.tz).date()
        last_day = timezone.localtime(end_time, self.tz).date()
        step = datetime.timedelta(minutes=slot_minutes) if slot_minutes else None

        slots: list[TimeSlot] = []
        for date in iter_dates(first_day, last_day):
            for window in windows_by_day.get(to_day_of_week(date), []):
                window_start = combine_local(date, window.start, self.tz)
                window_end = combine_local(date, window.end, self.tz)
                if not overlaps(window_start, window_end, start_time, end_time):
                    continue

                cursor = window_start
                while cursor < window_end:
                    chunk_end = min(cursor + step, window_end) if step else window_end
                    if overlaps(cursor, chunk_end, start_time, end_time):
                        slots.append(
                            TimeSlot(
                                start_time=max(cursor, start_time),
                                end_time=min(chunk_end, end_time),
                                availability_window_id=window.pk,
                            )
                        )
                    cursor = chunk_end
        slots.sort(key=lambda slot: slot.start_time)
        return slots

    def find_conflicting_reservations(
        self,
        resource_id: str,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        exclude_reservation_id: int | None = None,
        lock: bool = False,
    ) -> ReservationQuerySet:
        """
        Blocking reservations of `resource_id` overlapping [start_time, end_time).

        This is the authoritative re-check to run right before inserting a reservation;
        pass `lock=True` inside a transaction to hold row locks on the matches.
        """
        queryset = Reservation.objects.for_resource(resource_id).blocking()
        queryset = queryset.overlapping(start_time, end_time)
        if exclude_reservation_id is not None:
            queryset = queryset.exclude(pk=exclude_reservation_id)
        if lock:
            queryset = queryset.select_for_update()
        return queryset

    def get_schedule_occurrences(
        self,
        resource_id: str,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        schedules: Iterable[Schedule] | None = None,
    ) -> list[ScheduleOccurrence]:
        if schedules is None:
            schedules = self.get_overlapping_schedules(resource_id, start_time, end_time)

        occurrences = []
        for schedule in schedules:
            occurrences.extend(
                occurrence
                for occurrence in self.recurrence_expander.expand(schedule, start_time, end_time)
                if overlaps(occurrence.start_time, occurrence.end_time, start_time, end_time)
            )
        return occurrences

    def get_overlapping_schedules(
        self,
        resource_id: str | None,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
    ):
        queryset = Schedule.objects.active().overlapping_dates(
            timezone.localtime(start_time, self.tz).date(),
            timezone.localtime(end_time, self.tz).date(),
        )
        if resource_id is not None:
            queryset = queryset.for_resource(resource_id)
        return queryset

    def get_external_conflicts(
        self,
        resource_id: str,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        mode: ExternalConflictsMode | str = ExternalConflictsMode.OPTIONAL,
    ) -> list[CalendarEvent]:
        """
        Synced external events of `resource_id` overlapping the range.

        With `REQUIRED` a lookup failure or a failed integration raises
        `ExternalCalendarUnavailableError`, otherwise it is logged and no events return.
        """
        if mode == ExternalConflictsMode.NONE:
            return []
        events = self._load_external_events(
            resource_id, start_time, end_time, required=mode == ExternalConflictsMode.REQUIRED
        )
        return events or []

    def _load_external_events(
        self,
        resource_id: str,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        required: bool,
    ) -> list[CalendarEvent] | None:
        try:
            # internal calendars mirror reservations already counted as internal sources
            integrations = list(
                CalendarIntegration.objects.active()
                .for_resource(resource_id)
                .exclude(provider=CalendarProvider.INTERNAL)
            )
            failed = [
                integration
                for integration in integrations
                if integration.sync_status == CalendarSyncStatus.FAILED
            ]
            if failed:
                raise ExternalCalendarUnavailableError(
                    f"Calendar integration '{failed[0].name}' failed its last sync"
                )
            events = list(
                CalendarEvent.objects.filter(integration__in=integrations)
                .blocking()
                .overlapping(start_time, end_time)
            )
        except (ExternalCalendarUnavailableError, DatabaseError) as e:
            if required:
                if isinstance(e, ExternalCalendarUnavailableError):
                    raise
                raise ExternalCalendarUnavailableError(str(e)) from e
            logger.warning(
                "Ignoring external calendar conflicts for resource %s: %s", resource_id, e
            )
            return None
        return events

    def check_slot(
        self,
        resource_id: str,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        now: datetime.datetime | None = None,
        user_type: str | None = None,
        exclude_reservation_id: int | None = None,
    ) -> SlotCheckResult:
        """
        Detailed availability of a single slot.

        Conflicts: the slot must lie inside an active availability window of its
        weekday and overlap no blocking reservation. Restrictions: every schedule with
        an occurrence overlapping the slot must cover the slot's whole period, its
        advance notice must be met, and its allowed user types must include `user_type`.
        """
        if start_time >= end_time:
            raise ValidationError("start_time must be before end_time.")
        now = now or timezone.now()

        conflicts: list[str] = []
        if not self._inside_availability_window(resource_id, start_time, end_time):
            conflicts.append("Time slot is outside basic availability hours")

        reservation_count = self.find_conflicting_reservations(
            resource_id, start_time, end_time, exclude_reservation_id=exclude_reservation_id
        ).count()
        if reservation_count:
            conflicts.append(f"Conflicts with {reservation_count} existing reservation(s)")

        violations = self.get_restriction_violations(
            resource_id, start_time, end_time, now=now, user_type=user_type
        )
        restrictions = [violation.message for violation in violations]

        return SlotCheckResult(
            available=not conflicts and not restrictions,
            conflicts=conflicts,
            restrictions=restrictions,
            violations=violations,
        )

    def get_restriction_violations(
        self,
        resource_id: str,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        now: datetime.datetime,
        user_type: str | None = None,
    ) -> list[RestrictionViolation]:
        violations: list[RestrictionViolation] = []
        seen_schedule_ids: set[int] = set()
        for occurrence in self.get_schedule_occurrences(resource_id, start_time, end_time):
            schedule = occurrence.schedule
            if schedule.pk in seen_schedule_ids:
                continue
            seen_schedule_ids.add(schedule.pk)

            if not self._within_schedule_period(schedule, start_time, end_time):
                violations.append(
                    RestrictionViolation(
                        kind=RestrictionKind.SCHEDULE_PERIOD,
                        message=f"Outside allowed schedule period: {schedule.name}",
                        schedule_id=schedule.pk,
                    )
                )

            notice_hours = schedule.min_advance_notice_hours
            if notice_hours and start_time - now < datetime.timedelta(hours=notice_hours):
                violations.append(
                    RestrictionViolation(
                        kind=RestrictionKind.ADVANCE_NOTICE,
                        message=f"Requires {notice_hours} hours advance notice",
                        schedule_id=schedule.pk,
                    )
                )

            if (
                user_type is not None
                and schedule.allowed_user_types
                and user_type not in schedule.allowed_user_types
            ):
                violations.append(
                    RestrictionViolation(
                        kind=RestrictionKind.USER_TYPE,
                        message=f"User type not allowed: {schedule.name}",
                        schedule_id=schedule.pk,
                    )
                )
        return violations

    def _inside_availability_window(
        self, resource_id: str, start_time: datetime.datetime, end_time: datetime.datetime
    ) -> bool:
        local_start = timezone.localtime(start_time, self.tz)
        date = local_start.date()
        windows = (
            AvailabilityWindow.objects.for_resource(resource_id)
            .active()
            .on_day(to_day_of_week(date))
        )
        for window in windows:
            window_start = combine_local(date, window.start, self.tz)
            window_end = combine_local(date, window.end, self.tz)
            if window_start <= start_time and end_time <= window_end:
                return True
        return False

    def _within_schedule_period(
        self, schedule: Schedule, start_time: datetime.datetime, end_time: datetime.datetime
    ) -> bool:
        period_start = combine_local(schedule.start_date, datetime.time.min, self.tz)
        if start_time < period_start:
            return False
        if schedule.end_date is None:
            return True
        period_end = combine_local(
            schedule.end_date + datetime.timedelta(days=1), datetime.time.min, self.tz
        )
        return end_time <= period_end

    @staticmethod
    def _slot_restriction(schedule: Schedule) -> SlotRestriction:
        return SlotRestriction(
            schedule_id=schedule.pk,
            schedule_name=schedule.name,
            schedule_type=schedule.schedule_type,
            allowed_user_types=list(schedule.allowed_user_types or []),
            min_advance_notice_hours=schedule.min_advance_notice_hours,
            priority=schedule.priority,
        )

    @staticmethod
    def _reservation_source(reservation: Reservation) -> ConflictSource:
        return ConflictSource(
            kind=ConflictSourceKind.INTERNAL,
            source_id=reservation.pk,
            title=reservation.title,
            start_time=reservation.start_time,
            end_time=reservation.end_time,
        )

    @staticmethod
    def _external_source(event: CalendarEvent) -> ConflictSource:
        return ConflictSource(
            kind=ConflictSourceKind.EXTERNAL,
            source_id=event.pk,
            title=event.title,
            start_time=event.start_time,
            end_time=event.end_time,
            integration_id=event.integration_id,
        )
