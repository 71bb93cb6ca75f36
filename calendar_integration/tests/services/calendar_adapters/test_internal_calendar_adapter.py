import datetime
from unittest.mock import patch

import pytest

from availability.constants import ReservationStatus, ScheduleType
from availability.models import Reservation, Schedule
from availability.recurrence_utils import RecurrenceExpander
from calendar_integration.constants import CalendarEventStatus, CalendarProvider
from calendar_integration.exceptions import (
    CalendarAdapterError,
    EventOperationError,
    UnknownCalendarProviderError,
    UnsupportedOperationError,
)
from calendar_integration.services.calendar_adapters import (
    GoogleCalendarAdapter,
    ICalCalendarAdapter,
    InternalCalendarAdapter,
    MSOutlookCalendarAdapter,
    get_calendar_adapter,
)
from calendar_integration.services.calendar_adapters.internal_calendar_adapter import (
    INTERNAL_CALENDAR_USER_ID,
)
from calendar_integration.services.dataclasses import CalendarEventAdapterInputData


MODULE = "calendar_integration.services.calendar_adapters.internal_calendar_adapter"
UTC = datetime.UTC
WINDOW = (
    datetime.datetime(2025, 3, 1, tzinfo=UTC),
    datetime.datetime(2025, 3, 31, tzinfo=UTC),
)


def at(day: int, hour: int) -> datetime.datetime:
    return datetime.datetime(2025, 3, day, hour, tzinfo=UTC)


@pytest.fixture
def adapter():
    with patch(f"{MODULE}.get_lookahead_window", return_value=WINDOW):
        yield InternalCalendarAdapter(recurrence_expander=RecurrenceExpander(tz=UTC))


@pytest.fixture
def reservation(db, resource_id):
    return Reservation.objects.create(
        resource_id=resource_id,
        user_id="user-1",
        title="Lab session",
        start_time=at(3, 10),
        end_time=at(3, 11),
        status=ReservationStatus.APPROVED,
    )


def _event_data(start, end, title="Booked from calendar"):
    return CalendarEventAdapterInputData(title=title, start_time=start, end_time=end)


@pytest.mark.django_db
class TestInternalCalendarAdapterFetchEvents:
    def test_provider_and_credentials(self, adapter):
        assert adapter.provider == CalendarProvider.INTERNAL
        assert adapter.validate_credentials({}) is True

    def test_reservations_become_events(self, adapter, reservation, resource_id):
        events = adapter.fetch_events({}, resource_id)

        assert len(events) == 1
        event = events[0]
        assert event.external_id == f"reservation-{reservation.pk}"
        assert event.title == "Lab session"
        assert event.status == CalendarEventStatus.CONFIRMED
        assert event.original_payload["user_id"] == "user-1"

    @pytest.mark.parametrize(
        "reservation_status, expected_status",
        [
            (ReservationStatus.PENDING, CalendarEventStatus.TENTATIVE),
            (ReservationStatus.APPROVED, CalendarEventStatus.CONFIRMED),
            (ReservationStatus.COMPLETED, CalendarEventStatus.CONFIRMED),
            (ReservationStatus.REJECTED, CalendarEventStatus.CANCELLED),
            (ReservationStatus.CANCELLED, CalendarEventStatus.CANCELLED),
        ],
    )
    def test_status_mapping(
        self, adapter, reservation, resource_id, reservation_status, expected_status
    ):
        reservation.status = reservation_status
        reservation.save()

        (event,) = adapter.fetch_events({}, resource_id)

        assert event.status == expected_status

    def test_other_resources_and_outside_window_are_skipped(self, adapter, resource_id):
        Reservation.objects.create(
            resource_id="another-room", user_id="user-1", start_time=at(3, 10), end_time=at(3, 11)
        )
        Reservation.objects.create(
            resource_id=resource_id,
            user_id="user-1",
            start_time=datetime.datetime(2025, 4, 2, 10, tzinfo=UTC),
            end_time=datetime.datetime(2025, 4, 2, 11, tzinfo=UTC),
        )

        assert adapter.fetch_events({}, resource_id) == []

    def test_maintenance_schedules_become_events(self, adapter, resource_id):
        maintenance = Schedule.objects.create(
            resource_id=resource_id,
            name="HVAC service",
            schedule_type=ScheduleType.MAINTENANCE,
            start_date=datetime.date(2025, 3, 10),
            end_date=datetime.date(2025, 3, 24),
            recurrence_frequency="weekly",
            recurrence_start_time="06:00",
            recurrence_end_time="08:00",
        )
        Schedule.objects.create(
            resource_id=resource_id, name="Semester", start_date=datetime.date(2025, 3, 1)
        )

        events = adapter.fetch_events({}, resource_id)

        assert [event.external_id for event in events] == [
            f"schedule-{maintenance.pk}-2025-03-10",
            f"schedule-{maintenance.pk}-2025-03-17",
            f"schedule-{maintenance.pk}-2025-03-24",
        ]
        assert events[0].start_time == at(10, 6)
        assert events[0].status == CalendarEventStatus.CONFIRMED


@pytest.mark.django_db
class TestInternalCalendarAdapterWrites:
    def test_create_event_creates_approved_reservation(self, adapter, resource_id):
        event = adapter.create_event({}, resource_id, _event_data(at(4, 10), at(4, 11)))

        reservation = Reservation.objects.get()
        assert event.external_id == f"reservation-{reservation.pk}"
        assert reservation.status == ReservationStatus.APPROVED
        assert reservation.user_id == INTERNAL_CALENDAR_USER_ID
        assert reservation.title == "Booked from calendar"

    def test_create_event_rejects_overlaps(self, adapter, reservation, resource_id):
        with pytest.raises(EventOperationError) as exc_info:
            adapter.create_event({}, resource_id, _event_data(at(3, 10), at(3, 12)))

        assert "Conflicts with 1 existing reservation(s)" in str(exc_info.value)
        assert Reservation.objects.count() == 1

    def test_update_event_ignores_its_own_slot(self, adapter, reservation, resource_id):
        adapter.update_event(
            {},
            resource_id,
            f"reservation-{reservation.pk}",
            _event_data(at(3, 10), at(3, 12), title="Extended"),
        )

        reservation.refresh_from_db()
        assert reservation.end_time == at(3, 12)
        assert reservation.title == "Extended"

    def test_update_event_rejects_overlaps(self, adapter, reservation, resource_id):
        other = Reservation.objects.create(
            resource_id=resource_id, user_id="user-2", start_time=at(3, 12), end_time=at(3, 13)
        )

        with pytest.raises(EventOperationError):
            adapter.update_event(
                {}, resource_id, f"reservation-{other.pk}", _event_data(at(3, 10), at(3, 13))
            )

    def test_delete_event_cancels_reservation(self, adapter, reservation, resource_id):
        adapter.delete_event({}, resource_id, f"reservation-{reservation.pk}")

        reservation.refresh_from_db()
        assert reservation.status == ReservationStatus.CANCELLED

    @pytest.mark.parametrize("external_id", ["reservation-999", "reservation-abc", "unknown"])
    def test_unknown_events(self, adapter, resource_id, external_id):
        with pytest.raises(EventOperationError):
            adapter.delete_event({}, resource_id, external_id)

    def test_schedule_events_are_read_only(self, adapter, resource_id):
        with pytest.raises(UnsupportedOperationError):
            adapter.delete_event({}, resource_id, "schedule-1-2025-03-10")


class TestGetCalendarAdapter:
    @pytest.mark.parametrize(
        "provider, adapter_class",
        [
            (CalendarProvider.GOOGLE, GoogleCalendarAdapter),
            (CalendarProvider.OUTLOOK, MSOutlookCalendarAdapter),
            (CalendarProvider.ICAL, ICalCalendarAdapter),
            (CalendarProvider.INTERNAL, InternalCalendarAdapter),
        ],
    )
    def test_registered_providers(self, provider, adapter_class):
        assert isinstance(get_calendar_adapter(provider), adapter_class)

    def test_unknown_provider(self):
        with pytest.raises(UnknownCalendarProviderError) as exc_info:
            get_calendar_adapter("exchange")

        assert not isinstance(exc_info.value, CalendarAdapterError)
