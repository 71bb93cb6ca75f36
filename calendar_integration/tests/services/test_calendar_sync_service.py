import datetime
from unittest.mock import Mock

import pytest

from calendar_integration.constants import (
    CalendarEventStatus,
    CalendarProvider,
    CalendarSyncStatus,
)
from calendar_integration.exceptions import ICalFeedUnreachableError
from calendar_integration.models import CalendarEvent, CalendarIntegration
from calendar_integration.services.calendar_sync_service import CalendarSyncService
from calendar_integration.services.dataclasses import CalendarEventAdapterOutputData
from domain_events.constants import DomainEventType


UTC = datetime.UTC
NOW = datetime.datetime(2025, 3, 1, 12, tzinfo=UTC)


def _event_data(external_id, day=3, title="Department meeting", status=None):
    start = datetime.datetime(2025, 3, day, 10, tzinfo=UTC)
    return CalendarEventAdapterOutputData(
        external_id=external_id,
        title=title,
        start_time=start,
        end_time=start + datetime.timedelta(hours=1),
        status=status or CalendarEventStatus.CONFIRMED,
        original_payload={"id": external_id},
    )


@pytest.fixture
def mock_adapter():
    adapter = Mock()
    adapter.fetch_events.return_value = []
    return adapter


@pytest.fixture
def calendar_sync_service(mock_domain_event_publisher, mock_adapter):
    return CalendarSyncService(
        domain_event_publisher=mock_domain_event_publisher,
        adapter_factory=Mock(return_value=mock_adapter),
    )


@pytest.fixture
def make_integration(db, resource_id):
    def _make_integration(**kwargs):
        defaults = {
            "name": "Room feed",
            "resource_id": resource_id,
            "provider": CalendarProvider.ICAL,
            "credentials": {"url": "https://calendar.example.com/room-101.ics"},
            "sync_interval_minutes": 30,
        }
        defaults.update(kwargs)
        return CalendarIntegration.objects.create(**defaults)

    return _make_integration


@pytest.fixture
def integration(make_integration):
    return make_integration()


@pytest.mark.django_db
class TestSyncIntegration:
    def test_events_are_stored(self, calendar_sync_service, mock_adapter, integration, resource_id):
        mock_adapter.fetch_events.return_value = [_event_data("ext-1"), _event_data("ext-2", 4)]

        result = calendar_sync_service.sync_integration(integration, now=NOW)

        assert result.success is True
        assert (result.events_created, result.events_updated, result.events_deleted) == (2, 0, 0)
        mock_adapter.fetch_events.assert_called_once_with(integration.credentials, resource_id)
        stored = CalendarEvent.objects.get(external_id="ext-1")
        assert stored.integration == integration
        assert stored.title == "Department meeting"
        assert stored.last_sync == NOW
        assert stored.meta == {"id": "ext-1"}

    def test_repeated_syncs_do_not_duplicate_events(
        self, calendar_sync_service, mock_adapter, integration
    ):
        mock_adapter.fetch_events.return_value = [_event_data("ext-1")]
        calendar_sync_service.sync_integration(integration, now=NOW)

        mock_adapter.fetch_events.return_value = [_event_data("ext-1", title="Renamed")]
        result = calendar_sync_service.sync_integration(
            integration, now=NOW + datetime.timedelta(minutes=30)
        )

        assert (result.events_created, result.events_updated) == (0, 1)
        assert CalendarEvent.objects.count() == 1
        assert CalendarEvent.objects.get().title == "Renamed"

    def test_duplicate_external_ids_in_one_fetch_keep_last(
        self, calendar_sync_service, mock_adapter, integration
    ):
        mock_adapter.fetch_events.return_value = [
            _event_data("ext-1", title="First"),
            _event_data("ext-1", title="Second"),
        ]

        result = calendar_sync_service.sync_integration(integration, now=NOW)

        assert result.events_created == 1
        assert CalendarEvent.objects.get().title == "Second"

    def test_same_external_id_on_two_integrations(
        self, calendar_sync_service, mock_adapter, make_integration
    ):
        mock_adapter.fetch_events.return_value = [_event_data("ext-1")]

        calendar_sync_service.sync_integration(make_integration(), now=NOW)
        calendar_sync_service.sync_integration(make_integration(name="Other feed"), now=NOW)

        assert CalendarEvent.objects.filter(external_id="ext-1").count() == 2

    def test_events_missing_from_provider_are_marked_deleted(
        self, calendar_sync_service, mock_adapter, integration
    ):
        mock_adapter.fetch_events.return_value = [_event_data("ext-1"), _event_data("ext-2", 4)]
        calendar_sync_service.sync_integration(integration, now=NOW)
        past_event = CalendarEvent.objects.create(
            integration=integration,
            external_id="past",
            start_time=NOW - datetime.timedelta(days=10),
            end_time=NOW - datetime.timedelta(days=10, hours=-1),
        )

        mock_adapter.fetch_events.return_value = [_event_data("ext-1")]
        result = calendar_sync_service.sync_integration(integration, now=NOW)

        assert result.events_deleted == 1
        assert CalendarEvent.objects.get(external_id="ext-2").status == CalendarEventStatus.DELETED
        past_event.refresh_from_db()
        assert past_event.status == CalendarEventStatus.CONFIRMED

    def test_success_updates_integration_and_publishes(
        self,
        calendar_sync_service,
        mock_adapter,
        integration,
        mock_domain_event_publisher,
        django_capture_on_commit_callbacks,
    ):
        integration.last_sync_error = "previous failure"
        integration.save()
        mock_adapter.fetch_events.return_value = [_event_data("ext-1")]

        with django_capture_on_commit_callbacks(execute=True):
            calendar_sync_service.sync_integration(integration, now=NOW)

        integration.refresh_from_db()
        assert integration.sync_status == CalendarSyncStatus.SUCCESS
        assert integration.last_sync == NOW
        assert integration.last_sync_error == ""
        mock_domain_event_publisher.publish.assert_called_once_with(
            DomainEventType.CALENDAR_SYNC_COMPLETED,
            {
                "integration_id": integration.pk,
                "provider": CalendarProvider.ICAL,
                "resource_id": integration.resource_id,
                "events_created": 1,
                "events_updated": 0,
                "events_deleted": 0,
                "synced_at": NOW.isoformat(),
            },
        )

    def test_failure_keeps_last_sync_and_publishes(
        self,
        calendar_sync_service,
        mock_adapter,
        integration,
        mock_domain_event_publisher,
        django_capture_on_commit_callbacks,
    ):
        previous_sync = NOW - datetime.timedelta(hours=1)
        integration.last_sync = previous_sync
        integration.save()
        mock_adapter.fetch_events.side_effect = ICalFeedUnreachableError("feed is down")

        with django_capture_on_commit_callbacks(execute=True):
            result = calendar_sync_service.sync_integration(integration, now=NOW)

        assert result.success is False
        assert result.error == "feed is down"
        integration.refresh_from_db()
        assert integration.sync_status == CalendarSyncStatus.FAILED
        assert integration.last_sync == previous_sync
        assert integration.last_sync_error == "feed is down"
        event_type, payload = mock_domain_event_publisher.publish.call_args.args
        assert event_type == DomainEventType.CALENDAR_SYNC_FAILED
        assert payload["error"] == "feed is down"

    def test_failure_keeps_stored_events(self, calendar_sync_service, mock_adapter, integration):
        mock_adapter.fetch_events.return_value = [_event_data("ext-1")]
        calendar_sync_service.sync_integration(integration, now=NOW)

        mock_adapter.fetch_events.side_effect = ICalFeedUnreachableError()
        calendar_sync_service.sync_integration(integration, now=NOW)

        assert CalendarEvent.objects.get().status == CalendarEventStatus.CONFIRMED


@pytest.mark.django_db
class TestRunSyncCycle:
    def test_only_due_integrations_are_synced(
        self, calendar_sync_service, mock_adapter, make_integration
    ):
        never_synced = make_integration()
        overdue = make_integration(last_sync=NOW - datetime.timedelta(minutes=45))
        recent = make_integration(last_sync=NOW - datetime.timedelta(minutes=10))
        make_integration(is_active=False)

        result = calendar_sync_service.run_sync_cycle(now=NOW)

        assert sorted(result.synced) == sorted([never_synced.pk, overdue.pk])
        assert result.skipped == [recent.pk]
        assert result.failed == []
        assert mock_adapter.fetch_events.call_count == 2

    def test_failing_integration_does_not_stop_the_cycle(
        self, calendar_sync_service, mock_adapter, make_integration
    ):
        first = make_integration(name="First")
        failing = make_integration(name="Failing")
        last = make_integration(name="Last")

        def fetch_events(credentials, calendar_id):
            if mock_adapter.fetch_events.call_count == 2:
                raise ICalFeedUnreachableError()
            return [_event_data("ext-1")]

        mock_adapter.fetch_events.side_effect = fetch_events

        result = calendar_sync_service.run_sync_cycle(
            CalendarIntegration.objects.order_by("pk"), now=NOW
        )

        assert result.synced == [first.pk, last.pk]
        assert result.failed == [failing.pk]
        failing.refresh_from_db()
        assert failing.sync_status == CalendarSyncStatus.FAILED
        assert failing.last_sync is None
        assert CalendarEvent.objects.count() == 2

    def test_failed_integration_is_retried_next_cycle(
        self, calendar_sync_service, mock_adapter, integration
    ):
        mock_adapter.fetch_events.side_effect = ICalFeedUnreachableError()
        calendar_sync_service.run_sync_cycle(now=NOW)

        mock_adapter.fetch_events.side_effect = None
        mock_adapter.fetch_events.return_value = []
        result = calendar_sync_service.run_sync_cycle(now=NOW + datetime.timedelta(minutes=5))

        assert result.synced == [integration.pk]

    def test_invalid_integration_row_does_not_stop_the_cycle(
        self, calendar_sync_service, mock_adapter, make_integration
    ):
        broken = make_integration(name="Broken")
        valid = make_integration(name="Valid")
        # stored rows can stop validating, e.g. after a manual credentials edit
        CalendarIntegration.objects.filter(pk=broken.pk).update(credentials={})

        def fetch_events(credentials, calendar_id):
            if not credentials:
                raise ICalFeedUnreachableError("missing feed url")
            return [_event_data("ext-1")]

        mock_adapter.fetch_events.side_effect = fetch_events

        result = calendar_sync_service.run_sync_cycle(
            CalendarIntegration.objects.order_by("pk"), now=NOW
        )

        assert result.failed == [broken.pk]
        assert result.synced == [valid.pk]
        broken.refresh_from_db()
        assert broken.sync_status == CalendarSyncStatus.FAILED
        valid.refresh_from_db()
        assert valid.sync_status == CalendarSyncStatus.SUCCESS
        assert valid.last_sync == NOW

    def test_sync_events_are_published_after_commit(
        self,
        calendar_sync_service,
        mock_adapter,
        integration,
        mock_domain_event_publisher,
        django_capture_on_commit_callbacks,
    ):
        with django_capture_on_commit_callbacks() as callbacks:
            calendar_sync_service.run_sync_cycle(now=NOW)

        mock_domain_event_publisher.publish.assert_not_called()
        assert len(callbacks) == 1
