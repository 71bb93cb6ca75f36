import datetime
import logging
from collections.abc import Callable, Iterable

from django.db import transaction
from django.utils import timezone

from calendar_integration.constants import CalendarEventStatus, CalendarSyncStatus
from calendar_integration.models import CalendarEvent, CalendarIntegration
from calendar_integration.services.calendar_adapters import get_calendar_adapter
from calendar_integration.services.calendar_adapters.utils import get_lookahead_window
from calendar_integration.services.dataclasses import (
    CalendarEventAdapterOutputData,
    IntegrationSyncResult,
    SyncCycleResult,
)
from calendar_integration.services.protocols.calendar_adapter import CalendarAdapter
from domain_events.constants import DomainEventType
from domain_events.services import DomainEventPublisher


logger = logging.getLogger(__name__)

SYNCED_EVENT_FIELDS = (
    "title",
    "description",
    "start_time",
    "end_time",
    "is_all_day",
    "status",
    "last_sync",
    "meta",
)


class CalendarSyncService:
    """
    Pulls events from every due calendar integration into the local event store.

    Integrations are processed one at a time. A failing integration is logged, marked
    as failed and keeps its `last_sync`, so it is picked up again on the next poll;
    the remaining integrations are still synced.
    """

    def __init__(
        self,
        domain_event_publisher: DomainEventPublisher,
        adapter_factory: Callable[[str], CalendarAdapter] = get_calendar_adapter,
    ):
        self.domain_event_publisher = domain_event_publisher
        self.adapter_factory = adapter_factory

    @staticmethod
    def is_sync_due(
        integration: CalendarIntegration, now: datetime.datetime | None = None
    ) -> bool:
        return integration.is_sync_due(now)

    def run_sync_cycle(
        self,
        integrations: Iterable[CalendarIntegration] | None = None,
        now: datetime.datetime | None = None,
    ) -> SyncCycleResult:
        """
        Sync every due integration in `integrations` (all active ones by default).
        """
        now = now or timezone.now()
        if integrations is None:
            integrations = CalendarIntegration.objects.active()

        cycle_result = SyncCycleResult()
        for integration in integrations:
            if not self.is_sync_due(integration, now):
                cycle_result.skipped.append(integration.pk)
                continue

            result = self.sync_integration(integration, now=now)
            cycle_result.results.append(result)
            if result.success:
                cycle_result.synced.append(integration.pk)
            else:
                cycle_result.failed.append(integration.pk)

        logger.info(
            "Calendar sync cycle finished: %d synced, %d failed, %d skipped",
            len(cycle_result.synced),
            len(cycle_result.failed),
            len(cycle_result.skipped),
        )
        return cycle_result

    def sync_integration(
        self, integration: CalendarIntegration, now: datetime.datetime | None = None
    ) -> IntegrationSyncResult:
        """
        Status writes go through the queryset so a row that no longer validates is
        still reported as failed instead of aborting the cycle.
        """
        now = now or timezone.now()

        try:
            self._set_sync_state(integration, sync_status=CalendarSyncStatus.SYNCING)
            adapter = self.adapter_factory(integration.provider)
            events = adapter.fetch_events(
                integration.credentials, integration.provider_calendar_id
            )
            result = self._store_events(integration, events, now)
        except Exception as e:  # noqa: BLE001
            logger.exception(
                "Calendar sync failed for integration %s (%s)",
                integration.pk,
                integration.provider,
            )
            self._set_sync_state(
                integration, sync_status=CalendarSyncStatus.FAILED, last_sync_error=str(e)
            )
            self._publish_on_commit(
                DomainEventType.CALENDAR_SYNC_FAILED,
                {
                    "integration_id": integration.pk,
                    "provider": integration.provider,
                    "resource_id": integration.resource_id,
                    "error": str(e),
                },
            )
            return IntegrationSyncResult(integration_id=integration.pk, success=False, error=str(e))

        self._set_sync_state(
            integration,
            sync_status=CalendarSyncStatus.SUCCESS,
            last_sync=now,
            last_sync_error="",
        )
        logger.info(
            "Synced integration %s: %d created, %d updated, %d deleted",
            integration.pk,
            result.events_created,
            result.events_updated,
            result.events_deleted,
        )
        self._publish_on_commit(
            DomainEventType.CALENDAR_SYNC_COMPLETED,
            {
                "integration_id": integration.pk,
                "provider": integration.provider,
                "resource_id": integration.resource_id,
                "events_created": result.events_created,
                "events_updated": result.events_updated,
                "events_deleted": result.events_deleted,
                "synced_at": now.isoformat(),
            },
        )
        return result

    @staticmethod
    def _set_sync_state(integration: CalendarIntegration, **fields):
        for name, value in fields.items():
            setattr(integration, name, value)
        CalendarIntegration.objects.filter(pk=integration.pk).update(
            modified=timezone.now(), **fields
        )

    def _publish_on_commit(self, event_type: DomainEventType, payload: dict):
        transaction.on_commit(
            lambda: self.domain_event_publisher.publish(event_type, payload)
        )

    @transaction.atomic()
    def _store_events(
        self,
        integration: CalendarIntegration,
        events: Iterable[CalendarEventAdapterOutputData],
        now: datetime.datetime,
    ) -> IntegrationSyncResult:
        """
        Upsert `events` by external id and mark stored events of the look-ahead window
        the provider stopped returning as DELETED.
        """
        # a repeated external id keeps the last payload
        events_by_external_id = {event.external_id: event for event in events}

        existing_by_external_id = {
            event.external_id: event
            for event in CalendarEvent.objects.for_integration(integration.pk).filter(
                external_id__in=events_by_external_id.keys()
            )
        }

        events_to_create: list[CalendarEvent] = []
        events_to_update: list[CalendarEvent] = []
        for external_id, event_data in events_by_external_id.items():
            calendar_event = existing_by_external_id.get(external_id)
            if calendar_event is None:
                calendar_event = CalendarEvent(integration=integration, external_id=external_id)
                events_to_create.append(calendar_event)
            else:
                events_to_update.append(calendar_event)
            self._apply_event_data(calendar_event, event_data, now)

        if events_to_create:
            CalendarEvent.objects.bulk_create(events_to_create)
        if events_to_update:
            CalendarEvent.objects.bulk_update(events_to_update, SYNCED_EVENT_FIELDS)

        window_start, window_end = get_lookahead_window(now)
        events_deleted = (
            CalendarEvent.objects.for_integration(integration.pk)
            .overlapping(window_start, window_end)
            .exclude(external_id__in=events_by_external_id.keys())
            .exclude(status=CalendarEventStatus.DELETED)
            .update(status=CalendarEventStatus.DELETED, last_sync=now)
        )

        return IntegrationSyncResult(
            integration_id=integration.pk,
            success=True,
            events_created=len(events_to_create),
            events_updated=len(events_to_update),
            events_deleted=events_deleted,
        )

    @staticmethod
    def _apply_event_data(
        calendar_event: CalendarEvent,
        event_data: CalendarEventAdapterOutputData,
        now: datetime.datetime,
    ):
        calendar_event.title = (event_data.title or "")[:255]
        calendar_event.description = event_data.description or ""
        calendar_event.start_time = event_data.start_time
        calendar_event.end_time = event_data.end_time
        calendar_event.is_all_day = event_data.is_all_day
        calendar_event.status = event_data.status
        calendar_event.last_sync = now
        calendar_event.meta = event_data.original_payload or {}
