import logging
from collections.abc import Callable, Mapping
from typing import Any

from django.db import transaction

from calendar_integration.constants import DEFAULT_SYNC_INTERVAL_MINUTES, CalendarProvider
from calendar_integration.exceptions import CalendarIntegrationInactiveError
from calendar_integration.models import CalendarIntegration
from calendar_integration.services.calendar_adapters import get_calendar_adapter
from calendar_integration.services.dataclasses import (
    CalendarEventAdapterInputData,
    CalendarEventAdapterOutputData,
)
from calendar_integration.services.protocols.calendar_adapter import CalendarAdapter


logger = logging.getLogger(__name__)


class CalendarIntegrationService:
    """
    User-facing operations on calendar integrations: connecting a calendar, asking
    for an immediate sync and writing events through the provider.
    """

    def __init__(
        self, adapter_factory: Callable[[str], CalendarAdapter] = get_calendar_adapter
    ):
        self.adapter_factory = adapter_factory

    def create_integration(
        self,
        name: str,
        provider: CalendarProvider | str,
        credentials: Mapping[str, Any] | None = None,
        resource_id: str | None = None,
        calendar_id: str = "",
        sync_interval_minutes: int = DEFAULT_SYNC_INTERVAL_MINUTES,
    ) -> CalendarIntegration:
        """
        Validate the integration fields, then check the credentials against the provider
        before persisting anything.

        :raises ValidationError: for malformed fields or credentials.
        :raises InvalidCredentialsError: when the provider rejects the credentials.
        """
        integration = CalendarIntegration(
            name=name,
            provider=provider,
            credentials=dict(credentials or {}),
            resource_id=resource_id,
            calendar_id=calendar_id,
            sync_interval_minutes=sync_interval_minutes,
        )
        integration.full_clean()

        adapter = self.adapter_factory(integration.provider)
        adapter.validate_credentials(integration.credentials)

        integration.save()
        logger.info("Created %s calendar integration %s", integration.provider, integration.pk)
        return integration

    def request_sync(self, integration: CalendarIntegration) -> None:
        """Queue an immediate sync, regardless of the sync interval."""
        from calendar_integration.tasks import sync_calendar_integration_task

        if not integration.is_active:
            raise CalendarIntegrationInactiveError()

        integration_id = integration.pk
        transaction.on_commit(
            lambda: sync_calendar_integration_task.delay(  # type: ignore
                integration_id=integration_id
            )
        )

    def create_external_event(
        self, integration: CalendarIntegration, event_data: CalendarEventAdapterInputData
    ) -> CalendarEventAdapterOutputData:
        """
        Write the event through the provider. The local copy is stored by the sync
        queued afterwards.

        :raises UnsupportedOperationError: for read-only providers.
        """
        adapter = self._get_active_adapter(integration)
        created = adapter.create_event(
            integration.credentials, integration.provider_calendar_id, event_data
        )
        self.request_sync(integration)
        return created

    def update_external_event(
        self,
        integration: CalendarIntegration,
        external_id: str,
        event_data: CalendarEventAdapterInputData,
    ) -> CalendarEventAdapterOutputData:
        adapter = self._get_active_adapter(integration)
        updated = adapter.update_event(
            integration.credentials, integration.provider_calendar_id, external_id, event_data
        )
        self.request_sync(integration)
        return updated

    def delete_external_event(self, integration: CalendarIntegration, external_id: str) -> None:
        adapter = self._get_active_adapter(integration)
        adapter.delete_event(
            integration.credentials, integration.provider_calendar_id, external_id
        )
        self.request_sync(integration)

    def _get_active_adapter(self, integration: CalendarIntegration) -> CalendarAdapter:
        if not integration.is_active:
            raise CalendarIntegrationInactiveError()
        return self.adapter_factory(integration.provider)
