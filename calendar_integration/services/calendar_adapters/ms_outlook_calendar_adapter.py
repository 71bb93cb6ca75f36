"""
Microsoft Outlook Calendar Adapter

Reads and writes Outlook calendars through Microsoft Graph. Credentials hold a
long-lived refresh token which is exchanged for an access token on every call.

Implementation Notes:
- Uses the MSOutlookCalendarAPIClient for the Graph calls
- An empty calendar id targets the account's default calendar
- `showAs` decides whether an event blocks: free time maps to CANCELLED
"""

import logging
from collections.abc import Mapping
from typing import Any, ClassVar

from django.conf import settings

import requests

from calendar_integration.constants import CalendarEventStatus, CalendarProvider
from calendar_integration.exceptions import (
    EventOperationError,
    MSGraphCredentialsError,
    MSOutlookAdapterError,
)
from calendar_integration.services.calendar_adapters.utils import (
    get_lookahead_window,
    is_all_day_event,
)
from calendar_integration.services.calendar_clients.ms_outlook_calendar_api_client import (
    MSGraphAPIError,
    MSGraphEvent,
    MSOutlookCalendarAPIClient,
)
from calendar_integration.services.dataclasses import (
    CalendarEventAdapterInputData,
    CalendarEventAdapterOutputData,
)
from calendar_integration.services.protocols.calendar_adapter import CalendarAdapter


logger = logging.getLogger(__name__)

MS_TOKEN_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/token"  # noqa: S105
MS_CALENDAR_SCOPE = "Calendars.ReadWrite offline_access"


class MSOutlookCalendarAdapter(CalendarAdapter):
    provider = CalendarProvider.OUTLOOK
    SHOW_AS_STATUS_MAPPING: ClassVar[dict[str, str]] = {
        "free": CalendarEventStatus.CANCELLED,
        "tentative": CalendarEventStatus.TENTATIVE,
        "busy": CalendarEventStatus.CONFIRMED,
        "oof": CalendarEventStatus.CONFIRMED,
        "workingElsewhere": CalendarEventStatus.CONFIRMED,
    }

    def _get_access_token(self, credentials: Mapping[str, Any]) -> str:
        refresh_token = credentials.get("refresh_token")
        client_id = credentials.get("client_id") or settings.MS_CLIENT_ID
        client_secret = credentials.get("client_secret") or settings.MS_CLIENT_SECRET
        if not refresh_token:
            raise MSGraphCredentialsError("Microsoft credentials require a refresh_token.")
        if not client_id or not client_secret:
            raise MSGraphCredentialsError(
                "Microsoft Calendar integration requires a client id and secret, either in "
                "the credentials or in MS_CLIENT_ID and MS_CLIENT_SECRET settings."
            )

        try:
            response = requests.post(
                MS_TOKEN_URL,
                data={
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                    "scope": MS_CALENDAR_SCOPE,
                },
                timeout=30,
            )
        except requests.RequestException as e:
            raise MSOutlookAdapterError(f"Failed to refresh Microsoft access token: {e}") from e

        if response.status_code in (400, 401):
            raise MSGraphCredentialsError()
        if not response.ok:
            raise MSOutlookAdapterError(
                f"Failed to refresh Microsoft access token: {response.status_code}"
            )

        access_token = response.json().get("access_token")
        if not access_token:
            raise MSGraphCredentialsError()
        return access_token

    def _get_client(self, credentials: Mapping[str, Any]) -> MSOutlookCalendarAPIClient:
        return MSOutlookCalendarAPIClient(access_token=self._get_access_token(credentials))

    def validate_credentials(self, credentials: Mapping[str, Any]) -> bool:
        self._get_access_token(credentials)
        return True

    def fetch_events(
        self, credentials: Mapping[str, Any], calendar_id: str
    ) -> list[CalendarEventAdapterOutputData]:
        client = self._get_client(credentials)
        start_date, end_date = get_lookahead_window()
        try:
            ms_events = client.list_calendar_view(
                start_time=start_date, end_time=end_date, calendar_id=calendar_id or None
            )
        except MSGraphAPIError as e:
            if e.status_code == 401:
                raise MSGraphCredentialsError() from e
            raise MSOutlookAdapterError(f"Failed to list Outlook events: {e}") from e

        logger.debug("Fetched %d Outlook events for %s", len(ms_events), calendar_id or "me")
        return [self._convert_ms_event(ms_event) for ms_event in ms_events]

    def create_event(
        self,
        credentials: Mapping[str, Any],
        calendar_id: str,
        event_data: CalendarEventAdapterInputData,
    ) -> CalendarEventAdapterOutputData:
        client = self._get_client(credentials)
        try:
            ms_event = client.create_event(
                subject=event_data.title,
                start_time=event_data.start_time,
                end_time=event_data.end_time,
                body=event_data.description or None,
                is_all_day=event_data.is_all_day,
                calendar_id=calendar_id or None,
            )
        except MSGraphAPIError as e:
            raise EventOperationError(f"Failed to create Outlook event: {e}") from e
        return self._convert_ms_event(ms_event)

    def update_event(
        self,
        credentials: Mapping[str, Any],
        calendar_id: str,
        external_id: str,
        event_data: CalendarEventAdapterInputData,
    ) -> CalendarEventAdapterOutputData:
        client = self._get_client(credentials)
        try:
            ms_event = client.update_event(
                event_id=external_id,
                subject=event_data.title,
                start_time=event_data.start_time,
                end_time=event_data.end_time,
                body=event_data.description,
                is_all_day=event_data.is_all_day,
                calendar_id=calendar_id or None,
            )
        except MSGraphAPIError as e:
            raise EventOperationError(f"Failed to update Outlook event: {e}") from e
        return self._convert_ms_event(ms_event)

    def delete_event(self, credentials: Mapping[str, Any], calendar_id: str, external_id: str):
        client = self._get_client(credentials)
        try:
            client.delete_event(external_id, calendar_id=calendar_id or None)
        except MSGraphAPIError as e:
            raise EventOperationError(f"Failed to delete Outlook event: {e}") from e

    def _map_status(self, ms_event: MSGraphEvent) -> str:
        if ms_event.is_cancelled:
            return CalendarEventStatus.CANCELLED
        return self.SHOW_AS_STATUS_MAPPING.get(
            ms_event.show_as or "busy", CalendarEventStatus.TENTATIVE
        )

    def _convert_ms_event(self, ms_event: MSGraphEvent) -> CalendarEventAdapterOutputData:
        return CalendarEventAdapterOutputData(
            external_id=ms_event.id,
            title=ms_event.subject,
            description=ms_event.body_content,
            start_time=ms_event.start_time,
            end_time=ms_event.end_time,
            is_all_day=ms_event.is_all_day
            or is_all_day_event(ms_event.start_time, ms_event.end_time),
            status=self._map_status(ms_event),
            original_payload=ms_event.original_payload or {},
        )
