import datetime
import logging
from collections.abc import Mapping
from typing import Any

from django.conf import settings

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from calendar_integration.constants import CalendarEventStatus, CalendarProvider
from calendar_integration.exceptions import (
    EventOperationError,
    GoogleCalendarAdapterError,
    GoogleCredentialsError,
)
from calendar_integration.services.calendar_adapters.utils import (
    date_to_datetime,
    get_lookahead_window,
    is_all_day_event,
)
from calendar_integration.services.dataclasses import (
    CalendarEventAdapterInputData,
    CalendarEventAdapterOutputData,
)
from calendar_integration.services.protocols.calendar_adapter import CalendarAdapter
from common.rate_limiting import get_provider_limiter


logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"  # noqa: S105
GOOGLE_CALENDAR_SCOPES = ("https://www.googleapis.com/auth/calendar",)


class GoogleCalendarAdapter(CalendarAdapter):
    provider = CalendarProvider.GOOGLE
    STATUS_MAPPING: dict[str | None, str] = {  # noqa: RUF012
        "confirmed": CalendarEventStatus.CONFIRMED,
        "tentative": CalendarEventStatus.TENTATIVE,
        "cancelled": CalendarEventStatus.CANCELLED,
        None: CalendarEventStatus.CONFIRMED,
    }

    def __init__(self):
        self.limiter = get_provider_limiter("google_calendar_limiter")

    def _build_credentials(self, credentials: Mapping[str, Any]) -> Credentials:
        """
        Exchange the stored refresh token for a fresh access token. Runs before every
        provider call.
        """
        refresh_token = credentials.get("refresh_token")
        client_id = credentials.get("client_id") or settings.GOOGLE_CLIENT_ID
        client_secret = credentials.get("client_secret") or settings.GOOGLE_CLIENT_SECRET
        if not refresh_token:
            raise GoogleCredentialsError("Google credentials require a refresh_token.")
        if not client_id or not client_secret:
            raise GoogleCredentialsError(
                "Google Calendar integration requires a client id and secret, either in the "
                "credentials or in GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET settings."
            )

        google_credentials = Credentials(
            token=None,
            refresh_token=refresh_token,
            client_id=client_id,
            client_secret=client_secret,
            token_uri=GOOGLE_TOKEN_URI,
            scopes=list(GOOGLE_CALENDAR_SCOPES),
        )
        try:
            google_credentials.refresh(Request())
        except RefreshError as e:
            raise GoogleCredentialsError() from e
        return google_credentials

    def _get_client(self, credentials: Mapping[str, Any]):
        return build(
            "calendar",
            "v3",
            credentials=self._build_credentials(credentials),
            cache_discovery=False,
        )

    def validate_credentials(self, credentials: Mapping[str, Any]) -> bool:
        self._build_credentials(credentials)
        return True

    def fetch_events(
        self, credentials: Mapping[str, Any], calendar_id: str
    ) -> list[CalendarEventAdapterOutputData]:
        client = self._get_client(credentials)
        calendar_id = calendar_id or "primary"
        start_date, end_date = get_lookahead_window()

        events: list[CalendarEventAdapterOutputData] = []
        page_token = None
        while True:
            extra_kwargs: dict[str, Any] = {}
            if page_token:
                extra_kwargs["pageToken"] = page_token

            self.limiter.try_acquire(f"google_calendar_read_{calendar_id}")
            try:
                events_result = (
                    client.events()
                    .list(
                        calendarId=calendar_id,
                        timeMin=start_date.isoformat(),
                        timeMax=end_date.isoformat(),
                        singleEvents=True,
                        orderBy="startTime",
                        maxResults=250,
                        **extra_kwargs,
                    )
                    .execute()
                )
            except HttpError as e:
                raise GoogleCalendarAdapterError(
                    f"Failed to list Google Calendar events for {calendar_id}: {e}"
                ) from e

            events.extend(
                self._convert_google_calendar_event(event)
                for event in events_result.get("items", [])
            )

            page_token = events_result.get("nextPageToken")
            if not page_token:
                break

        logger.debug("Fetched %d Google Calendar events for %s", len(events), calendar_id)
        return events

    def create_event(
        self,
        credentials: Mapping[str, Any],
        calendar_id: str,
        event_data: CalendarEventAdapterInputData,
    ) -> CalendarEventAdapterOutputData:
        client = self._get_client(credentials)
        self.limiter.try_acquire(f"google_calendar_write_{calendar_id}")
        try:
            created_event = (
                client.events()
                .insert(
                    calendarId=calendar_id or "primary", body=self._to_google_event(event_data)
                )
                .execute()
            )
        except HttpError as e:
            raise EventOperationError(f"Failed to create Google Calendar event: {e}") from e
        return self._convert_google_calendar_event(created_event)

    def update_event(
        self,
        credentials: Mapping[str, Any],
        calendar_id: str,
        external_id: str,
        event_data: CalendarEventAdapterInputData,
    ) -> CalendarEventAdapterOutputData:
        client = self._get_client(credentials)
        self.limiter.try_acquire(f"google_calendar_write_{calendar_id}")
        try:
            updated_event = (
                client.events()
                .update(
                    calendarId=calendar_id or "primary",
                    eventId=external_id,
                    body=self._to_google_event(event_data),
                )
                .execute()
            )
        except HttpError as e:
            raise EventOperationError(f"Failed to update Google Calendar event: {e}") from e
        return self._convert_google_calendar_event(updated_event)

    def delete_event(self, credentials: Mapping[str, Any], calendar_id: str, external_id: str):
        client = self._get_client(credentials)
        self.limiter.try_acquire(f"google_calendar_write_{calendar_id}")
        try:
            client.events().delete(
                calendarId=calendar_id or "primary", eventId=external_id
            ).execute()
        except HttpError as e:
            raise EventOperationError(f"Failed to delete Google Calendar event: {e}") from e

    @staticmethod
    def _to_google_event(event_data: CalendarEventAdapterInputData) -> dict[str, Any]:
        if event_data.is_all_day:
            start = {"date": event_data.start_time.date().isoformat()}
            end = {"date": event_data.end_time.date().isoformat()}
        else:
            start = {"dateTime": event_data.start_time.isoformat()}
            end = {"dateTime": event_data.end_time.isoformat()}
        return {
            "summary": event_data.title,
            "description": event_data.description,
            "start": start,
            "end": end,
        }

    @staticmethod
    def _parse_google_datetime(value: dict[str, str]) -> tuple[datetime.datetime, bool]:
        """Returns the parsed datetime and whether the source had a time of day."""
        if "dateTime" in value:
            return datetime.datetime.fromisoformat(value["dateTime"]), True
        return date_to_datetime(datetime.date.fromisoformat(value["date"])), False

    def _map_status(self, event: dict[str, Any]) -> str:
        # free time is not a conflict
        if event.get("transparency") == "transparent" and event.get("status") != "tentative":
            return CalendarEventStatus.CANCELLED
        return self.STATUS_MAPPING.get(event.get("status"), CalendarEventStatus.CONFIRMED)

    def _convert_google_calendar_event(
        self, event: dict[str, Any]
    ) -> CalendarEventAdapterOutputData:
        start_time, has_time = self._parse_google_datetime(event["start"])
        end_time, _ = self._parse_google_datetime(event["end"])
        return CalendarEventAdapterOutputData(
            external_id=event["id"],
            title=event.get("summary", ""),
            description=event.get("description", ""),
            start_time=start_time,
            end_time=end_time,
            is_all_day=is_all_day_event(start_time, end_time, has_time_component=has_time),
            status=self._map_status(event),
            original_payload=event,
        )
