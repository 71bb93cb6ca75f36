from collections.abc import Mapping
from typing import Any, Protocol

from calendar_integration.services.dataclasses import (
    CalendarEventAdapterInputData,
    CalendarEventAdapterOutputData,
)


class CalendarAdapter(Protocol):
    provider: str

    def validate_credentials(self, credentials: Mapping[str, Any]) -> bool:
        """
        Check the credentials against the provider.
        :param credentials: Provider specific credentials.
        :raises InvalidCredentialsError: if they are malformed or rejected.
        """
        ...

    def fetch_events(
        self, credentials: Mapping[str, Any], calendar_id: str
    ) -> list[CalendarEventAdapterOutputData]:
        """
        Retrieve the calendar events inside the sync look-ahead window.
        :param credentials: Provider specific credentials.
        :param calendar_id: Provider calendar identifier.
        :return: Events normalized into the canonical shape.
        """
        ...

    def create_event(
        self,
        credentials: Mapping[str, Any],
        calendar_id: str,
        event_data: CalendarEventAdapterInputData,
    ) -> CalendarEventAdapterOutputData:
        """
        Create a new event in the calendar.
        :raises UnsupportedOperationError: for read-only calendars.
        """
        ...

    def update_event(
        self,
        credentials: Mapping[str, Any],
        calendar_id: str,
        external_id: str,
        event_data: CalendarEventAdapterInputData,
    ) -> CalendarEventAdapterOutputData:
        """
        Update an existing event in the calendar.
        :raises UnsupportedOperationError: for read-only calendars.
        """
        ...

    def delete_event(self, credentials: Mapping[str, Any], calendar_id: str, external_id: str):
        """
        Delete an event from the calendar.
        :raises UnsupportedOperationError: for read-only calendars.
        """
        ...
