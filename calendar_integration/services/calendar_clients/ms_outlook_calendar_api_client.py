"""
Microsoft Graph Calendar API client used by the Outlook adapter.

Covers the calls the sync needs: reading the calendar view of a date range
(following `@odata.nextLink` pages) and creating, updating and deleting events.
Requests are made once; a failed poll is retried on the next scheduled sync.
"""

import datetime
import logging
import re
from dataclasses import dataclass
from typing import Any

import requests

from common.rate_limiting import get_provider_limiter


logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 30

# Graph returns 7 fractional digits, `fromisoformat` handles at most 6
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


@dataclass
class MSGraphEvent:
    """Microsoft Graph Event representation"""

    id: str  # noqa: A003
    subject: str
    body_content: str
    start_time: datetime.datetime
    end_time: datetime.datetime
    timezone: str
    is_all_day: bool = False
    is_cancelled: bool = False
    show_as: str | None = None
    original_payload: dict[str, Any] | None = None


class MSGraphAPIError(Exception):
    """Exception raised for Microsoft Graph API errors"""

    def __init__(
        self, message: str, status_code: int | None = None, response_data: dict | None = None
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class MSOutlookCalendarAPIClient:
    """
    Microsoft Graph Calendar API Client for Microsoft Outlook integration.
    """

    BASE_URL = "https://graph.microsoft.com/v1.0"

    def __init__(self, access_token: str):
        """
        Initialize the MS Outlook Calendar API client.

        Args:
            access_token: OAuth2 access token for Microsoft Graph API
        """
        self.access_token = access_token
        self.limiter = get_provider_limiter("ms_outlook_calendar_limiter")
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
                "Prefer": 'outlook.timezone="UTC"',
            }
        )

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Make an HTTP request to Microsoft Graph API.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE)
            endpoint: API endpoint (without base URL) or an absolute `@odata.nextLink`
            params: Query parameters
            data: Request body data

        Returns:
            Response data as dictionary

        Raises:
            MSGraphAPIError: If the API request fails
        """
        if endpoint.startswith("https://"):
            url = endpoint
        else:
            url = f"{self.BASE_URL}/{endpoint.lstrip('/')}"

        self.limiter.try_acquire("ms_outlook_calendar")
        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=data,
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            logger.error("MS Graph request to %s failed: %s", url, e)
            raise MSGraphAPIError(f"Request failed: {e!s}") from e

        if response.status_code == 204:  # No Content
            return {}

        response_data = response.json() if response.content else {}

        if not response.ok:
            error_msg = f"MS Graph API error: {response.status_code}"
            if "error" in response_data:
                error_msg += f" - {response_data['error'].get('message', 'Unknown error')}"

            logger.error("%s. Response: %s", error_msg, response_data)
            raise MSGraphAPIError(error_msg, response.status_code, response_data)

        return response_data

    def _parse_datetime(self, dt_dict: dict[str, str]) -> datetime.datetime:
        """
        Parse Microsoft Graph datetime format to an aware Python datetime.

        Args:
            dt_dict: Dictionary with 'dateTime' and 'timeZone' keys

        Returns:
            Python datetime object, UTC when Graph sends no offset
        """
        dt_str = _FRACTION_RE.sub(r"\1", dt_dict["dateTime"])
        if dt_str.endswith("Z"):
            dt_str = dt_str[:-1] + "+00:00"
        parsed = datetime.datetime.fromisoformat(dt_str)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=datetime.UTC)
        return parsed

    def _format_datetime(self, dt: datetime.datetime) -> dict[str, str]:
        """
        Format Python datetime to Microsoft Graph datetime format, in UTC.
        """
        utc_dt = dt.astimezone(datetime.UTC)
        return {"dateTime": utc_dt.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3], "timeZone": "UTC"}

    def _events_endpoint(self, calendar_id: str | None) -> str:
        if calendar_id:
            return f"/me/calendars/{calendar_id}/events"
        return "/me/events"

    def list_calendar_view(
        self,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        calendar_id: str | None = None,
    ) -> list[MSGraphEvent]:
        """
        List event occurrences in a date range, with recurring series expanded.

        Args:
            start_time: Start of date range
            end_time: End of date range
            calendar_id: Calendar ID. If None, uses default calendar

        Returns:
            List of MSGraphEvent objects across every result page
        """
        if calendar_id:
            endpoint = f"/me/calendars/{calendar_id}/calendarView"
        else:
            endpoint = "/me/calendarView"

        params: dict[str, Any] | None = {
            "startDateTime": start_time.astimezone(datetime.UTC).isoformat(),
            "endDateTime": end_time.astimezone(datetime.UTC).isoformat(),
            "$top": 250,
        }

        events: list[MSGraphEvent] = []
        next_link: str | None = endpoint
        while next_link:
            response = self._make_request("GET", next_link, params=params)
            events.extend(self._parse_event(event_data) for event_data in response.get("value", []))
            next_link = response.get("@odata.nextLink")
            # nextLink already carries the query string
            params = None
        return events

    def create_event(
        self,
        subject: str,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        body: str | None = None,
        is_all_day: bool = False,
        calendar_id: str | None = None,
    ) -> MSGraphEvent:
        event_data: dict[str, Any] = {
            "subject": subject,
            "start": self._format_datetime(start_time),
            "end": self._format_datetime(end_time),
            "isAllDay": is_all_day,
        }
        if body:
            event_data["body"] = {"contentType": "html", "content": body}

        response = self._make_request("POST", self._events_endpoint(calendar_id), data=event_data)
        return self._parse_event(response)

    def update_event(
        self,
        event_id: str,
        subject: str | None = None,
        start_time: datetime.datetime | None = None,
        end_time: datetime.datetime | None = None,
        body: str | None = None,
        is_all_day: bool | None = None,
        calendar_id: str | None = None,
    ) -> MSGraphEvent:
        event_data: dict[str, Any] = {}
        if subject is not None:
            event_data["subject"] = subject
        if start_time is not None:
            event_data["start"] = self._format_datetime(start_time)
        if end_time is not None:
            event_data["end"] = self._format_datetime(end_time)
        if body is not None:
            event_data["body"] = {"contentType": "html", "content": body}
        if is_all_day is not None:
            event_data["isAllDay"] = is_all_day

        endpoint = f"{self._events_endpoint(calendar_id)}/{event_id}"
        response = self._make_request("PATCH", endpoint, data=event_data)
        return self._parse_event(response)

    def delete_event(self, event_id: str, calendar_id: str | None = None) -> None:
        self._make_request("DELETE", f"{self._events_endpoint(calendar_id)}/{event_id}")

    def _parse_event(self, event_data: dict[str, Any]) -> MSGraphEvent:
        """
        Parse Microsoft Graph event data into MSGraphEvent object.
        """
        return MSGraphEvent(
            id=event_data["id"],
            subject=event_data.get("subject") or "",
            body_content=(event_data.get("body") or {}).get("content", ""),
            start_time=self._parse_datetime(event_data["start"]),
            end_time=self._parse_datetime(event_data["end"]),
            timezone=event_data["start"].get("timeZone", "UTC"),
            is_all_day=event_data.get("isAllDay", False),
            is_cancelled=event_data.get("isCancelled", False),
            show_as=event_data.get("showAs"),
            original_payload=event_data,
        )
