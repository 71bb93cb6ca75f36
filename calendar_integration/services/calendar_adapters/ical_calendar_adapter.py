"""
iCal feed adapter.

Feeds are pulled over HTTP on every sync and are read-only: any write raises
`UnsupportedOperationError`. Recurring VEVENTs are expanded inside the look-ahead
window with `dateutil`; instances overridden through RECURRENCE-ID replace the
generated occurrence with the same start.
"""

import datetime
import logging
from collections.abc import Mapping
from typing import Any, ClassVar

from django.core.exceptions import ValidationError
from django.core.validators import URLValidator

import requests
from dateutil.rrule import rrulestr
from icalendar import Calendar

from calendar_integration.constants import CalendarEventStatus, CalendarProvider
from calendar_integration.exceptions import (
    ICalAdapterError,
    ICalFeedUnreachableError,
    UnsupportedOperationError,
)
from calendar_integration.services.calendar_adapters.utils import (
    date_to_datetime,
    ensure_aware,
    get_lookahead_window,
)
from calendar_integration.services.dataclasses import (
    CalendarEventAdapterInputData,
    CalendarEventAdapterOutputData,
)
from calendar_integration.services.protocols.calendar_adapter import CalendarAdapter
from common.rate_limiting import get_provider_limiter


logger = logging.getLogger(__name__)

ICAL_REQUEST_TIMEOUT_SECONDS = 30


class ICalCalendarAdapter(CalendarAdapter):
    provider = CalendarProvider.ICAL
    STATUS_MAPPING: ClassVar[dict[str, str]] = {
        "CONFIRMED": CalendarEventStatus.CONFIRMED,
        "TENTATIVE": CalendarEventStatus.TENTATIVE,
        "CANCELLED": CalendarEventStatus.CANCELLED,
    }

    def __init__(self):
        self.limiter = get_provider_limiter("ical_feed_limiter")
        self.url_validator = URLValidator(schemes=["http", "https"])

    def _get_feed_url(self, credentials: Mapping[str, Any]) -> str:
        url = (credentials.get("url") or "").strip()
        if url.startswith("webcal://"):
            url = "https://" + url.removeprefix("webcal://")
        try:
            self.url_validator(url)
        except ValidationError as e:
            raise ICalFeedUnreachableError(f"Invalid iCal feed URL: {url!r}") from e
        return url

    def _fetch_calendar(self, credentials: Mapping[str, Any]) -> Calendar:
        url = self._get_feed_url(credentials)
        self.limiter.try_acquire("ical_feed")
        try:
            response = requests.get(url, timeout=ICAL_REQUEST_TIMEOUT_SECONDS)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ICalFeedUnreachableError(f"Failed to fetch iCal feed {url}: {e}") from e

        try:
            return Calendar.from_ical(response.content)
        except ValueError as e:
            raise ICalAdapterError(f"Failed to parse iCal feed {url}: {e}") from e

    def validate_credentials(self, credentials: Mapping[str, Any]) -> bool:
        self._fetch_calendar(credentials)
        return True

    def fetch_events(
        self, credentials: Mapping[str, Any], calendar_id: str
    ) -> list[CalendarEventAdapterOutputData]:
        calendar = self._fetch_calendar(credentials)
        window_start, window_end = get_lookahead_window()

        components = list(calendar.walk("VEVENT"))
        masters = [component for component in components if not component.get("RECURRENCE-ID")]
        overrides = [component for component in components if component.get("RECURRENCE-ID")]

        events: dict[str, CalendarEventAdapterOutputData] = {}
        for component in masters:
            for event in self._expand_component(component, window_start, window_end):
                events[event.external_id] = event

        for component in overrides:
            uid = str(component.get("UID", ""))
            recurrence_id, _ = self._to_datetime(component.get("RECURRENCE-ID").dt)
            external_id = self._instance_id(uid, recurrence_id)
            start_time, end_time, is_all_day = self._get_bounds(component)
            if not (start_time < window_end and end_time > window_start):
                events.pop(external_id, None)
                continue
            events[external_id] = self._build_event(
                component, external_id, start_time, end_time, is_all_day
            )

        logger.debug("Parsed %d iCal events for %s", len(events), calendar_id or "feed")
        return list(events.values())

    def create_event(
        self,
        credentials: Mapping[str, Any],
        calendar_id: str,
        event_data: CalendarEventAdapterInputData,
    ) -> CalendarEventAdapterOutputData:
        raise UnsupportedOperationError("iCal feeds are read-only, events cannot be created.")

    def update_event(
        self,
        credentials: Mapping[str, Any],
        calendar_id: str,
        external_id: str,
        event_data: CalendarEventAdapterInputData,
    ) -> CalendarEventAdapterOutputData:
        raise UnsupportedOperationError("iCal feeds are read-only, events cannot be updated.")

    def delete_event(self, credentials: Mapping[str, Any], calendar_id: str, external_id: str):
        raise UnsupportedOperationError("iCal feeds are read-only, events cannot be deleted.")

    def _expand_component(
        self,
        component,
        window_start: datetime.datetime,
        window_end: datetime.datetime,
    ) -> list[CalendarEventAdapterOutputData]:
        uid = str(component.get("UID", ""))
        start_time, end_time, is_all_day = self._get_bounds(component)
        duration = end_time - start_time

        rrule = component.get("RRULE")
        if rrule is None:
            if start_time < window_end and end_time > window_start:
                return [self._build_event(component, uid, start_time, end_time, is_all_day)]
            return []

        try:
            rule = rrulestr(rrule.to_ical().decode(), dtstart=start_time)
            starts = rule.between(window_start - duration, window_end, inc=True)
        except (ValueError, TypeError) as e:
            logger.warning(
                "Could not expand RRULE of iCal event %s, using DTSTART only: %s", uid, e
            )
            if start_time < window_end and end_time > window_start:
                return [self._build_event(component, uid, start_time, end_time, is_all_day)]
            return []

        excluded = self._get_excluded_starts(component)
        return [
            self._build_event(
                component,
                self._instance_id(uid, occurrence_start),
                occurrence_start,
                occurrence_start + duration,
                is_all_day,
            )
            for occurrence_start in starts
            if occurrence_start.astimezone(datetime.UTC) not in excluded
            and occurrence_start < window_end
            and occurrence_start + duration > window_start
        ]

    def _get_excluded_starts(self, component) -> set[datetime.datetime]:
        exdates = component.get("EXDATE")
        if exdates is None:
            return set()
        if not isinstance(exdates, list):
            exdates = [exdates]
        return {
            self._to_datetime(value.dt)[0].astimezone(datetime.UTC)
            for exdate in exdates
            for value in exdate.dts
        }

    @staticmethod
    def _to_datetime(value: datetime.date | datetime.datetime) -> tuple[datetime.datetime, bool]:
        """Returns an aware datetime and whether the value was a plain date."""
        if isinstance(value, datetime.datetime):
            return ensure_aware(value), False
        return date_to_datetime(value), True

    def _get_bounds(self, component) -> tuple[datetime.datetime, datetime.datetime, bool]:
        start_time, is_all_day = self._to_datetime(component.get("DTSTART").dt)
        if component.get("DTEND") is not None:
            end_time, _ = self._to_datetime(component.get("DTEND").dt)
        elif component.get("DURATION") is not None:
            end_time = start_time + component.get("DURATION").dt
        elif is_all_day:
            end_time = start_time + datetime.timedelta(days=1)
        else:
            end_time = start_time
        return start_time, end_time, is_all_day

    @staticmethod
    def _instance_id(uid: str, occurrence_start: datetime.datetime) -> str:
        return f"{uid}-{occurrence_start.astimezone(datetime.UTC):%Y%m%dT%H%M%S}"

    def _map_status(self, component) -> str:
        if str(component.get("TRANSP", "")).upper() == "TRANSPARENT":
            return CalendarEventStatus.CANCELLED
        return self.STATUS_MAPPING.get(
            str(component.get("STATUS", "CONFIRMED")).upper(), CalendarEventStatus.CONFIRMED
        )

    def _build_event(
        self,
        component,
        external_id: str,
        start_time: datetime.datetime,
        end_time: datetime.datetime,
        is_all_day: bool,
    ) -> CalendarEventAdapterOutputData:
        return CalendarEventAdapterOutputData(
            external_id=external_id,
            title=str(component.get("SUMMARY", "")),
            description=str(component.get("DESCRIPTION", "")),
            start_time=start_time,
            end_time=end_time,
            is_all_day=is_all_day,
            status=self._map_status(component),
            original_payload={"uid": str(component.get("UID", ""))},
        )
