from calendar_integration.constants import CalendarProvider
from calendar_integration.exceptions import UnknownCalendarProviderError
from calendar_integration.services.calendar_adapters.google_calendar_adapter import (
    GoogleCalendarAdapter,
)
from calendar_integration.services.calendar_adapters.ical_calendar_adapter import (
    ICalCalendarAdapter,
)
from calendar_integration.services.calendar_adapters.internal_calendar_adapter import (
    InternalCalendarAdapter,
)
from calendar_integration.services.calendar_adapters.ms_outlook_calendar_adapter import (
    MSOutlookCalendarAdapter,
)
from calendar_integration.services.protocols.calendar_adapter import CalendarAdapter


CALENDAR_ADAPTERS: dict[str, type[CalendarAdapter]] = {
    CalendarProvider.GOOGLE: GoogleCalendarAdapter,
    CalendarProvider.OUTLOOK: MSOutlookCalendarAdapter,
    CalendarProvider.ICAL: ICalCalendarAdapter,
    CalendarProvider.INTERNAL: InternalCalendarAdapter,
}


def get_calendar_adapter(provider: str) -> CalendarAdapter:
    try:
        adapter_class = CALENDAR_ADAPTERS[provider]
    except KeyError as e:
        raise UnknownCalendarProviderError(provider) from e
    return adapter_class()


__all__ = [
    "CALENDAR_ADAPTERS",
    "GoogleCalendarAdapter",
    "ICalCalendarAdapter",
    "InternalCalendarAdapter",
    "MSOutlookCalendarAdapter",
    "get_calendar_adapter",
]
