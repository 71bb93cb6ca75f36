from common.exceptions import CommonError


# Service Layer/Internal Errors
class CalendarIntegrationError(CommonError):
    """Base exception for calendar integration errors"""

    pass


class UnknownCalendarProviderError(CalendarIntegrationError):
    def __init__(self, provider: str):
        super().__init__(f"No calendar adapter registered for provider: {provider}")


class CalendarIntegrationInactiveError(CalendarIntegrationError):
    default_message = "Calendar integration is not active."


# Calendar Adapters - External API Errors
class CalendarAdapterError(CalendarIntegrationError):
    """Base class for calendar adapter errors"""

    pass


class GoogleCalendarAdapterError(CalendarAdapterError):
    """Google Calendar specific errors"""

    pass


class MSOutlookAdapterError(CalendarAdapterError):
    """Microsoft Outlook specific errors"""

    pass


class ICalAdapterError(CalendarAdapterError):
    """iCal feed specific errors"""

    pass


class InternalCalendarAdapterError(CalendarAdapterError):
    """Internal calendar specific errors"""

    pass


class InvalidCredentialsError(CalendarAdapterError):
    """Raised when calendar credentials are malformed, invalid or expired"""

    default_message = "Invalid or expired calendar credentials provided."


class GoogleCredentialsError(InvalidCredentialsError, GoogleCalendarAdapterError):
    default_message = "Invalid or expired Google credentials provided."


class MSGraphCredentialsError(InvalidCredentialsError, MSOutlookAdapterError):
    default_message = "Invalid or expired Microsoft Graph credentials provided."


class ICalFeedUnreachableError(InvalidCredentialsError, ICalAdapterError):
    default_message = "iCal feed URL is invalid or could not be fetched."


class UnsupportedOperationError(CalendarAdapterError):
    """Raised for write attempts against a read-only calendar"""

    default_message = "This calendar does not support this operation."


class EventOperationError(CalendarAdapterError):
    """Errors during event CRUD operations"""

    pass


class ExternalCalendarUnavailableError(CalendarAdapterError):
    """Raised when external conflicts are required but cannot be determined"""

    default_message = "External calendar conflicts are unavailable."
