from dependency_injector import containers, providers

from availability.recurrence_utils import RecurrenceExpander
from availability.services.availability_service import AvailabilityService
from availability.services.booking_service import BookingService
from availability.services.calendar_view_service import CalendarViewService
from calendar_integration.services.calendar_adapters import get_calendar_adapter
from calendar_integration.services.calendar_integration_service import (
    CalendarIntegrationService,
)
from calendar_integration.services.calendar_sync_service import CalendarSyncService
from domain_events.services import DomainEventPublisher


class AppContainer(containers.DeclarativeContainer):
    config = providers.Configuration()

    domain_event_publisher = providers.Factory(
        DomainEventPublisher,
    )

    recurrence_expander = providers.Factory(
        RecurrenceExpander,
        max_occurrences=config.RECURRENCE_MAX_OCCURRENCES,
    )

    availability_service = providers.Factory(
        AvailabilityService,
        recurrence_expander=recurrence_expander,
    )

    booking_service = providers.Factory(
        BookingService,
        availability_service=availability_service,
        domain_event_publisher=domain_event_publisher,
    )

    calendar_view_service = providers.Factory(
        CalendarViewService,
        availability_service=availability_service,
    )

    calendar_adapter_factory = providers.Object(get_calendar_adapter)

    calendar_sync_service = providers.Factory(
        CalendarSyncService,
        domain_event_publisher=domain_event_publisher,
        adapter_factory=calendar_adapter_factory,
    )

    calendar_integration_service = providers.Factory(
        CalendarIntegrationService,
        adapter_factory=calendar_adapter_factory,
    )


container: AppContainer | None = None  # set during app startup
