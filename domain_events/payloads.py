from typing import TypedDict


class CalendarSyncCompletedPayload(TypedDict):
    integration_id: int
    provider: str
    resource_id: str | None
    events_created: int
    events_updated: int
    events_deleted: int
    synced_at: str


class CalendarSyncFailedPayload(TypedDict):
    integration_id: int
    provider: str
    resource_id: str | None
    error: str


class AvailabilityCreatedPayload(TypedDict):
    availability_window_id: int
    resource_id: str
    day_of_week: int
    start_time: str
    end_time: str


class ReservationCreatedPayload(TypedDict):
    reservation_id: int
    resource_id: str
    user_id: str
    start_time: str
    end_time: str
    status: str
