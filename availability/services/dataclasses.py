import dataclasses
import datetime
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from availability.models import Schedule


@dataclasses.dataclass(frozen=True)
class RecurrenceDescriptor:
    frequency: str
    interval: int = 1
    start_time: datetime.time | None = None
    end_time: datetime.time | None = None


@dataclasses.dataclass
class ScheduleOccurrence:
    schedule: "Schedule"
    start_time: datetime.datetime
    end_time: datetime.datetime


@dataclasses.dataclass
class SlotRestriction:
    schedule_id: int
    schedule_name: str
    schedule_type: str
    allowed_user_types: list[str]
    min_advance_notice_hours: int | None
    priority: int


@dataclasses.dataclass
class TimeSlot:
    start_time: datetime.datetime
    end_time: datetime.datetime
    availability_window_id: int | None = None
    restrictions: list[SlotRestriction] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class ConflictSource:
    kind: str
    source_id: int
    title: str
    start_time: datetime.datetime
    end_time: datetime.datetime
    integration_id: int | None = None


@dataclasses.dataclass
class ConflictingSlot:
    slot: TimeSlot
    sources: list[ConflictSource]


@dataclasses.dataclass
class AvailabilityResult:
    resource_id: str
    start_time: datetime.datetime
    end_time: datetime.datetime
    available: list[TimeSlot]
    conflicting: list[ConflictingSlot]
    external_conflicts_included: bool = False


@dataclasses.dataclass
class RestrictionViolation:
    kind: str
    message: str
    schedule_id: int | None = None


@dataclasses.dataclass
class SlotCheckResult:
    available: bool
    conflicts: list[str]
    restrictions: list[str]
    violations: list[RestrictionViolation] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class CalendarViewEvent:
    id: str  # noqa: A003
    title: str
    start_time: datetime.datetime
    end_time: datetime.datetime
    event_type: str
    resource_id: str | None
    color: str
    editable: bool
    status: str | None = None
    is_all_day: bool = False
    meta: dict[str, Any] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass
class CalendarViewSummary:
    total_events: int
    reservations: int
    available_slots: int
    conflicts: int
    events_by_type: dict[str, int]


@dataclasses.dataclass
class CalendarView:
    start_time: datetime.datetime
    end_time: datetime.datetime
    events: list[CalendarViewEvent]
    summary: CalendarViewSummary
