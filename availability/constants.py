import datetime

from django.db.models import TextChoices


class ScheduleType(TextChoices):
    REGULAR = "REGULAR", "Regular"
    RESTRICTED = "RESTRICTED", "Restricted"
    EXCEPTION = "EXCEPTION", "Exception"
    MAINTENANCE = "MAINTENANCE", "Maintenance"
    ACADEMIC_EVENT = "ACADEMIC_EVENT", "Academic Event"


class ReservationStatus(TextChoices):
    PENDING = "PENDING", "Pending"
    APPROVED = "APPROVED", "Approved"
    REJECTED = "REJECTED", "Rejected"
    CANCELLED = "CANCELLED", "Cancelled"
    COMPLETED = "COMPLETED", "Completed"


class RecurrenceFrequency(TextChoices):
    DAILY = "daily", "Daily"
    WEEKLY = "weekly", "Weekly"
    MONTHLY = "monthly", "Monthly"


class ExternalConflictsMode(TextChoices):
    NONE = "none", "Do not include external conflicts"
    OPTIONAL = "optional", "Include external conflicts when reachable"
    REQUIRED = "required", "Fail when external conflicts cannot be determined"


class ConflictSourceKind(TextChoices):
    INTERNAL = "internal", "Internal Reservation"
    EXTERNAL = "external", "External Calendar"


class RestrictionKind(TextChoices):
    SCHEDULE_PERIOD = "schedule_period", "Outside Schedule Period"
    ADVANCE_NOTICE = "advance_notice", "Advance Notice"
    USER_TYPE = "user_type", "User Type"


class CalendarViewEventType(TextChoices):
    RESERVATION = "RESERVATION", "Reservation"
    SCHEDULE = "SCHEDULE", "Schedule"
    MAINTENANCE = "MAINTENANCE", "Maintenance"
    EXTERNAL_CALENDAR = "EXTERNAL_CALENDAR", "External Calendar"
    AVAILABILITY = "AVAILABILITY", "Availability"


BLOCKING_RESERVATION_STATUSES = (ReservationStatus.PENDING, ReservationStatus.APPROVED)

# Schedule types each type may be created on top of
SCHEDULE_OVERLAP_PRECEDENCE: dict[str, frozenset[str]] = {
    ScheduleType.REGULAR: frozenset(),
    ScheduleType.RESTRICTED: frozenset({ScheduleType.REGULAR}),
    ScheduleType.EXCEPTION: frozenset({ScheduleType.REGULAR}),
    ScheduleType.MAINTENANCE: frozenset({ScheduleType.REGULAR}),
    ScheduleType.ACADEMIC_EVENT: frozenset({ScheduleType.REGULAR, ScheduleType.EXCEPTION}),
}

# Hard rejections at reservation creation, the rest are advisory
ENFORCED_RESTRICTION_KINDS = frozenset({RestrictionKind.ADVANCE_NOTICE, RestrictionKind.USER_TYPE})

MIN_RESERVATION_DURATION = datetime.timedelta(minutes=15)
MAX_RESERVATION_DURATION = datetime.timedelta(hours=24)

MAX_RECURRENCE_OCCURRENCES = 100

DEFAULT_SLOT_MINUTES = 60

CALENDAR_VIEW_EVENT_COLORS = {
    CalendarViewEventType.RESERVATION: "#3B82F6",
    CalendarViewEventType.SCHEDULE: "#8B5CF6",
    CalendarViewEventType.MAINTENANCE: "#EF4444",
    CalendarViewEventType.EXTERNAL_CALENDAR: "#6B7280",
    CalendarViewEventType.AVAILABILITY: "#10B981",
}
