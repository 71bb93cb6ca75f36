from django.db.models import TextChoices


class CalendarProvider(TextChoices):
    GOOGLE = "google", "Google Calendar"
    OUTLOOK = "outlook", "Microsoft Outlook Calendar"
    ICAL = "ical", "iCal Feed"
    INTERNAL = "internal", "Internal Calendar"


class CalendarSyncStatus(TextChoices):
    IDLE = "idle", "Idle"
    SYNCING = "syncing", "Syncing"
    SUCCESS = "success", "Success"
    FAILED = "failed", "Failed"


class CalendarEventStatus(TextChoices):
    CONFIRMED = "CONFIRMED", "Confirmed"
    TENTATIVE = "TENTATIVE", "Tentative"
    CANCELLED = "CANCELLED", "Cancelled"
    DELETED = "DELETED", "Deleted"


# Events in these statuses never block a slot
NON_BLOCKING_EVENT_STATUSES = (CalendarEventStatus.CANCELLED, CalendarEventStatus.DELETED)

MIN_SYNC_INTERVAL_MINUTES = 5
MAX_SYNC_INTERVAL_MINUTES = 1440
DEFAULT_SYNC_INTERVAL_MINUTES = 15

# Credential keys each provider requires
REQUIRED_CREDENTIAL_KEYS: dict[str, tuple[str, ...]] = {
    CalendarProvider.GOOGLE: ("refresh_token",),
    CalendarProvider.OUTLOOK: ("refresh_token",),
    CalendarProvider.ICAL: ("url",),
    CalendarProvider.INTERNAL: (),
}
