from django.db.models import TextChoices


class DomainEventType(TextChoices):
    CALENDAR_SYNC_COMPLETED = "calendar.sync.completed", "Calendar Sync Completed"
    CALENDAR_SYNC_FAILED = "calendar.sync.failed", "Calendar Sync Failed"
    AVAILABILITY_CREATED = "availability.created", "Availability Created"
    RESERVATION_CREATED = "reservation.created", "Reservation Created"


class DeliveryStatus(TextChoices):
    PENDING = "pending", "Pending"
    SUCCESS = "success", "Success"
    FAILED = "failed", "Failed"
