from django.db import models

from common.models import BaseModel
from domain_events.constants import DeliveryStatus, DomainEventType


class DomainEvent(BaseModel):
    event_type = models.CharField(max_length=255, choices=DomainEventType)
    payload = models.JSONField(default=dict)

    def __str__(self):
        return f"DomainEvent(id={self.id}, event_type={self.event_type})"


class EventSubscription(BaseModel):
    event_type = models.CharField(max_length=255, choices=DomainEventType)
    url = models.URLField(max_length=2000)
    headers = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return f"EventSubscription(id={self.id}, event_type={self.event_type}, url={self.url})"


class EventDelivery(BaseModel):
    event = models.ForeignKey(DomainEvent, on_delete=models.CASCADE, related_name="deliveries")
    subscription = models.ForeignKey(
        EventSubscription, on_delete=models.CASCADE, related_name="deliveries"
    )
    url = models.URLField(max_length=2000)
    headers = models.JSONField(default=dict, blank=True)
    status = models.CharField(
        max_length=50,
        choices=DeliveryStatus,
        default=DeliveryStatus.PENDING,
    )
    response_status = models.PositiveBigIntegerField(null=True, blank=True)
    response_body = models.JSONField(null=True, blank=True)

    main_delivery = models.ForeignKey(
        "self",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        help_text="Reference to the first delivery in case of retries",
    )
    retry_number = models.PositiveIntegerField(null=True, blank=True, default=None)
    send_after = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"EventDelivery(id={self.id}, event_id={self.event_id}, url={self.url})"
