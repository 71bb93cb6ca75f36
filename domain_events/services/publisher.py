import datetime
import logging
from collections.abc import Mapping
from typing import Any

from django.conf import settings
from django.db import transaction

import requests

from domain_events.constants import DeliveryStatus, DomainEventType
from domain_events.models import DomainEvent, EventDelivery, EventSubscription
from domain_events.tasks import process_event_delivery


logger = logging.getLogger(__name__)

MAX_DELIVERY_RETRIES = 5


class DomainEventPublisher:
    """
    Fire-and-forget publisher for domain notifications.

    Callers publish after their own state change is done; nothing raised while
    recording or fanning out an event reaches them.
    """

    def publish(
        self, event_type: DomainEventType | str, payload: Mapping[str, Any]
    ) -> DomainEvent | None:
        try:
            # savepoint so a failed insert can't poison the caller's transaction
            with transaction.atomic():
                event = DomainEvent.objects.create(event_type=event_type, payload=dict(payload))
                deliveries = self._create_deliveries(event)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to record domain event %s", event_type)
            return None

        for delivery in deliveries:
            try:
                self._schedule_delivery(delivery)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "Failed to schedule delivery %s for domain event %s", delivery.pk, event_type
                )

        logger.info("Published domain event %s to %d subscriber(s)", event_type, len(deliveries))
        return event

    def _create_deliveries(self, event: DomainEvent) -> list[EventDelivery]:
        subscriptions = EventSubscription.objects.filter(
            event_type=event.event_type, is_active=True
        )
        return [
            EventDelivery.objects.create(
                event=event,
                subscription=subscription,
                url=subscription.url,
                headers=subscription.headers,
            )
            for subscription in subscriptions
        ]

    def _schedule_delivery(self, delivery: EventDelivery):
        process_event_delivery.delay(delivery_id=delivery.pk)

    def schedule_delivery_retry(self, delivery: EventDelivery) -> EventDelivery | None:
        """Schedule a retry for a failed delivery with exponential backoff.

        Returns None once `MAX_DELIVERY_RETRIES` is exhausted.
        """
        retry_number = (delivery.retry_number or 0) + 1

        if retry_number > MAX_DELIVERY_RETRIES:
            return None

        exponential_backoff = 2 ** (retry_number - 1)
        retry_delivery = EventDelivery.objects.create(
            event=delivery.event,
            subscription=delivery.subscription,
            url=delivery.url,
            headers=delivery.headers,
            status=DeliveryStatus.PENDING,
            send_after=(
                datetime.datetime.now(tz=datetime.UTC)
                + datetime.timedelta(seconds=exponential_backoff)
            ),
            main_delivery=delivery.main_delivery if delivery.main_delivery else delivery,
            retry_number=retry_number,
        )

        process_event_delivery.apply_async(
            kwargs={"delivery_id": retry_delivery.pk},
            countdown=exponential_backoff,
        )
        return retry_delivery

    def process_delivery(self, delivery: EventDelivery) -> EventDelivery:
        """
        Send the event payload to the subscriber with an HTTP POST.

        Args:
            delivery (EventDelivery): The pending delivery.

        Return:
            EventDelivery: The processed delivery.
        """
        body = {
            "id": delivery.event_id,
            "event_type": delivery.event.event_type,
            "payload": delivery.event.payload,
        }
        try:
            response = requests.post(
                delivery.url,
                headers=delivery.headers,
                json=body,
                timeout=settings.DOMAIN_EVENT_DELIVERY_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.warning("Delivery %s to %s failed: %s", delivery.pk, delivery.url, e)
            delivery.status = DeliveryStatus.FAILED
            delivery.response_body = {"error": str(e)}
            delivery.save()
            self.schedule_delivery_retry(delivery=delivery)
            return delivery

        delivery.status = (
            DeliveryStatus.SUCCESS
            if response.status_code >= 200 and response.status_code < 300
            else DeliveryStatus.FAILED
        )
        delivery.response_status = response.status_code
        try:
            delivery.response_body = {"body": response.json()}
        except ValueError:
            delivery.response_body = {"body": response.text}
        delivery.save()

        if delivery.status == DeliveryStatus.FAILED:
            self.schedule_delivery_retry(delivery=delivery)

        return delivery
