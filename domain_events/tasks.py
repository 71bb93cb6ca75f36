import datetime
from typing import TYPE_CHECKING, Annotated

from dependency_injector.wiring import Provide, inject

from bookly_api.celery import app
from domain_events.constants import DeliveryStatus
from domain_events.models import EventDelivery


if TYPE_CHECKING:
    from domain_events.services import DomainEventPublisher


@app.task
@inject
def process_event_delivery(
    delivery_id: int,
    domain_event_publisher: Annotated[
        "DomainEventPublisher | None", Provide["domain_event_publisher"]
    ] = None,
):
    if not domain_event_publisher:
        return

    delivery = EventDelivery.objects.filter(id=delivery_id, status=DeliveryStatus.PENDING).first()

    if not delivery:
        return

    now = datetime.datetime.now(tz=datetime.UTC)
    if delivery.send_after and delivery.send_after > now:
        return

    domain_event_publisher.process_delivery(delivery=delivery)
