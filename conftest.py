import datetime
from unittest.mock import Mock

import pytest

from domain_events.services import DomainEventPublisher


@pytest.fixture
def di_container():
    """Fixture to create a DI container."""
    from di_core.containers import container

    return container


@pytest.fixture
def resource_id():
    return "room-101"


@pytest.fixture
def mock_domain_event_publisher():
    """Publisher double that records calls instead of writing events."""
    return Mock(spec=DomainEventPublisher)


@pytest.fixture
def next_monday():
    """Midnight of the Monday after today, in the organizational timezone."""
    from django.utils import timezone

    today = timezone.localdate()
    days_ahead = 7 - today.weekday()
    monday = today + datetime.timedelta(days=days_ahead)
    return datetime.datetime.combine(
        monday, datetime.time.min, tzinfo=timezone.get_default_timezone()
    )
