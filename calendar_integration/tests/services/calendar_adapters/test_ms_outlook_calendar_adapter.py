import datetime
from unittest.mock import Mock, patch

import pytest
import requests

from calendar_integration.constants import CalendarEventStatus, CalendarProvider
from calendar_integration.exceptions import (
    EventOperationError,
    InvalidCredentialsError,
    MSGraphCredentialsError,
    MSOutlookAdapterError,
)
from calendar_integration.services.calendar_adapters.ms_outlook_calendar_adapter import (
    MS_TOKEN_URL,
    MSOutlookCalendarAdapter,
)
from calendar_integration.services.calendar_clients.ms_outlook_calendar_api_client import (
    MSGraphAPIError,
    MSGraphEvent,
)
from calendar_integration.services.dataclasses import CalendarEventAdapterInputData


MODULE = "calendar_integration.services.calendar_adapters.ms_outlook_calendar_adapter"
START = datetime.datetime(2025, 3, 3, 10, tzinfo=datetime.UTC)


@pytest.fixture
def ms_credentials():
    """Fixture for stored Microsoft credentials."""
    return {"refresh_token": "mock_refresh_token"}


@pytest.fixture
def mock_token_post():
    """Mock the token endpoint with a successful refresh."""
    with patch(f"{MODULE}.requests.post") as mock_post:
        mock_post.return_value = Mock(
            status_code=200, ok=True, json=Mock(return_value={"access_token": "access"})
        )
        yield mock_post


@pytest.fixture
def mock_client():
    """Mock MSOutlookCalendarAPIClient instance."""
    with patch(f"{MODULE}.MSOutlookCalendarAPIClient") as mock_client_class:
        client = Mock()
        mock_client_class.return_value = client
        yield client


@pytest.fixture
def adapter(mock_token_post, mock_client):
    return MSOutlookCalendarAdapter()


def _ms_event(**kwargs):
    defaults = {
        "id": "ms_event_1",
        "subject": "Department meeting",
        "body_content": "Weekly sync",
        "start_time": START,
        "end_time": START + datetime.timedelta(hours=1),
        "timezone": "UTC",
        "show_as": "busy",
        "original_payload": {"id": "ms_event_1"},
    }
    defaults.update(kwargs)
    return MSGraphEvent(**defaults)


class TestMSOutlookCalendarAdapterCredentials:
    def test_provider(self, adapter):
        assert adapter.provider == CalendarProvider.OUTLOOK

    def test_exchanges_refresh_token(self, adapter, ms_credentials, mock_token_post, settings):
        assert adapter.validate_credentials(ms_credentials) is True

        args, kwargs = mock_token_post.call_args
        assert args == (MS_TOKEN_URL,)
        assert kwargs["data"]["grant_type"] == "refresh_token"
        assert kwargs["data"]["refresh_token"] == "mock_refresh_token"
        assert kwargs["data"]["client_id"] == settings.MS_CLIENT_ID

    def test_missing_refresh_token(self, adapter, mock_token_post):
        with pytest.raises(MSGraphCredentialsError):
            adapter.validate_credentials({})

        mock_token_post.assert_not_called()

    @pytest.mark.parametrize("status_code", [400, 401])
    def test_rejected_refresh_token(self, adapter, ms_credentials, mock_token_post, status_code):
        mock_token_post.return_value = Mock(status_code=status_code, ok=False)

        with pytest.raises(InvalidCredentialsError):
            adapter.validate_credentials(ms_credentials)

    def test_token_endpoint_unavailable(self, adapter, ms_credentials, mock_token_post):
        mock_token_post.return_value = Mock(status_code=503, ok=False)

        with pytest.raises(MSOutlookAdapterError) as exc_info:
            adapter.validate_credentials(ms_credentials)

        assert not isinstance(exc_info.value, InvalidCredentialsError)

    def test_network_error(self, adapter, ms_credentials, mock_token_post):
        mock_token_post.side_effect = requests.ConnectionError("unreachable")

        with pytest.raises(MSOutlookAdapterError):
            adapter.validate_credentials(ms_credentials)

    def test_response_without_access_token(self, adapter, ms_credentials, mock_token_post):
        mock_token_post.return_value = Mock(status_code=200, ok=True, json=Mock(return_value={}))

        with pytest.raises(MSGraphCredentialsError):
            adapter.validate_credentials(ms_credentials)


class TestMSOutlookCalendarAdapterFetchEvents:
    def test_fetch_events(self, adapter, ms_credentials, mock_client):
        mock_client.list_calendar_view.return_value = [_ms_event()]

        (event,) = adapter.fetch_events(ms_credentials, "calendar_1")

        assert event.external_id == "ms_event_1"
        assert event.title == "Department meeting"
        assert event.description == "Weekly sync"
        assert event.status == CalendarEventStatus.CONFIRMED
        assert event.is_all_day is False
        assert mock_client.list_calendar_view.call_args.kwargs["calendar_id"] == "calendar_1"

    def test_default_calendar(self, adapter, ms_credentials, mock_client):
        mock_client.list_calendar_view.return_value = []

        adapter.fetch_events(ms_credentials, "")

        assert mock_client.list_calendar_view.call_args.kwargs["calendar_id"] is None

    @pytest.mark.parametrize(
        "event_fields, expected_status",
        [
            ({"show_as": "busy"}, CalendarEventStatus.CONFIRMED),
            ({"show_as": "oof"}, CalendarEventStatus.CONFIRMED),
            ({"show_as": "workingElsewhere"}, CalendarEventStatus.CONFIRMED),
            ({"show_as": "tentative"}, CalendarEventStatus.TENTATIVE),
            ({"show_as": "free"}, CalendarEventStatus.CANCELLED),
            ({"show_as": None}, CalendarEventStatus.CONFIRMED),
            ({"show_as": "unknown"}, CalendarEventStatus.TENTATIVE),
            ({"show_as": "busy", "is_cancelled": True}, CalendarEventStatus.CANCELLED),
        ],
    )
    def test_status_mapping(
        self, adapter, ms_credentials, mock_client, event_fields, expected_status
    ):
        mock_client.list_calendar_view.return_value = [_ms_event(**event_fields)]

        (event,) = adapter.fetch_events(ms_credentials, "")

        assert event.status == expected_status

    def test_all_day_event(self, adapter, ms_credentials, mock_client):
        midnight = datetime.datetime(2025, 3, 3, tzinfo=datetime.UTC)
        mock_client.list_calendar_view.return_value = [
            _ms_event(
                start_time=midnight, end_time=midnight + datetime.timedelta(days=1), is_all_day=True
            )
        ]

        (event,) = adapter.fetch_events(ms_credentials, "")

        assert event.is_all_day is True

    def test_unauthorized_graph_call(self, adapter, ms_credentials, mock_client):
        mock_client.list_calendar_view.side_effect = MSGraphAPIError("Unauthorized", 401)

        with pytest.raises(MSGraphCredentialsError):
            adapter.fetch_events(ms_credentials, "")

    def test_graph_error(self, adapter, ms_credentials, mock_client):
        mock_client.list_calendar_view.side_effect = MSGraphAPIError("Server error", 500)

        with pytest.raises(MSOutlookAdapterError) as exc_info:
            adapter.fetch_events(ms_credentials, "")

        assert not isinstance(exc_info.value, InvalidCredentialsError)


class TestMSOutlookCalendarAdapterWrites:
    @pytest.fixture
    def event_data(self):
        return CalendarEventAdapterInputData(
            title="Lab session",
            start_time=START,
            end_time=START + datetime.timedelta(hours=1),
        )

    def test_create_event(self, adapter, ms_credentials, mock_client, event_data):
        mock_client.create_event.return_value = _ms_event(id="created", subject="Lab session")

        event = adapter.create_event(ms_credentials, "", event_data)

        assert event.external_id == "created"
        kwargs = mock_client.create_event.call_args.kwargs
        assert kwargs["subject"] == "Lab session"
        assert kwargs["body"] is None
        assert kwargs["calendar_id"] is None

    def test_update_event(self, adapter, ms_credentials, mock_client, event_data):
        mock_client.update_event.return_value = _ms_event()

        adapter.update_event(ms_credentials, "calendar_1", "ms_event_1", event_data)

        kwargs = mock_client.update_event.call_args.kwargs
        assert kwargs["event_id"] == "ms_event_1"
        assert kwargs["calendar_id"] == "calendar_1"

    def test_delete_event(self, adapter, ms_credentials, mock_client):
        adapter.delete_event(ms_credentials, "", "ms_event_1")

        mock_client.delete_event.assert_called_once_with("ms_event_1", calendar_id=None)

    def test_write_errors(self, adapter, ms_credentials, mock_client, event_data):
        mock_client.create_event.side_effect = MSGraphAPIError("Bad request", 400)
        mock_client.delete_event.side_effect = MSGraphAPIError("Not found", 404)

        with pytest.raises(EventOperationError):
            adapter.create_event(ms_credentials, "", event_data)
        with pytest.raises(EventOperationError):
            adapter.delete_event(ms_credentials, "", "missing")
