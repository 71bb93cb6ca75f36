import datetime
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import Any, TypedDict


class OAuthCredentialsTypedDict(TypedDict, total=False):
    client_id: str
    client_secret: str
    refresh_token: str


class ICalCredentialsTypedDict(TypedDict):
    url: str


@dataclass
class CalendarEventAdapterInputData:
    title: str
    start_time: datetime.datetime
    end_time: datetime.datetime
    description: str = ""
    is_all_day: bool = False


@dataclass
class CalendarEventAdapterOutputData:
    """Canonical event shape every provider adapter normalizes into."""

    external_id: str
    title: str
    start_time: datetime.datetime
    end_time: datetime.datetime
    status: str
    is_all_day: bool = False
    description: str = ""
    original_payload: dict[str, Any] = dataclass_field(default_factory=dict)


@dataclass
class IntegrationSyncResult:
    integration_id: int
    success: bool
    events_created: int = 0
    events_updated: int = 0
    events_deleted: int = 0
    error: str | None = None


@dataclass
class SyncCycleResult:
    synced: list[int] = dataclass_field(default_factory=list)
    failed: list[int] = dataclass_field(default_factory=list)
    skipped: list[int] = dataclass_field(default_factory=list)
    results: list[IntegrationSyncResult] = dataclass_field(default_factory=list)
