from .calendar_sync_tasks import (
    poll_calendar_integrations_task,
    sync_calendar_integration_task,
)


__all__ = [
    "poll_calendar_integrations_task",
    "sync_calendar_integration_task",
]
