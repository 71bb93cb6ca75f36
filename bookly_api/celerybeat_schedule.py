from celery.schedules import crontab  # type: ignore


CELERYBEAT_SCHEDULE = {
    "poll_calendar_integrations": {
        "schedule": crontab(minute="*/5"),
        "task": "calendar_integration.tasks.calendar_sync_tasks.poll_calendar_integrations_task",
    },
}
