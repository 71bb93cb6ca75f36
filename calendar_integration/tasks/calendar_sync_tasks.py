import logging
from typing import Annotated

from dependency_injector.wiring import Provide, inject

from bookly_api.celery import app
from calendar_integration.models import CalendarIntegration
from calendar_integration.services.calendar_sync_service import CalendarSyncService


logger = logging.getLogger(__name__)


@app.task
@inject
def poll_calendar_integrations_task(
    calendar_sync_service: Annotated[CalendarSyncService, Provide["calendar_sync_service"]],
):
    """
    Periodic task that syncs every active integration whose sync interval elapsed.
    Scheduled by celerybeat.
    """
    result = calendar_sync_service.run_sync_cycle(CalendarIntegration.objects.active())
    return {"synced": result.synced, "failed": result.failed, "skipped": result.skipped}


@app.task
@inject
def sync_calendar_integration_task(
    integration_id: int,
    calendar_sync_service: Annotated[CalendarSyncService, Provide["calendar_sync_service"]],
):
    """
    Celery task to sync a single integration right away, regardless of its interval.
    """
    integration = CalendarIntegration.objects.active().filter(id=integration_id).first()
    if not integration:
        logger.warning("Skipping sync of missing or inactive integration %s", integration_id)
        return None

    result = calendar_sync_service.sync_integration(integration)
    return {"integration_id": integration_id, "success": result.success, "error": result.error}
