"""Django admin interface for calendar integrations and their synced events."""

from django.contrib import admin, messages
from django.db.models import QuerySet
from django.http import HttpRequest
from django.utils.html import format_html

from calendar_integration.constants import CalendarSyncStatus
from calendar_integration.exceptions import CalendarIntegrationInactiveError
from calendar_integration.models import CalendarEvent, CalendarIntegration
from calendar_integration.services.calendar_integration_service import CalendarIntegrationService


class CalendarEventInline(admin.TabularInline):
    """Most recent synced events of an integration."""

    model = CalendarEvent
    fields = ("external_id", "title", "start_time", "end_time", "status", "last_sync")
    readonly_fields = fields
    extra = 0
    max_num = 10
    can_delete = False


@admin.register(CalendarIntegration)
class CalendarIntegrationAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "name",
        "provider",
        "resource_id",
        "is_active",
        "sync_interval_minutes",
        "last_sync",
        "sync_status_display",
    )
    list_filter = ("provider", "is_active", "sync_status")
    search_fields = ("name", "resource_id", "calendar_id")
    readonly_fields = ("last_sync", "sync_status", "last_sync_error", "created", "modified")
    exclude = ("credentials",)
    inlines = (CalendarEventInline,)
    actions = ("request_sync",)

    @admin.display(description="Sync Status")
    def sync_status_display(self, obj: CalendarIntegration) -> str:
        colors = {
            CalendarSyncStatus.SUCCESS: "green",
            CalendarSyncStatus.FAILED: "red",
            CalendarSyncStatus.SYNCING: "orange",
        }
        return format_html(
            '<span style="color: {};">{}</span>',
            colors.get(obj.sync_status, "gray"),
            obj.get_sync_status_display(),
        )

    @admin.action(description="Sync selected integrations now")
    def request_sync(self, request: HttpRequest, queryset: QuerySet[CalendarIntegration]):
        service = CalendarIntegrationService()
        requested = 0
        for integration in queryset:
            try:
                service.request_sync(integration)
            except CalendarIntegrationInactiveError:
                continue
            requested += 1
        self.message_user(request, f"Sync requested for {requested} integration(s).", messages.INFO)


@admin.register(CalendarEvent)
class CalendarEventAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "integration", "start_time", "end_time", "status", "is_all_day")
    list_filter = ("status", "is_all_day", "integration__provider")
    search_fields = ("title", "external_id")
    readonly_fields = ("integration", "external_id", "last_sync", "meta", "created", "modified")
    date_hierarchy = "start_time"
