from django.contrib import admin

from availability.models import AvailabilityWindow, Reservation, Schedule


@admin.register(AvailabilityWindow)
class AvailabilityWindowAdmin(admin.ModelAdmin):
    list_display = ("id", "resource_id", "day_of_week", "start_time", "end_time", "is_active")
    list_filter = ("day_of_week", "is_active")
    search_fields = ("resource_id",)


@admin.register(Schedule)
class ScheduleAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "name",
        "resource_id",
        "schedule_type",
        "start_date",
        "end_date",
        "recurrence_frequency",
        "priority",
        "is_active",
    )
    list_filter = ("schedule_type", "recurrence_frequency", "is_active")
    search_fields = ("name", "resource_id")


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "resource_id", "user_id", "start_time", "end_time", "status")
    list_filter = ("status",)
    search_fields = ("title", "resource_id", "user_id")
    date_hierarchy = "start_time"
