from django.contrib import admin

from domain_events.models import DomainEvent, EventDelivery, EventSubscription


class EventDeliveryInline(admin.TabularInline):
    model = EventDelivery
    fields = ("created", "url", "status", "response_status", "retry_number")
    readonly_fields = fields
    extra = 0
    max_num = 10


@admin.register(DomainEvent)
class DomainEventAdmin(admin.ModelAdmin):
    list_display = ("id", "event_type", "created")
    list_filter = ("event_type", "created")
    readonly_fields = ("event_type", "payload", "created", "modified")
    inlines = (EventDeliveryInline,)


@admin.register(EventSubscription)
class EventSubscriptionAdmin(admin.ModelAdmin):
    list_display = ("id", "event_type", "url", "is_active", "created")
    list_filter = ("event_type", "is_active")
    search_fields = ("url",)
