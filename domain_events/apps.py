from django.apps import AppConfig


class DomainEventsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "domain_events"
    verbose_name = "Domain Events"
