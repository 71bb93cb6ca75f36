from django.apps import AppConfig
from django.conf import settings


class DICoreConfig(AppConfig):
    name = "di_core"
    verbose_name = "Dependency Injection"

    def ready(self) -> None:
        from di_core import containers

        container = containers.AppContainer()
        container.config.from_dict(
            {name: getattr(settings, name) for name in dir(settings) if name.isupper()}
        )

        # tasks resolve their services through `Provide[...]` markers
        container.wire(packages=settings.INTERNAL_INSTALLED_APPS)

        containers.container = container
