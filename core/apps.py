from django.apps import AppConfig
from django.conf import settings


class CoreConfig(AppConfig):
    name = 'core'
    verbose_name = 'Posyandu'
    default_auto_field = 'django.db.models.BigAutoField'

    gateway = None

    def ready(self):
        from core.gateway.context import GatewayContext

        self.gateway = GatewayContext.from_settings(settings)
