from django.apps import AppConfig
import logging

logger = logging.getLogger(__name__)


class CoreBackendConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core_backend"

    def ready(self):
        from core_backend.config import app_settings

        logger.debug(
            f"POS core ready (currency={app_settings.currency}, "
            f"ticket thresholds={app_settings.ticket_thresholds})"
        )
