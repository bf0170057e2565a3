"""
Typed access to the POS business settings.

Business logic reads configuration through ``AppSettings`` instead of poking at
``django.conf.settings`` directly, so defaults live in one place.
"""

from decimal import Decimal
from typing import Dict

from django.conf import settings


DEFAULT_TICKET_THRESHOLDS = {"WARNING": 10, "LATE": 15}


class AppSettings:
    """Read-through view over ``django.conf.settings`` with POS defaults."""

    @property
    def currency(self) -> str:
        return getattr(settings, "POS_CURRENCY", "USD")

    @property
    def default_tax_rate(self) -> Decimal:
        return Decimal(str(getattr(settings, "POS_DEFAULT_TAX_RATE", "0.0825")))

    @property
    def notification_timeout(self) -> float:
        return float(getattr(settings, "POS_NOTIFICATION_TIMEOUT", 2.0))

    @property
    def ticket_thresholds(self) -> Dict[str, int]:
        configured = getattr(settings, "KDS_TICKET_THRESHOLDS", None) or {}
        thresholds = dict(DEFAULT_TICKET_THRESHOLDS)
        thresholds.update(configured)
        return thresholds


app_settings = AppSettings()
