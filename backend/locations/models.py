from decimal import Decimal

from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


class Location(models.Model):
    """
    A physical restaurant. Orders, tables, stations and menu items are all
    scoped to one location; tax rate and currency come from here.
    """

    name = models.CharField(max_length=200)
    tax_rate = models.DecimalField(
        max_digits=6,
        decimal_places=4,
        default=Decimal("0.0825"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("1"))],
        help_text=_("Sales tax as a decimal fraction, e.g. 0.0825 for 8.25%."),
    )
    currency = models.CharField(
        max_length=3, default="USD", help_text=_("ISO 4217 currency code.")
    )
    timezone = models.CharField(max_length=64, default="America/Chicago")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        verbose_name = _("Location")
        verbose_name_plural = _("Locations")

    def __str__(self):
        return self.name


class Table(models.Model):
    location = models.ForeignKey(
        Location, on_delete=models.CASCADE, related_name="tables"
    )
    name = models.CharField(max_length=50, help_text=_("Label shown on the floor plan, e.g. 'T12'."))
    section = models.CharField(max_length=50, blank=True)
    seats = models.PositiveIntegerField(default=4)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["location", "name"]
        constraints = [
            models.UniqueConstraint(
                fields=["location", "name"], name="unique_table_name_per_location"
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.location.name})"
