from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


class Station(models.Model):
    """A kitchen or bar station that receives fired items (grill, fry, bar...)."""

    location = models.ForeignKey(
        "locations.Location", on_delete=models.CASCADE, related_name="stations"
    )
    name = models.CharField(max_length=100)
    short_name = models.CharField(max_length=10, blank=True)
    is_expo = models.BooleanField(
        default=False, help_text=_("Expo stations see every ticket for the runner view.")
    )
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "name"]

    def __str__(self):
        return self.name


class ModifierGroup(models.Model):
    class SelectionType(models.TextChoices):
        SINGLE = "SINGLE", _("Single Choice")
        MULTIPLE = "MULTIPLE", _("Multiple Choices")

    name = models.CharField(
        max_length=100, help_text=_("Guest-facing name, e.g., 'Temperature'")
    )
    selection_type = models.CharField(
        max_length=10, choices=SelectionType.choices, default=SelectionType.SINGLE
    )
    required = models.BooleanField(default=False)
    min_selections = models.PositiveIntegerField(
        default=0, help_text=_("Minimum required selections (0 for optional)")
    )
    max_selections = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text=_("Maximum allowed selections (null for unlimited)"),
    )
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "name"]

    def __str__(self):
        return self.name

    @property
    def effective_min(self):
        """A required group needs at least one selection even when min is 0."""
        if self.required:
            return max(self.min_selections, 1)
        return self.min_selections

    @property
    def effective_max(self):
        if self.selection_type == self.SelectionType.SINGLE:
            return 1
        return self.max_selections


class Modifier(models.Model):
    group = models.ForeignKey(
        ModifierGroup, on_delete=models.CASCADE, related_name="modifiers"
    )
    name = models.CharField(max_length=100)
    price_adjustment = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("The amount to add or subtract from the base item price."),
    )
    is_active = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "name"]
        unique_together = ("group", "name")

    def __str__(self):
        return f"{self.group.name} - {self.name}"


class MenuItem(models.Model):
    location = models.ForeignKey(
        "locations.Location", on_delete=models.CASCADE, related_name="menu_items"
    )
    name = models.CharField(max_length=200)
    kitchen_name = models.CharField(
        max_length=100,
        blank=True,
        help_text=_("Short name printed on kitchen tickets; defaults to the name."),
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    station = models.ForeignKey(
        Station,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="menu_items",
    )
    modifier_groups = models.ManyToManyField(
        ModifierGroup, blank=True, related_name="menu_items"
    )
    is_86d = models.BooleanField(
        default=False, help_text=_("Temporarily unavailable; blocks new orders.")
    )
    is_active = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["location", "is_active"]),
        ]

    def __str__(self):
        return self.name

    @property
    def ticket_name(self):
        return self.kitchen_name or self.name
