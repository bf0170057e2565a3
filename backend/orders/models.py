import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import IntegrityError, models, transaction
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core_backend.exceptions import Conflict, InvalidState


class Order(models.Model):
    # --- Status Fields ---
    class OrderStatus(models.TextChoices):
        OPEN = "OPEN", _("Open")  # Being built, nothing sent yet
        SENT = "SENT", _("Sent")  # At least one item fired to the kitchen
        IN_PROGRESS = "IN_PROGRESS", _("In Progress")
        READY = "READY", _("Ready")
        SERVED = "SERVED", _("Served")
        CLOSED = "CLOSED", _("Closed")  # Paid and closed out
        VOID = "VOID", _("Void")  # Whole order cancelled

    class OrderType(models.TextChoices):
        DINE_IN = "DINE_IN", _("Dine In")
        TAKEOUT = "TAKEOUT", _("Takeout")
        DELIVERY = "DELIVERY", _("Delivery")
        BAR_TAB = "BAR_TAB", _("Bar Tab")

    TERMINAL_STATUSES = (OrderStatus.CLOSED, OrderStatus.VOID)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    location = models.ForeignKey(
        "locations.Location",
        on_delete=models.PROTECT,
        related_name="orders",
        help_text=_("Location where this order was placed"),
    )
    order_number = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text=_("Sequential per location, restarting every business day."),
    )
    business_date = models.DateField(default=timezone.localdate)
    order_type = models.CharField(
        max_length=10, choices=OrderType.choices, default=OrderType.DINE_IN
    )
    status = models.CharField(
        max_length=12, choices=OrderStatus.choices, default=OrderStatus.OPEN
    )

    # --- Relationships ---
    table = models.ForeignKey(
        "locations.Table",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    server = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders_as_server",
    )
    tab_name = models.CharField(max_length=100, blank=True)
    guest_count = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])

    # --- Guest Fields ---
    guest_name = models.CharField(max_length=150, blank=True)
    guest_phone = models.CharField(max_length=20, blank=True)
    notes = models.TextField(blank=True)

    # --- Financial Fields (written only by OrderCalculationService) ---
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    comp_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    tip_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))

    opened_at = models.DateTimeField(default=timezone.now, editable=False)
    closed_at = models.DateTimeField(null=True, blank=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-opened_at"]
        verbose_name = _("Order")
        verbose_name_plural = _("Orders")
        indexes = [
            models.Index(fields=["location", "status"], name="order_loc_status_idx"),
            models.Index(fields=["location", "opened_at"], name="order_loc_opened_idx"),
            models.Index(fields=["server", "status"], name="order_server_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["location", "business_date", "order_number"],
                condition=models.Q(order_number__isnull=False),
                name="unique_order_number_per_location_day",
            ),
        ]

    def __str__(self):
        return f"Order #{self.order_number or self.pk} ({self.order_type}) - {self.status}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def display_name(self):
        if self.table_id:
            return self.table.name
        return self.tab_name or self.guest_name or f"#{self.order_number}"

    def save(self, *args, **kwargs):
        if self.order_number:
            super().save(*args, **kwargs)
            return

        max_retries = 5
        for _attempt in range(max_retries):
            self.order_number = self._generate_sequential_order_number()
            try:
                # Savepoint so a lost race does not poison the caller's transaction.
                with transaction.atomic():
                    super().save(*args, **kwargs)
                return
            except IntegrityError:
                # Another terminal took this number; try the next one.
                self.order_number = None
                continue
        raise Conflict("Failed to generate a unique order number after multiple retries.")

    def _generate_sequential_order_number(self):
        """
        Next number for this location and business day. Every location starts
        at 1 each day, so tickets stay short and easy to call out.
        """
        last_number = (
            Order.objects.filter(
                location_id=self.location_id, business_date=self.business_date
            )
            .exclude(order_number__isnull=True)
            .aggregate(models.Max("order_number"))["order_number__max"]
        )
        return (last_number or 0) + 1


class OrderItem(models.Model):
    class ItemStatus(models.TextChoices):
        PENDING = "PENDING", _("Pending")
        HELD = "HELD", _("Held")
        FIRED = "FIRED", _("Fired")
        IN_PROGRESS = "IN_PROGRESS", _("In Progress")
        READY = "READY", _("Ready for Pickup")
        SERVED = "SERVED", _("Served")
        VOID = "VOID", _("Void")

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    menu_item = models.ForeignKey(
        "menu.MenuItem", on_delete=models.PROTECT, related_name="order_items"
    )
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    seat = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    course = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    status = models.CharField(
        max_length=12, choices=ItemStatus.choices, default=ItemStatus.PENDING
    )
    special_instructions = models.TextField(
        blank=True, help_text=_("Guest notes, e.g., 'no onions'")
    )

    # Price snapshot
    unit_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("Menu price at the time the item was added."),
    )
    modifier_total = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    line_total = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("(unit price + modifier total) x quantity"),
    )

    station = models.ForeignKey(
        "menu.Station",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_items",
        help_text=_("Kitchen station copied from the menu item when added."),
    )
    guest_check = models.ForeignKey(
        "payments.Check",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="items",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    fired_at = models.DateTimeField(null=True, blank=True)
    ready_at = models.DateTimeField(null=True, blank=True)
    served_at = models.DateTimeField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = _("Order Item")
        verbose_name_plural = _("Order Items")
        ordering = ["course", "seat", "created_at"]
        indexes = [
            models.Index(fields=["order", "status"], name="item_order_status_idx"),
            models.Index(fields=["station", "status"], name="item_station_status_idx"),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.menu_item.name} (seat {self.seat}) in Order #{self.order.order_number}"

    @property
    def is_void(self):
        return self.status == self.ItemStatus.VOID


class OrderItemModifier(models.Model):
    """Snapshot of a modifier chosen for an item. Replaced wholesale, never edited."""

    order_item = models.ForeignKey(
        OrderItem, on_delete=models.CASCADE, related_name="modifiers"
    )
    modifier = models.ForeignKey(
        "menu.Modifier", on_delete=models.SET_NULL, null=True, blank=True
    )
    name = models.CharField(max_length=100)
    price_adjustment = models.DecimalField(max_digits=10, decimal_places=2)

    def __str__(self):
        return f"{self.name} ({self.price_adjustment})"


class AppendOnlyModel(models.Model):
    """
    Audit records that may be created but never changed or removed.
    Corrections are made by recording a new entry.
    """

    reason = models.TextField()
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="+",
        help_text=_("Manager who approved this adjustment."),
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True
        ordering = ["created_at"]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise InvalidState(f"{self._meta.verbose_name} records cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise InvalidState(f"{self._meta.verbose_name} records cannot be deleted")


class OrderVoid(AppendOnlyModel):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="voids")
    order_item = models.ForeignKey(
        OrderItem, on_delete=models.PROTECT, related_name="voids"
    )

    class Meta(AppendOnlyModel.Meta):
        verbose_name = _("Order Void")

    def __str__(self):
        return f"Void of {self.order_item_id} on Order #{self.order.order_number}"


class OrderComp(AppendOnlyModel):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="comps")
    order_item = models.ForeignKey(
        OrderItem,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="comps",
        help_text=_("Item being comped. Null for order-level comps."),
    )

    class Meta(AppendOnlyModel.Meta):
        verbose_name = _("Order Comp")

    def __str__(self):
        return f"Comp {self.amount} on Order #{self.order.order_number}"


class OrderDiscount(AppendOnlyModel):
    class DiscountType(models.TextChoices):
        PERCENTAGE = "PERCENTAGE", _("Percentage")
        FIXED = "FIXED", _("Fixed Amount")

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="discounts")
    name = models.CharField(max_length=100)
    discount_type = models.CharField(max_length=20, choices=DiscountType.choices)
    value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("15.00 means 15% for percentage discounts or $15 for fixed ones."),
    )

    class Meta(AppendOnlyModel.Meta):
        verbose_name = _("Order Discount")

    def __str__(self):
        return f"{self.name} ({self.amount}) on Order #{self.order.order_number}"
