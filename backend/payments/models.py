import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


class Check(models.Model):
    """
    A payable sub-bill of an order. An order starts with no checks (one
    implicit bill); splitting by seat or by custom groups creates two or more.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        "orders.Order", on_delete=models.CASCADE, related_name="checks"
    )
    name = models.CharField(max_length=100, help_text=_("Label, e.g. 'Seat 1'."))
    position = models.PositiveIntegerField(default=1)
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    is_paid = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["position", "created_at"]
        verbose_name = _("Check")
        verbose_name_plural = _("Checks")

    def __str__(self):
        return f"{self.name} on Order #{self.order.order_number}"


class Payment(models.Model):
    """
    One tender against an order, optionally tied to a check. Capture happens
    before the payment is recorded here.
    """

    class PaymentMethod(models.TextChoices):
        CASH = "CASH", _("Cash")
        CREDIT = "CREDIT", _("Credit Card")
        DEBIT = "DEBIT", _("Debit Card")
        GIFT_CARD = "GIFT_CARD", _("Gift Card")
        HOUSE_ACCOUNT = "HOUSE_ACCOUNT", _("House Account")
        COMP = "COMP", _("Comp")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        "orders.Order", on_delete=models.CASCADE, related_name="payments"
    )
    guest_check = models.ForeignKey(
        Check,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payments",
    )
    method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    tip_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )

    # Card metadata (from the external terminal)
    card_last4 = models.CharField(max_length=4, blank=True)
    card_brand = models.CharField(max_length=20, blank=True)
    transaction_id = models.CharField(
        max_length=255,
        blank=True,
        help_text=_("Reference from the card processor or gift card system."),
    )

    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="processed_payments",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        verbose_name = _("Payment")
        verbose_name_plural = _("Payments")
        indexes = [
            models.Index(fields=["order", "created_at"]),
        ]

    def __str__(self):
        return f"{self.get_method_display()} {self.amount} on Order #{self.order.order_number}"

    @property
    def total_collected(self):
        return self.amount + self.tip_amount
