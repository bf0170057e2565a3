import logging

from django.core.exceptions import ValidationError as DjangoValidationError

from core_backend.exceptions import NotFound, ValidationFailure
from payments.models import Check, Payment
from payments.money import ZERO, parse_amount, quantize

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Records tenders that were already captured at the terminal. No gateway
    calls happen here.
    """

    @staticmethod
    def record_payment(
        order,
        method,
        amount,
        tip_amount=ZERO,
        check_id=None,
        card_last4="",
        card_brand="",
        transaction_id="",
        user=None,
    ) -> Payment:
        if method not in Payment.PaymentMethod.values:
            raise ValidationFailure(f"Unknown payment method {method!r}")

        currency = order.location.currency
        amount = quantize(currency, parse_amount("Payment amount", amount))
        tip_amount = quantize(currency, parse_amount("Tip amount", tip_amount or ZERO))
        if amount < 0 or tip_amount < 0:
            raise ValidationFailure("Payment and tip amounts cannot be negative")
        if amount + tip_amount <= 0:
            raise ValidationFailure("A payment must collect a positive amount")
        if card_last4 and (len(card_last4) != 4 or not card_last4.isdigit()):
            raise ValidationFailure("card_last4 must be exactly four digits")

        guest_check = None
        if check_id is not None:
            guest_check = PaymentService.get_check(order, check_id)

        payment = Payment.objects.create(
            order=order,
            guest_check=guest_check,
            method=method,
            amount=amount,
            tip_amount=tip_amount,
            card_last4=card_last4 or "",
            card_brand=card_brand or "",
            transaction_id=transaction_id or "",
            processed_by=user,
        )
        logger.info(
            f"Recorded {method} payment of {amount} (+{tip_amount} tip) on order "
            f"#{order.order_number}" + (f", {guest_check.name}" if guest_check else "")
        )
        return payment

    @staticmethod
    def get_check(order, check_id) -> Check:
        try:
            return Check.objects.get(pk=check_id, order_id=order.pk)
        except (Check.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFound(f"Check {check_id} not found on order #{order.order_number}")

    @staticmethod
    def total_paid(order):
        """Sum of amount + tip over every payment on the order."""
        return sum(
            (p.amount + p.tip_amount for p in Payment.objects.filter(order_id=order.pk)),
            ZERO,
        )

    @staticmethod
    def has_payments(order) -> bool:
        return Payment.objects.filter(order_id=order.pk).exists()

    @staticmethod
    def tendered_check_ids(order) -> set:
        """Ids of the order's checks that have at least one payment against them."""
        return set(
            Payment.objects.filter(order_id=order.pk, guest_check__isnull=False)
            .values_list("guest_check_id", flat=True)
        )
