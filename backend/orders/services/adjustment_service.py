import logging
from decimal import Decimal
from typing import List

from core_backend.exceptions import ValidationFailure
from orders.models import OrderComp, OrderDiscount, OrderVoid
from orders.state_machine import require_approval
from payments.money import parse_amount, percentage_of, quantize

logger = logging.getLogger(__name__)


class OrderAdjustmentService:
    """
    Append-only audit records for voids, comps and discounts.

    Each record carries the reason and the approving user. Records are never
    edited or deleted; see ``AppendOnlyModel``.
    """

    @staticmethod
    def record_void(order, item, reason, approver, user=None) -> OrderVoid:
        require_approval(f"Voiding item {item.pk}", reason, approver)
        void = OrderVoid.objects.create(
            order=order,
            order_item=item,
            reason=reason.strip(),
            amount=item.line_total,
            approved_by=approver,
            created_by=user,
        )
        logger.info(
            f"Voided item {item.pk} on order #{order.order_number} "
            f"({item.line_total}, approved by {approver}): {reason}"
        )
        return void

    @staticmethod
    def record_comp(order, amount, reason, approver, item=None, user=None) -> OrderComp:
        require_approval(f"Comp on order #{order.order_number}", reason, approver)
        currency = order.location.currency
        if amount is None:
            if item is None:
                raise ValidationFailure("An order-level comp needs an amount")
            amount = item.line_total
        amount = quantize(currency, parse_amount("Comp amount", amount))
        if amount <= 0:
            raise ValidationFailure(f"Comp amount must be positive, got {amount}")

        comp = OrderComp.objects.create(
            order=order,
            order_item=item,
            reason=reason.strip(),
            amount=amount,
            approved_by=approver,
            created_by=user,
        )
        logger.info(f"Comped {amount} on order #{order.order_number} (approved by {approver})")
        return comp

    @staticmethod
    def reverse_item_comps(order, item, user=None) -> List[OrderComp]:
        """
        Net out the comps recorded against an item that is being voided.

        The void already removes the line from the subtotal, so each comp gets
        a negative counterpart with the same reason and approver.
        """
        reversals = []
        for comp in list(item.comps.filter(amount__gt=0)):
            reversals.append(
                OrderComp.objects.create(
                    order=order,
                    order_item=item,
                    reason=comp.reason,
                    amount=-comp.amount,
                    approved_by=comp.approved_by,
                    created_by=user,
                )
            )
        if reversals:
            logger.info(
                f"Reversed {len(reversals)} comp(s) on voided item {item.pk} "
                f"of order #{order.order_number}"
            )
        return reversals

    @staticmethod
    def record_discount(
        order, name, discount_type, value, reason, approver, user=None
    ) -> OrderDiscount:
        """
        Percentage discounts are converted to a fixed amount against the
        order's current subtotal and never re-scaled afterwards.
        """
        require_approval(f"Discount on order #{order.order_number}", reason, approver)
        if not name or not str(name).strip():
            raise ValidationFailure("A discount needs a name")
        value = parse_amount("Discount value", value)
        currency = order.location.currency

        if discount_type == OrderDiscount.DiscountType.PERCENTAGE:
            if value <= 0 or value > 100:
                raise ValidationFailure(
                    f"Percentage discount must be between 0 and 100, got {value}"
                )
            amount = quantize(currency, percentage_of(order.subtotal, value))
        elif discount_type == OrderDiscount.DiscountType.FIXED:
            if value <= 0:
                raise ValidationFailure(f"Fixed discount must be positive, got {value}")
            amount = quantize(currency, value)
        else:
            raise ValidationFailure(f"Unknown discount type {discount_type!r}")

        discount = OrderDiscount.objects.create(
            order=order,
            name=str(name).strip(),
            discount_type=discount_type,
            value=value.quantize(Decimal("0.01")),
            amount=amount,
            reason=reason.strip(),
            approved_by=approver,
            created_by=user,
        )
        logger.info(
            f"Applied discount '{discount.name}' ({discount_type} {value}) = {amount} "
            f"on order #{order.order_number}"
        )
        return discount
