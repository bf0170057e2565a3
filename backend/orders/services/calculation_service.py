import logging

from core_backend.exceptions import NotFound
from orders.calculators import OrderCalculator, calculate_check_totals
from orders.models import Order
from payments.money import ZERO

logger = logging.getLogger(__name__)


class OrderCalculationService:
    """The only writer of an order's derived money fields."""

    DERIVED_FIELDS = [
        "subtotal",
        "discount_amount",
        "comp_amount",
        "tax_amount",
        "tip_amount",
        "total",
    ]

    @staticmethod
    def recalculate_order_totals(order) -> Order:
        """
        Reload the order with everything that feeds its totals, recompute them
        from scratch, persist them and refresh every check on the order.

        Callers run this inside their own ``transaction.atomic()`` block with
        the order row already locked. Returns the fresh order instance.
        """
        try:
            order = Order.objects.select_related("location").get(pk=order.pk)
        except Order.DoesNotExist:
            raise NotFound(f"Order {order.pk} not found")

        items = list(order.items.all())
        payments = list(order.payments.all())
        calculator = OrderCalculator(
            order,
            items=items,
            discounts=order.discounts.all(),
            comps=order.comps.all(),
            payments=payments,
        )
        totals = calculator.calculate_totals()

        for field_name in OrderCalculationService.DERIVED_FIELDS:
            setattr(order, field_name, totals[field_name])
        order.save(update_fields=OrderCalculationService.DERIVED_FIELDS + ["updated_at"])

        OrderCalculationService.refresh_checks(order, items, payments)

        logger.debug(
            f"Recalculated order #{order.order_number}: subtotal={order.subtotal} "
            f"discount={order.discount_amount} comp={order.comp_amount} "
            f"tax={order.tax_amount} total={order.total}"
        )
        return order

    @staticmethod
    def refresh_checks(order, items, payments):
        checks = list(order.checks.all())
        if not checks:
            return []

        location = order.location
        for check in checks:
            check_items = [i for i in items if i.guest_check_id == check.id]
            totals = calculate_check_totals(check_items, location.tax_rate, location.currency)
            paid = sum(
                (p.amount + p.tip_amount for p in payments if p.guest_check_id == check.id),
                ZERO,
            )
            check.subtotal = totals["subtotal"]
            check.tax_amount = totals["tax_amount"]
            check.total = totals["total"]
            check.is_paid = paid >= check.total
            check.save(update_fields=["subtotal", "tax_amount", "total", "is_paid"])
        return checks

