import logging
from typing import Iterable, Optional

from core_backend.exceptions import ValidationFailure
from orders.calculators import modifier_sum, price_item
from orders.models import OrderItem, OrderItemModifier

logger = logging.getLogger(__name__)


def validate_positive(name: str, value) -> int:
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationFailure(f"{name} must be a whole number, got {value!r}")
    if value < 1:
        raise ValidationFailure(f"{name} must be at least 1, got {value}")
    return value


class OrderItemService:
    """
    Line-item persistence: price snapshots, modifier snapshots and line totals.
    Status changes and order totals are handled by ``OrderService``.
    """

    @staticmethod
    def create_item(
        order,
        menu_item,
        modifiers: Iterable = (),
        quantity: int = 1,
        seat: int = 1,
        course: int = 1,
        special_instructions: str = "",
        guest_check=None,
    ) -> OrderItem:
        modifiers = list(modifiers)
        quantity = validate_positive("Quantity", quantity)
        item = OrderItem.objects.create(
            order=order,
            menu_item=menu_item,
            quantity=quantity,
            seat=validate_positive("Seat", seat),
            course=validate_positive("Course", course),
            special_instructions=special_instructions or "",
            unit_price=menu_item.price,
            modifier_total=modifier_sum(modifiers),
            line_total=price_item(menu_item.price, modifiers, quantity),
            station=menu_item.station,
            guest_check=guest_check,
        )
        OrderItemService._snapshot_modifiers(item, modifiers)
        logger.info(
            f"Added {quantity} x {menu_item.name} to order #{order.order_number} "
            f"(line total {item.line_total})"
        )
        return item

    @staticmethod
    def replace_modifiers(item: OrderItem, modifiers: Iterable) -> None:
        """Modifier snapshots are immutable, so a change deletes and recreates them."""
        modifiers = list(modifiers)
        item.modifiers.all().delete()
        OrderItemService._snapshot_modifiers(item, modifiers)
        item.modifier_total = modifier_sum(modifiers)

    @staticmethod
    def reprice(item: OrderItem, quantity: Optional[int] = None) -> None:
        if quantity is not None:
            item.quantity = validate_positive("Quantity", quantity)
        item.line_total = price_item(item.unit_price, [item.modifier_total], item.quantity)

    @staticmethod
    def _snapshot_modifiers(item: OrderItem, modifiers) -> None:
        OrderItemModifier.objects.bulk_create(
            [
                OrderItemModifier(
                    order_item=item,
                    modifier=modifier,
                    name=modifier.name,
                    price_adjustment=modifier.price_adjustment,
                )
                for modifier in modifiers
            ]
        )
