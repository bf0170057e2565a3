"""
Check splitting.

Three strategies, one per request:

* even   - a per-person breakdown of the order total; nothing is written.
* seat   - one check per distinct seat, holding that seat's items.
* custom - caller-named groups of item ids; every live item must be placed.

Seat and custom splits replace any existing checks, which is only allowed
while none of them has a payment. Each check's figures come from its own
non-void items: subtotal, tax at the order's rate, and total.
"""
import logging
from collections import OrderedDict
from typing import Dict, List, Sequence

from core_backend.exceptions import InvalidState, ValidationFailure
from orders.calculators import calculate_check_totals
from orders.models import OrderItem
from payments.models import Check, Payment
from payments.money import split_evenly

logger = logging.getLogger(__name__)


class CheckSplitService:
    @staticmethod
    def split_evenly(order, number_of_checks) -> Dict:
        try:
            number_of_checks = int(number_of_checks)
        except (TypeError, ValueError):
            raise ValidationFailure(
                f"Number of checks must be a whole number, got {number_of_checks!r}"
            )
        if number_of_checks < 2:
            raise ValidationFailure("An even split needs at least 2 checks")

        amounts = split_evenly(order.location.currency, order.total, number_of_checks)
        return {
            "order_id": order.pk,
            "number_of_checks": number_of_checks,
            "total": order.total,
            "amounts": amounts,
        }

    @classmethod
    def split_by_seat(cls, order, items: Sequence[OrderItem]) -> List[Check]:
        by_seat = OrderedDict()
        for item in sorted(items, key=lambda i: (i.seat, i.pk)):
            by_seat.setdefault(item.seat, []).append(item)

        if len(by_seat) < 2:
            raise ValidationFailure(
                f"Order #{order.order_number} has items on fewer than 2 seats; nothing to split"
            )

        groups = [(f"Seat {seat}", seat_items) for seat, seat_items in by_seat.items()]
        return cls._replace_checks(order, groups)

    @classmethod
    def split_custom(cls, order, items: Sequence[OrderItem], splits) -> List[Check]:
        """
        ``splits`` is a list of ``{"name": optional str, "order_item_ids": [...]}``.
        Every non-void item must appear in exactly one group.
        """
        if not splits or len(splits) < 2:
            raise ValidationFailure("A custom split needs at least 2 groups")

        items_by_id = {item.pk: item for item in items}
        seen = set()
        groups = []
        for index, split in enumerate(splits, start=1):
            name = (split.get("name") or "").strip() or f"Check {index}"
            raw_ids = split.get("order_item_ids") or []
            if not raw_ids:
                raise ValidationFailure(f"{name} has no items")

            group_items = []
            for raw_id in raw_ids:
                try:
                    item_id = int(raw_id)
                except (TypeError, ValueError):
                    raise ValidationFailure(f"Invalid order item id {raw_id!r}")
                if item_id not in items_by_id:
                    raise ValidationFailure(
                        f"Item {item_id} does not belong to order #{order.order_number}"
                    )
                if item_id in seen:
                    raise ValidationFailure(f"Item {item_id} is assigned to more than one check")
                seen.add(item_id)
                group_items.append(items_by_id[item_id])
            groups.append((name, group_items))

        unassigned = [
            item for item in items
            if item.pk not in seen and item.status != OrderItem.ItemStatus.VOID
        ]
        if unassigned:
            raise ValidationFailure(
                f"{len(unassigned)} item(s) are not assigned to a check",
                details={"unassigned_item_ids": [i.pk for i in unassigned]},
            )
        return cls._replace_checks(order, groups)

    @staticmethod
    def _replace_checks(order, groups) -> List[Check]:
        if Payment.objects.filter(order_id=order.pk, guest_check__isnull=False).exists():
            raise InvalidState(
                f"Order #{order.order_number} already has payments on its checks; "
                f"it cannot be split again"
            )

        OrderItem.objects.filter(order_id=order.pk).update(guest_check=None)
        Check.objects.filter(order_id=order.pk).delete()

        location = order.location
        checks = []
        for position, (name, group_items) in enumerate(groups, start=1):
            totals = calculate_check_totals(group_items, location.tax_rate, location.currency)
            check = Check.objects.create(order=order, name=name, position=position, **totals)
            OrderItem.objects.filter(pk__in=[i.pk for i in group_items]).update(guest_check=check)
            for item in group_items:
                item.guest_check = check
            checks.append(check)

        logger.info(
            f"Split order #{order.order_number} into {len(checks)} checks: "
            + ", ".join(f"{c.name}={c.subtotal}" for c in checks)
        )
        return checks
