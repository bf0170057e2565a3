"""
Status rules for order items and orders.

Only the order services call into this module, and they are the only code
that writes ``Order.status`` or ``OrderItem.status``. Every rejected
transition raises ``InvalidState`` naming the entity and the rule broken.
"""
from typing import Iterable, List, Optional

from django.utils import timezone

from core_backend.exceptions import InvalidState, ValidationFailure
from .models import Order, OrderItem

ItemStatus = OrderItem.ItemStatus
OrderStatus = Order.OrderStatus


class ItemAction:
    FIRE = "fire"
    HOLD = "hold"
    START = "start"
    BUMP = "bump"
    SERVE = "serve"
    VOID = "void"
    RECALL = "recall"


class ItemStateMachine:
    # action -> (allowed source statuses, target status)
    TRANSITIONS = {
        ItemAction.FIRE: ({ItemStatus.PENDING, ItemStatus.HELD}, ItemStatus.FIRED),
        ItemAction.HOLD: ({ItemStatus.PENDING}, ItemStatus.HELD),
        ItemAction.START: ({ItemStatus.FIRED}, ItemStatus.IN_PROGRESS),
        ItemAction.BUMP: ({ItemStatus.FIRED, ItemStatus.IN_PROGRESS}, ItemStatus.READY),
        ItemAction.SERVE: ({ItemStatus.READY}, ItemStatus.SERVED),
        ItemAction.VOID: (
            {
                ItemStatus.PENDING,
                ItemStatus.HELD,
                ItemStatus.FIRED,
                ItemStatus.IN_PROGRESS,
                ItemStatus.READY,
            },
            ItemStatus.VOID,
        ),
        ItemAction.RECALL: ({ItemStatus.READY}, ItemStatus.IN_PROGRESS),
    }

    # Timestamps stamped with "now" when the action is applied.
    STAMPS = {
        ItemAction.FIRE: ("sent_at", "fired_at"),
        ItemAction.BUMP: ("ready_at",),
        ItemAction.SERVE: ("served_at",),
        ItemAction.VOID: ("voided_at",),
    }

    # Timestamps cleared when the action is applied.
    CLEARS = {
        ItemAction.RECALL: ("ready_at",),
    }

    ACTIVE_KITCHEN_STATUSES = (ItemStatus.FIRED, ItemStatus.IN_PROGRESS)

    @classmethod
    def can(cls, status: str, action: str) -> bool:
        if action not in cls.TRANSITIONS:
            raise ValueError(f"Unknown item action '{action}'")
        allowed, _target = cls.TRANSITIONS[action]
        return status in allowed

    @classmethod
    def apply(cls, item: OrderItem, action: str, now=None) -> List[str]:
        """
        Move ``item`` through ``action`` in memory and return the changed
        field names for ``save(update_fields=...)``.
        """
        if not cls.can(item.status, action):
            allowed, _target = cls.TRANSITIONS[action]
            allowed_names = ", ".join(sorted(allowed))
            raise InvalidState(
                f"Item {item.pk} ({item.menu_item.name}) cannot {action} while "
                f"{item.status}; allowed from {allowed_names}"
            )
        now = now or timezone.now()
        _allowed, target = cls.TRANSITIONS[action]
        item.status = target
        changed = ["status"]
        for field_name in cls.STAMPS.get(action, ()):
            setattr(item, field_name, now)
            changed.append(field_name)
        for field_name in cls.CLEARS.get(action, ()):
            setattr(item, field_name, None)
            changed.append(field_name)
        return changed

    @staticmethod
    def can_remove(item: OrderItem) -> bool:
        """Only items that never left the terminal may be deleted outright."""
        return item.status == ItemStatus.PENDING and item.fired_at is None

    @classmethod
    def ensure_removable(cls, item: OrderItem) -> None:
        if not cls.can_remove(item):
            raise InvalidState(
                f"Item {item.pk} ({item.menu_item.name}) is {item.status} and not "
                f"removable, use void"
            )


class OrderStateMachine:
    DERIVABLE_FROM = (OrderStatus.SENT, OrderStatus.IN_PROGRESS, OrderStatus.READY)
    REFIRE_FROM = (OrderStatus.OPEN, OrderStatus.READY, OrderStatus.SERVED)

    @staticmethod
    def ensure_mutable(order: Order) -> None:
        if order.status in Order.TERMINAL_STATUSES:
            raise InvalidState(
                f"Order #{order.order_number} is {order.status} and can no longer be changed"
            )

    @classmethod
    def after_fire(cls, status: str) -> str:
        """Firing at least one item puts the order (back) in front of the kitchen."""
        if status in cls.REFIRE_FROM:
            return OrderStatus.SENT
        return status

    @staticmethod
    def after_start(status: str) -> str:
        if status == OrderStatus.SENT:
            return OrderStatus.IN_PROGRESS
        return status

    @staticmethod
    def after_ticket_bump(status: str, item_statuses: Iterable[str]) -> str:
        """A ticket with nothing left cooking is READY for the pass."""
        if status not in (OrderStatus.SENT, OrderStatus.IN_PROGRESS):
            return status
        if any(s in ItemStateMachine.ACTIVE_KITCHEN_STATUSES for s in item_statuses):
            return status
        return OrderStatus.READY

    @staticmethod
    def after_recall(status: str) -> str:
        if status in Order.TERMINAL_STATUSES:
            return status
        return OrderStatus.IN_PROGRESS

    @classmethod
    def derive(cls, status: str, item_statuses: Iterable[str]) -> str:
        """
        Upgrade the order once its kitchen work is done. Never downgrades,
        and only applies to orders that are with the kitchen.

        An order whose items were all voided has nothing left to serve and
        moves to SERVED, where it waits to be closed.
        """
        if status not in cls.DERIVABLE_FROM:
            return status
        item_statuses = list(item_statuses)
        if not item_statuses:
            return status
        live = [s for s in item_statuses if s != ItemStatus.VOID]
        if all(s == ItemStatus.SERVED for s in live):
            return OrderStatus.SERVED
        if all(s in (ItemStatus.READY, ItemStatus.SERVED) for s in live):
            return OrderStatus.READY
        return status

    @staticmethod
    def ensure_voidable(order: Order, has_payments: bool) -> None:
        OrderStateMachine.ensure_mutable(order)
        if has_payments:
            raise InvalidState(
                f"Order #{order.order_number} has payments recorded and cannot be voided"
            )


def require_approval(action: str, reason: Optional[str], approver) -> None:
    """Voids, comps and discounts must carry a reason and an approving user."""
    if not reason or not str(reason).strip():
        raise ValidationFailure(f"{action} requires a reason")
    if approver is None:
        raise ValidationFailure(f"{action} requires an approver")
