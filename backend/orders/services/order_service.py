"""
OrderService: the public operation surface of the order core.

Every mutating method follows the same shape:

1. open one ``transaction.atomic()`` block,
2. lock the order row with ``select_for_update()``,
3. validate, then mutate items and adjustments,
4. re-derive the order status and recalculate totals from scratch,
5. queue a notification that is sent only after commit.

Concurrent mutations of one order therefore serialize on its row lock, and
mutations of different orders never wait on each other.
"""
import logging
from typing import Iterable, List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.db.models import Prefetch
from django.utils import timezone

from core_backend.exceptions import Conflict, InvalidState, NotFound, ValidationFailure
from locations.models import Table
from menu.services import MenuCatalog, ModifierValidationService
from notifications.events import EventType
from notifications.services import NotificationPublisher
from orders.models import Order, OrderItem
from orders.state_machine import (
    ItemAction,
    ItemStateMachine,
    OrderStateMachine,
    require_approval,
)
from payments.money import format_money, quantize
from payments.services import CheckSplitService, PaymentService
from .adjustment_service import OrderAdjustmentService
from .calculation_service import OrderCalculationService
from .item_service import OrderItemService, validate_positive

logger = logging.getLogger(__name__)

ItemStatus = OrderItem.ItemStatus
OrderStatus = Order.OrderStatus


def _pk(obj):
    return getattr(obj, "pk", obj)


def _user_id(user):
    return getattr(user, "pk", user)


def order_event_payload(order, **extra):
    payload = {
        "order_id": str(order.pk),
        "order_number": order.order_number,
        "status": order.status,
        "table_id": order.table_id,
        "subtotal": str(order.subtotal),
        "total": str(order.total),
    }
    payload.update(extra)
    return payload


def item_event_payload(item):
    return {
        "item_id": item.pk,
        "order_id": str(item.order_id),
        "menu_item_id": item.menu_item_id,
        "name": item.menu_item.ticket_name,
        "quantity": item.quantity,
        "seat": item.seat,
        "course": item.course,
        "status": item.status,
        "station_id": item.station_id,
    }


def atomic_operation(func):
    """
    Run a service method in one transaction and report storage failures
    as ``Conflict`` so callers know the whole operation can be retried.
    """

    def wrapper(*args, **kwargs):
        try:
            with transaction.atomic():
                return func(*args, **kwargs)
        except DatabaseError as e:
            logger.error(f"{func.__name__} aborted by the database: {e}")
            raise Conflict(
                "The operation could not be saved, please retry.",
                details={"operation": func.__name__},
            ) from e

    wrapper.__name__ = func.__name__
    wrapper.__doc__ = func.__doc__
    return wrapper


class OrderService:
    """
    Orchestrates order mutations. Collaborators are injected so tests and
    tools can substitute them:

    - ``notifier``: a ``NotificationSink``; defaults to the Channels sink
    - ``catalog``: a ``MenuCatalog``-like object with ``get_menu_item``
    """

    UPDATABLE_ORDER_FIELDS = (
        "order_type",
        "guest_count",
        "tab_name",
        "guest_name",
        "guest_phone",
        "notes",
        "server",
    )

    def __init__(self, notifier=None, catalog=None):
        self.publisher = NotificationPublisher(notifier)
        self.catalog = catalog or MenuCatalog(publisher=self.publisher)

    # ------------------------------------------------------------------
    # Loading and locking
    # ------------------------------------------------------------------

    @staticmethod
    def _lock_order(order) -> Order:
        try:
            return (
                Order.objects.select_for_update()
                .select_related("location")
                .get(pk=_pk(order))
            )
        except (Order.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFound(f"Order {_pk(order)} not found")

    def _lock_item(self, item):
        """Lock the owning order first, then read the item under that lock."""
        order_id = (
            OrderItem.objects.filter(pk=_pk(item)).values_list("order_id", flat=True).first()
        )
        if order_id is None:
            raise NotFound(f"Order item {_pk(item)} not found")
        order = self._lock_order(order_id)
        return order, self._get_item(order, _pk(item))

    @staticmethod
    def _get_item(order, item_id) -> OrderItem:
        try:
            return OrderItem.objects.select_related("menu_item").get(
                pk=item_id, order_id=order.pk
            )
        except (OrderItem.DoesNotExist, ValueError):
            raise NotFound(f"Item {item_id} not found on order #{order.order_number}")

    @staticmethod
    def _get_items(order, item_ids) -> List[OrderItem]:
        item_ids = list(item_ids or [])
        if not item_ids:
            raise ValidationFailure("At least one order item id is required")
        items = list(
            OrderItem.objects.select_related("menu_item")
            .filter(order_id=order.pk, pk__in=item_ids)
            .order_by("course", "seat", "created_at")
        )
        found = {item.pk for item in items}
        missing = [i for i in item_ids if _safe_int(i) not in found]
        if missing:
            raise NotFound(
                f"Item(s) {', '.join(str(m) for m in missing)} not found on order #{order.order_number}"
            )
        return items

    def _publish(self, event_type, order, payload, user=None):
        self.publisher.publish(event_type, order.location_id, payload, _user_id(user))

    @staticmethod
    def _derive_status(order) -> Order:
        statuses = list(order.items.values_list("status", flat=True))
        new_status = OrderStateMachine.derive(order.status, statuses)
        if new_status != order.status:
            logger.info(f"Order #{order.order_number}: {order.status} -> {new_status}")
            order.status = new_status
            order.save(update_fields=["status", "updated_at"])
        return order

    @staticmethod
    def _set_status(order, new_status) -> Order:
        if new_status != order.status:
            logger.info(f"Order #{order.order_number}: {order.status} -> {new_status}")
            order.status = new_status
            order.save(update_fields=["status", "updated_at"])
        return order

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    @atomic_operation
    def create_order(
        self,
        location,
        server=None,
        order_type=Order.OrderType.DINE_IN,
        table=None,
        tab_name="",
        guest_count=1,
        guest_name="",
        guest_phone="",
        notes="",
        user=None,
    ) -> Order:
        if order_type not in Order.OrderType.values:
            raise ValidationFailure(f"Unknown order type {order_type!r}")
        guest_count = validate_positive("Guest count", guest_count)
        table = self._resolve_table(_pk(location), table) if table is not None else None

        order = Order(
            location_id=_pk(location),
            server=server,
            order_type=order_type,
            table=table,
            tab_name=tab_name or "",
            guest_count=guest_count,
            guest_name=guest_name or "",
            guest_phone=guest_phone or "",
            notes=notes or "",
        )
        order.save()
        logger.info(
            f"Created order #{order.order_number} ({order.order_type}) at location {order.location_id}"
        )
        self._publish(EventType.ORDER_CREATED, order, order_event_payload(order), user or server)
        return order

    @atomic_operation
    def update_order(self, order, user=None, **changes) -> Order:
        order = self._lock_order(order)
        OrderStateMachine.ensure_mutable(order)

        unknown = set(changes) - set(self.UPDATABLE_ORDER_FIELDS)
        if unknown:
            raise ValidationFailure(f"Cannot update order field(s): {', '.join(sorted(unknown))}")
        if "order_type" in changes and changes["order_type"] not in Order.OrderType.values:
            raise ValidationFailure(f"Unknown order type {changes['order_type']!r}")
        if "guest_count" in changes:
            changes["guest_count"] = validate_positive("Guest count", changes["guest_count"])

        for field_name, value in changes.items():
            setattr(order, field_name, value if value is not None or field_name == "server" else "")
        order.save(update_fields=list(changes) + ["updated_at"])
        self._publish(EventType.ORDER_UPDATED, order, order_event_payload(order), user)
        return order

    @staticmethod
    def get_order(order) -> Order:
        try:
            return (
                Order.objects.select_related("location", "table", "server")
                .prefetch_related(
                    "items__modifiers",
                    "items__menu_item",
                    "checks",
                    "payments",
                    "discounts",
                    "comps",
                    "voids",
                )
                .get(pk=_pk(order))
            )
        except (Order.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFound(f"Order {_pk(order)} not found")

    @staticmethod
    def get_open_orders(location, server=None):
        queryset = (
            Order.objects.filter(location_id=_pk(location))
            .exclude(status__in=Order.TERMINAL_STATUSES)
            .select_related("table", "server")
            .prefetch_related("items__modifiers", "items__menu_item")
            .order_by("-opened_at")
        )
        if server is not None:
            queryset = queryset.filter(server_id=_pk(server))
        return queryset

    @staticmethod
    def get_tables(location):
        """
        Active tables of a location, by section then name, each with its live
        (not CLOSED or VOID) orders in ``live_orders`` and their servers.
        """
        live_orders = (
            Order.objects.exclude(status__in=Order.TERMINAL_STATUSES)
            .select_related("table", "server")
            .order_by("opened_at")
        )
        return (
            Table.objects.filter(location_id=_pk(location), is_active=True)
            .prefetch_related(Prefetch("orders", queryset=live_orders, to_attr="live_orders"))
            .order_by("section", "name")
        )

    @atomic_operation
    def transfer_table(self, order, table, user=None) -> Order:
        order = self._lock_order(order)
        OrderStateMachine.ensure_mutable(order)
        new_table = self._resolve_table(order.location_id, table)
        old_table_id = order.table_id
        order.table = new_table
        order.save(update_fields=["table", "updated_at"])
        logger.info(
            f"Order #{order.order_number} moved from table {old_table_id} to {new_table.pk}"
        )
        self._publish(
            EventType.ORDER_UPDATED,
            order,
            order_event_payload(order, previous_table_id=old_table_id),
            user,
        )
        return order

    @staticmethod
    def _resolve_table(location_id, table) -> Table:
        try:
            table = Table.objects.get(pk=_pk(table))
        except (Table.DoesNotExist, ValueError):
            raise NotFound(f"Table {_pk(table)} not found")
        if table.location_id != location_id:
            raise ValidationFailure(f"Table {table.name} belongs to another location")
        if not table.is_active:
            raise ValidationFailure(f"Table {table.name} is not in service")
        return table

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    @atomic_operation
    def add_item(
        self,
        order,
        menu_item_id,
        quantity=1,
        seat=1,
        course=1,
        special_instructions="",
        modifier_ids: Optional[Iterable] = None,
        check_id=None,
        user=None,
    ) -> OrderItem:
        order = self._lock_order(order)
        OrderStateMachine.ensure_mutable(order)

        menu_item = self.catalog.get_menu_item(menu_item_id)
        if menu_item.location_id != order.location_id:
            raise ValidationFailure(f"{menu_item.name} is not on this location's menu")
        if menu_item.is_86d:
            raise InvalidState(f"{menu_item.name} is 86'd and cannot be ordered")
        if not menu_item.is_active:
            raise InvalidState(f"{menu_item.name} is not available")
        modifiers = ModifierValidationService.validate_selection(menu_item, modifier_ids)
        seat = validate_positive("Seat", seat)
        guest_check = self._check_for_new_item(order, seat, check_id)

        item = OrderItemService.create_item(
            order,
            menu_item,
            modifiers=modifiers,
            quantity=quantity,
            seat=seat,
            course=course,
            special_instructions=special_instructions,
            guest_check=guest_check,
        )
        order = OrderCalculationService.recalculate_order_totals(order)
        self._publish(
            EventType.ITEM_ADDED, order, dict(order_event_payload(order), item=item_event_payload(item)), user
        )
        return item

    @staticmethod
    def _check_for_new_item(order, seat, check_id):
        """
        Once an order is split, every new item must land on a check: the one
        asked for, else the check holding this seat, else the first unpaid one.
        A check that is paid only because its total is zero still takes items.
        """
        checks = list(order.checks.all())
        tendered = PaymentService.tendered_check_ids(order)
        if check_id is not None:
            check = PaymentService.get_check(order, check_id)
            if check.is_paid and check.pk in tendered:
                raise InvalidState(f"{check.name} is already paid")
            return check
        if not checks:
            return None

        unpaid = [c for c in checks if not (c.is_paid and c.pk in tendered)]
        if not unpaid:
            raise InvalidState(
                f"Every check on order #{order.order_number} is paid; add a check_id or re-split"
            )
        seat_check_ids = set(
            OrderItem.objects.filter(order_id=order.pk, seat=seat, guest_check__isnull=False)
            .values_list("guest_check_id", flat=True)
        )
        for check in unpaid:
            if check.pk in seat_check_ids:
                return check
        return unpaid[0]

    @atomic_operation
    def update_item(
        self,
        item,
        quantity=None,
        seat=None,
        course=None,
        special_instructions=None,
        modifier_ids=None,
        user=None,
    ) -> OrderItem:
        order, item = self._lock_item(item)
        OrderStateMachine.ensure_mutable(order)

        if item.status in (ItemStatus.SERVED, ItemStatus.VOID):
            raise InvalidState(f"Item {item.pk} ({item.menu_item.name}) is {item.status} and cannot be changed")
        changes_price = quantity is not None or modifier_ids is not None
        if changes_price and item.status not in (ItemStatus.PENDING, ItemStatus.HELD):
            raise InvalidState(
                f"Item {item.pk} ({item.menu_item.name}) was already sent to the kitchen; "
                f"quantity and modifiers can only change while PENDING or HELD"
            )

        update_fields = []
        if seat is not None:
            item.seat = validate_positive("Seat", seat)
            update_fields.append("seat")
        if course is not None:
            item.course = validate_positive("Course", course)
            update_fields.append("course")
        if special_instructions is not None:
            item.special_instructions = special_instructions
            update_fields.append("special_instructions")
        if modifier_ids is not None:
            modifiers = ModifierValidationService.validate_selection(item.menu_item, modifier_ids)
            OrderItemService.replace_modifiers(item, modifiers)
            update_fields.append("modifier_total")
        if changes_price:
            OrderItemService.reprice(item, quantity)
            update_fields += ["quantity", "line_total"]

        if update_fields:
            item.save(update_fields=update_fields)
        order = OrderCalculationService.recalculate_order_totals(order)
        self._publish(
            EventType.ORDER_UPDATED, order, dict(order_event_payload(order), item_id=item.pk), user
        )
        return item

    @atomic_operation
    def remove_item(self, item, user=None) -> Order:
        order, item = self._lock_item(item)
        OrderStateMachine.ensure_mutable(order)
        ItemStateMachine.ensure_removable(item)
        if item.comps.exists():
            raise InvalidState(
                f"Item {item.pk} ({item.menu_item.name}) has a comp recorded against it, use void"
            )

        payload = item_event_payload(item)
        item.delete()
        logger.info(f"Removed pending item {payload['item_id']} from order #{order.order_number}")

        self._derive_status(order)
        order = OrderCalculationService.recalculate_order_totals(order)
        self._publish(EventType.ITEM_REMOVED, order, dict(order_event_payload(order), item=payload), user)
        return order

    # ------------------------------------------------------------------
    # Kitchen flow
    # ------------------------------------------------------------------

    def _fire(self, order, items, user) -> List[OrderItem]:
        now = timezone.now()
        fired = []
        for item in items:
            # Already-fired items are skipped so re-firing an order is harmless.
            if not ItemStateMachine.can(item.status, ItemAction.FIRE):
                continue
            update_fields = ItemStateMachine.apply(item, ItemAction.FIRE, now)
            item.save(update_fields=update_fields)
            fired.append(item)

        if not fired:
            logger.debug(f"Nothing to fire on order #{order.order_number}")
            return fired

        self._set_status(order, OrderStateMachine.after_fire(order.status))
        logger.info(f"Fired {len(fired)} item(s) on order #{order.order_number}")
        self._publish(
            EventType.ORDER_FIRED,
            order,
            dict(order_event_payload(order), items=[item_event_payload(i) for i in fired]),
            user,
        )
        return fired

    @atomic_operation
    def fire_items(self, order, item_ids, user=None) -> List[OrderItem]:
        order = self._lock_order(order)
        OrderStateMachine.ensure_mutable(order)
        return self._fire(order, self._get_items(order, item_ids), user)

    @atomic_operation
    def fire_order(self, order, course=None, user=None) -> List[OrderItem]:
        """Fire every pending/held item, or only those of ``course``."""
        order = self._lock_order(order)
        OrderStateMachine.ensure_mutable(order)
        items = OrderItem.objects.select_related("menu_item").filter(
            order_id=order.pk, status__in=(ItemStatus.PENDING, ItemStatus.HELD)
        )
        if course is not None:
            items = items.filter(course=validate_positive("Course", course))
        return self._fire(order, list(items.order_by("course", "seat", "created_at")), user)

    @atomic_operation
    def hold_items(self, order, item_ids, user=None) -> List[OrderItem]:
        order = self._lock_order(order)
        OrderStateMachine.ensure_mutable(order)
        items = self._get_items(order, item_ids)
        held = []
        for item in items:
            if item.status == ItemStatus.HELD:
                continue
            item.save(update_fields=ItemStateMachine.apply(item, ItemAction.HOLD))
            held.append(item)
        if held:
            self._publish(
                EventType.ORDER_UPDATED,
                order,
                dict(order_event_payload(order), held_item_ids=[i.pk for i in held]),
                user,
            )
        return items

    @atomic_operation
    def start_item(self, item, user=None) -> OrderItem:
        order, item = self._lock_item(item)
        OrderStateMachine.ensure_mutable(order)
        item.save(update_fields=ItemStateMachine.apply(item, ItemAction.START))
        self._set_status(order, OrderStateMachine.after_start(order.status))
        self._publish(EventType.ORDER_UPDATED, order, dict(order_event_payload(order), item_id=item.pk), user)
        return item

    @atomic_operation
    def bump_item(self, item, user=None) -> OrderItem:
        order, item = self._lock_item(item)
        OrderStateMachine.ensure_mutable(order)
        item.save(update_fields=ItemStateMachine.apply(item, ItemAction.BUMP))
        self._derive_status(order)
        self._publish(
            EventType.TICKET_BUMPED,
            order,
            dict(order_event_payload(order), item_ids=[item.pk]),
            user,
        )
        return item

    @atomic_operation
    def bump_ticket(self, order, station_id=None, user=None) -> List[OrderItem]:
        """
        Mark every fired or in-progress item of the order (optionally only
        one station's) READY in one batch.
        """
        order = self._lock_order(order)
        OrderStateMachine.ensure_mutable(order)
        items = OrderItem.objects.select_related("menu_item").filter(
            order_id=order.pk, status__in=ItemStateMachine.ACTIVE_KITCHEN_STATUSES
        )
        if station_id is not None:
            items = items.filter(station_id=station_id)
        items = list(items)
        if not items:
            return []

        now = timezone.now()
        for item in items:
            item.save(update_fields=ItemStateMachine.apply(item, ItemAction.BUMP, now))

        self._set_status(order, OrderStateMachine.after_ticket_bump(
            order.status, order.items.values_list("status", flat=True)
        ))
        self._derive_status(order)
        logger.info(
            f"Bumped {len(items)} item(s) on order #{order.order_number}"
            + (f" at station {station_id}" if station_id is not None else "")
        )
        self._publish(
            EventType.TICKET_BUMPED,
            order,
            dict(order_event_payload(order), item_ids=[i.pk for i in items], station_id=station_id),
            user,
        )
        return items

    @atomic_operation
    def recall_ticket(self, order, user=None) -> Order:
        """Undo a bump: READY items go back to IN_PROGRESS and so does the order."""
        order = self._lock_order(order)
        OrderStateMachine.ensure_mutable(order)
        items = list(
            OrderItem.objects.select_related("menu_item").filter(
                order_id=order.pk, status=ItemStatus.READY
            )
        )
        for item in items:
            item.save(update_fields=ItemStateMachine.apply(item, ItemAction.RECALL))
        self._set_status(order, OrderStateMachine.after_recall(order.status))
        logger.warning(f"Recalled {len(items)} item(s) on order #{order.order_number}")
        self._publish(
            EventType.TICKET_RECALLED,
            order,
            dict(order_event_payload(order), item_ids=[i.pk for i in items]),
            user,
        )
        return order

    @atomic_operation
    def serve_item(self, item, user=None) -> OrderItem:
        order, item = self._lock_item(item)
        OrderStateMachine.ensure_mutable(order)
        item.save(update_fields=ItemStateMachine.apply(item, ItemAction.SERVE))
        order = self._derive_status(order)
        self._publish(EventType.ITEM_SERVED, order, dict(order_event_payload(order), item=item_event_payload(item)), user)
        return item

    # ------------------------------------------------------------------
    # Voids, comps, discounts
    # ------------------------------------------------------------------

    @atomic_operation
    def void_item(self, item, reason, approved_by, user=None) -> OrderItem:
        order, item = self._lock_item(item)
        OrderStateMachine.ensure_mutable(order)
        if not ItemStateMachine.can(item.status, ItemAction.VOID):
            raise InvalidState(
                f"Item {item.pk} ({item.menu_item.name}) is {item.status} and cannot be voided"
            )
        OrderAdjustmentService.record_void(order, item, reason, approved_by, user)
        OrderAdjustmentService.reverse_item_comps(order, item, user)
        item.save(update_fields=ItemStateMachine.apply(item, ItemAction.VOID))

        self._derive_status(order)
        order = OrderCalculationService.recalculate_order_totals(order)
        self._publish(
            EventType.ITEM_VOIDED,
            order,
            dict(order_event_payload(order), item=item_event_payload(item), reason=reason),
            user,
        )
        return item

    @atomic_operation
    def void_order(self, order, reason, approved_by, user=None) -> Order:
        """
        Cancel the whole order. Every item that was not served is voided with
        its own audit record. Orders with recorded payments cannot be voided.
        """
        order = self._lock_order(order)
        OrderStateMachine.ensure_voidable(order, PaymentService.has_payments(order))

        now = timezone.now()
        items = OrderItem.objects.select_related("menu_item").filter(order_id=order.pk).exclude(
            status__in=(ItemStatus.SERVED, ItemStatus.VOID)
        )
        require_approval(f"Voiding order #{order.order_number}", reason, approved_by)
        for item in items:
            OrderAdjustmentService.record_void(order, item, reason, approved_by, user)
            OrderAdjustmentService.reverse_item_comps(order, item, user)
            item.save(update_fields=ItemStateMachine.apply(item, ItemAction.VOID, now))

        order = OrderCalculationService.recalculate_order_totals(order)
        order.status = OrderStatus.VOID
        order.closed_at = now
        order.save(update_fields=["status", "closed_at", "updated_at"])
        logger.info(f"Voided order #{order.order_number}: {reason}")
        self._publish(EventType.ORDER_VOIDED, order, dict(order_event_payload(order), reason=reason), user)
        return order

    @atomic_operation
    def add_comp(self, order, reason, approved_by, amount=None, item_id=None, user=None) -> Order:
        order = self._lock_order(order)
        OrderStateMachine.ensure_mutable(order)
        item = None
        if item_id is not None:
            item = self._get_item(order, item_id)
            if item.status == ItemStatus.VOID:
                raise InvalidState(f"Item {item.pk} ({item.menu_item.name}) is void and cannot be comped")
        OrderAdjustmentService.record_comp(order, amount, reason, approved_by, item=item, user=user)
        order = OrderCalculationService.recalculate_order_totals(order)
        self._publish(EventType.ORDER_UPDATED, order, order_event_payload(order), user)
        return order

    @atomic_operation
    def add_discount(self, order, name, discount_type, value, reason, approved_by, user=None) -> Order:
        order = self._lock_order(order)
        OrderStateMachine.ensure_mutable(order)
        # Percentages apply to the subtotal as it stands right now.
        order = OrderCalculationService.recalculate_order_totals(order)
        OrderAdjustmentService.record_discount(
            order, name, discount_type, value, reason, approved_by, user=user
        )
        order = OrderCalculationService.recalculate_order_totals(order)
        self._publish(EventType.ORDER_UPDATED, order, order_event_payload(order), user)
        return order

    # ------------------------------------------------------------------
    # Payments, checks, close
    # ------------------------------------------------------------------

    @atomic_operation
    def add_payment(
        self,
        order,
        method,
        amount,
        tip_amount=0,
        check_id=None,
        card_last4="",
        card_brand="",
        transaction_id="",
        user=None,
    ):
        order = self._lock_order(order)
        OrderStateMachine.ensure_mutable(order)
        payment = PaymentService.record_payment(
            order,
            method,
            amount,
            tip_amount=tip_amount,
            check_id=check_id,
            card_last4=card_last4,
            card_brand=card_brand,
            transaction_id=transaction_id,
            user=user,
        )
        order = OrderCalculationService.recalculate_order_totals(order)
        self._publish(
            EventType.ORDER_UPDATED,
            order,
            dict(order_event_payload(order), payment_id=str(payment.pk)),
            user,
        )
        return payment

    @atomic_operation
    def split_check(self, order, splits, user=None):
        order = self._lock_order(order)
        OrderStateMachine.ensure_mutable(order)
        items = list(OrderItem.objects.filter(order_id=order.pk))
        checks = CheckSplitService.split_custom(order, items, splits)
        return self._after_split(order, checks, user)

    @atomic_operation
    def split_check_by_seat(self, order, user=None):
        order = self._lock_order(order)
        OrderStateMachine.ensure_mutable(order)
        items = list(OrderItem.objects.filter(order_id=order.pk))
        checks = CheckSplitService.split_by_seat(order, items)
        return self._after_split(order, checks, user)

    def _after_split(self, order, checks, user):
        order = OrderCalculationService.recalculate_order_totals(order)
        self._publish(
            EventType.ORDER_UPDATED,
            order,
            dict(order_event_payload(order), check_ids=[str(c.pk) for c in checks]),
            user,
        )
        return list(order.checks.all())

    def split_check_evenly(self, order, number_of_checks):
        """Per-person amounts only; nothing is written."""
        return CheckSplitService.split_evenly(self.get_order(order), number_of_checks)

    @atomic_operation
    def close_order(self, order, user=None) -> Order:
        order = self._lock_order(order)
        OrderStateMachine.ensure_mutable(order)
        order = OrderCalculationService.recalculate_order_totals(order)

        currency = order.location.currency
        paid = quantize(currency, PaymentService.total_paid(order))
        if paid < order.total:
            raise InvalidState(
                f"Order #{order.order_number} is not fully paid: "
                f"{format_money(currency, paid)} of {format_money(currency, order.total)}",
                details={"total": str(order.total), "paid": str(paid)},
            )

        order.status = OrderStatus.CLOSED
        order.closed_at = timezone.now()
        order.save(update_fields=["status", "closed_at", "updated_at"])
        logger.info(f"Closed order #{order.order_number} (total {order.total}, paid {paid})")
        self._publish(EventType.ORDER_CLOSED, order, order_event_payload(order), user)
        return order


def _safe_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return value
