from typing import Any, Dict, List, Optional
from datetime import timedelta
import logging

from django.db.models import Count, Prefetch, Q
from django.utils import timezone

from core_backend.config import app_settings
from menu.models import Station
from orders.models import Order, OrderItem

logger = logging.getLogger(__name__)

ItemStatus = OrderItem.ItemStatus
OrderStatus = Order.OrderStatus


class TicketStatus:
    NEW = "new"
    COOKING = "cooking"
    LATE = "late"
    READY = "ready"


class TicketRouter:
    """
    Read-only kitchen projections of live orders.

    A ticket is an order's fired items, optionally narrowed to one station.
    Bump, recall and start are mutations and live on ``OrderService``.
    """

    COOKING_STATUSES = (ItemStatus.FIRED, ItemStatus.IN_PROGRESS)
    VISIBLE_STATUSES = (ItemStatus.FIRED, ItemStatus.IN_PROGRESS, ItemStatus.READY)
    TICKET_ORDER_STATUSES = (OrderStatus.SENT, OrderStatus.IN_PROGRESS)
    EXPO_ORDER_STATUSES = (OrderStatus.SENT, OrderStatus.IN_PROGRESS, OrderStatus.READY)

    def __init__(self, thresholds: Optional[Dict[str, int]] = None, clock=None):
        self.thresholds = dict(app_settings.ticket_thresholds)
        if thresholds:
            self.thresholds.update(thresholds)
        self.clock = clock or timezone.now

    # ------------------------------------------------------------------
    # Tickets
    # ------------------------------------------------------------------

    def _visible_items(self, station_id=None):
        items = (
            OrderItem.objects.filter(status__in=self.VISIBLE_STATUSES)
            .select_related("menu_item", "station")
            .prefetch_related("modifiers")
            .order_by("course", "seat", "fired_at")
        )
        if station_id is not None:
            items = items.filter(station_id=station_id)
        return items

    def _live_orders(self, location_id, order_statuses, item_statuses, station_id=None):
        item_filter = Q(items__status__in=item_statuses)
        if station_id is not None:
            item_filter &= Q(items__station_id=station_id)
        matching = Order.objects.filter(
            item_filter, location_id=location_id, status__in=order_statuses
        ).values("pk")
        return (
            Order.objects.filter(pk__in=matching)
            .select_related("table", "server")
            .prefetch_related(
                Prefetch("items", queryset=self._visible_items(station_id), to_attr="ticket_items")
            )
            .order_by("opened_at")
        )

    def get_tickets(self, location_id, station_id=None) -> List[Dict[str, Any]]:
        """
        Orders with work still on the line, oldest first. Item order within a
        ticket is (course, seat, fired_at) so food goes out in serving sequence.
        """
        now = self.clock()
        orders = self._live_orders(
            location_id, self.TICKET_ORDER_STATUSES, self.COOKING_STATUSES, station_id
        )
        tickets = [self._build_ticket(order, now) for order in orders]
        logger.debug(
            f"Built {len(tickets)} ticket(s) for location {location_id}"
            + (f", station {station_id}" if station_id is not None else "")
        )
        return tickets

    def get_expo_view(self, location_id) -> List[Dict[str, Any]]:
        """All stations combined, including READY items waiting on a runner."""
        now = self.clock()
        orders = self._live_orders(location_id, self.EXPO_ORDER_STATUSES, self.VISIBLE_STATUSES)
        view = []
        for order in orders:
            ticket = self._build_ticket(order, now)
            ticket["all_ready"] = all(i.status == ItemStatus.READY for i in order.ticket_items)
            view.append(ticket)
        return view

    def _build_ticket(self, order, now) -> Dict[str, Any]:
        items = order.ticket_items
        fired_times = [i.fired_at for i in items if i.fired_at]
        first_fired_at = min(fired_times) if fired_times else None
        age_minutes = self.age_minutes(first_fired_at, now)
        return {
            "order_id": str(order.pk),
            "order_number": order.order_number,
            "table_name": order.display_name,
            "server_name": order.server.display_name if order.server_id else "",
            "guest_count": order.guest_count,
            "fired_at": first_fired_at,
            "age_minutes": age_minutes,
            "ticket_status": self.classify(age_minutes, [i.status for i in items]),
            "items": [self._serialize_item(i) for i in items],
        }

    @staticmethod
    def _serialize_item(item) -> Dict[str, Any]:
        station = item.station
        return {
            "id": item.pk,
            "name": item.menu_item.name,
            "kitchen_name": item.menu_item.ticket_name,
            "quantity": item.quantity,
            "seat": item.seat,
            "course": item.course,
            "status": item.status,
            "station": (
                {"id": station.pk, "name": station.name, "short_name": station.short_name}
                if station
                else None
            ),
            "modifiers": [m.name for m in item.modifiers.all()],
            "special_instructions": item.special_instructions,
            "fired_at": item.fired_at,
            "ready_at": item.ready_at,
        }

    @staticmethod
    def age_minutes(first_fired_at, now) -> int:
        if first_fired_at is None:
            return 0
        return max(int((now - first_fired_at).total_seconds() // 60), 0)

    def classify(self, age_minutes: int, item_statuses) -> str:
        statuses = list(item_statuses)
        # A fully bumped ticket reads as ready however long it took.
        if statuses and all(s == ItemStatus.READY for s in statuses):
            return TicketStatus.READY
        if age_minutes > self.thresholds["LATE"]:
            return TicketStatus.LATE
        if age_minutes > self.thresholds["WARNING"]:
            return TicketStatus.COOKING
        return TicketStatus.NEW

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    @classmethod
    def get_station_summary(cls, location_id) -> List[Dict[str, Any]]:
        stations = Station.objects.filter(location_id=location_id).annotate(
            pending_count=Count(
                "order_items",
                filter=Q(
                    order_items__status__in=cls.COOKING_STATUSES,
                    order_items__order__location_id=location_id,
                ),
            )
        ).order_by("sort_order", "name")
        return [
            {
                "station": {
                    "id": s.pk,
                    "name": s.name,
                    "short_name": s.short_name,
                    "is_expo": s.is_expo,
                },
                "pending_count": s.pending_count,
            }
            for s in stations
        ]

    def get_timing_stats(self, location_id) -> Dict[str, Any]:
        now = self.clock()
        one_hour_ago = now - timedelta(hours=1)

        completed = OrderItem.objects.filter(
            order__location_id=location_id,
            status__in=(ItemStatus.READY, ItemStatus.SERVED),
            ready_at__gte=one_hour_ago,
            fired_at__isnull=False,
        ).values_list("fired_at", "ready_at")
        durations = [(ready - fired).total_seconds() / 60 for fired, ready in completed]
        avg_ticket_time = round(sum(durations) / len(durations), 1) if durations else 0

        live_orders = Order.objects.filter(
            location_id=location_id, status__in=self.TICKET_ORDER_STATUSES
        )
        late_cutoff = now - timedelta(minutes=self.thresholds["LATE"])
        late_tickets = live_orders.filter(
            items__status__in=self.COOKING_STATUSES,
            items__fired_at__lt=late_cutoff,
        ).distinct().count()

        return {
            "avg_ticket_time": avg_ticket_time,
            "active_tickets": live_orders.count(),
            "late_tickets": late_tickets,
            "completed_last_hour": len(durations),
        }
