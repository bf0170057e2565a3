import logging

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.response import Response

from core_backend.base import BaseViewSet
from orders.filters import OrderFilter
from orders.models import Order
from orders.serializers import (
    LocationQuerySerializer,
    OrderCreateSerializer,
    OrderListSerializer,
    OrderSerializer,
    OrderUpdateSerializer,
    TableOccupancySerializer,
)
from orders.services import OrderService

# Import action mixins
from .adjustment_actions import AdjustmentActionsMixin
from .payment_actions import PaymentActionsMixin
from .status_actions import StatusActionsMixin

logger = logging.getLogger(__name__)


class OrderServiceMixin:
    """Gives a view one ``OrderService`` per request."""

    order_service_class = OrderService

    def get_order_service(self) -> OrderService:
        return self.order_service_class()

    def order_response(self, order, status_code=status.HTTP_200_OK) -> Response:
        fresh = self.get_order_service().get_order(order)
        return Response(
            OrderSerializer(fresh, context=self.get_serializer_context()).data,
            status=status_code,
        )


class OrderViewSet(
    StatusActionsMixin,
    AdjustmentActionsMixin,
    PaymentActionsMixin,
    OrderServiceMixin,
    BaseViewSet,
):
    """
    Orders and their lifecycle.

    Plain CRUD covers create, list, retrieve and partial update of guest
    details. Everything else (fire, void, pay, split, close...) is an action
    from one of the mixins and runs through ``OrderService``. Orders are never
    deleted through the API; void them instead.
    """

    queryset = Order.objects.all()
    serializer_class = OrderSerializer
    filterset_class = OrderFilter
    ordering_fields = ["opened_at", "order_number", "total", "status"]
    ordering = ["-opened_at"]
    http_method_names = ["get", "post", "patch", "head", "options"]

    def get_serializer_class(self):
        if self.action == "list":
            return OrderListSerializer
        if self.action == "create":
            return OrderCreateSerializer
        if self.action == "partial_update":
            return OrderUpdateSerializer
        return OrderSerializer

    def get_queryset(self):
        queryset = Order.objects.all()
        if self.action == "list":
            return queryset.select_related("table", "server")
        return super().get_queryset()

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        order = self.get_order_service().create_order(
            location=data["location"],
            server=data.get("server") or request.user,
            order_type=data["order_type"],
            table=data.get("table"),
            tab_name=data.get("tab_name", ""),
            guest_count=data["guest_count"],
            guest_name=data.get("guest_name", ""),
            guest_phone=data.get("guest_phone", ""),
            notes=data.get("notes", ""),
            user=request.user,
        )
        return self.order_response(order, status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        order = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.get_order_service().update_order(order, user=request.user, **serializer.validated_data)
        return self.order_response(order)

    @action(detail=False, methods=["get"], url_path="tables")
    def tables(self, request):
        """GET /api/orders/tables/?location_id= floor plan with live orders per table."""
        query = LocationQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        tables = self.get_order_service().get_tables(query.validated_data["location_id"])
        return Response(
            TableOccupancySerializer(tables, many=True, context=self.get_serializer_context()).data
        )
