import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from core_backend.base import BaseViewSet
from orders.models import Order, OrderItem
from orders.serializers import (
    AddItemSerializer,
    OrderItemSerializer,
    UpdateOrderItemSerializer,
    VoidSerializer,
)
from .order_viewset import OrderServiceMixin

logger = logging.getLogger(__name__)


class OrderItemViewSet(OrderServiceMixin, BaseViewSet):
    """
    A ViewSet for managing a specific item within an order.

    Mutations return the whole updated order so the terminal can redraw
    totals without a second request.
    """

    queryset = OrderItem.objects.all()
    serializer_class = OrderItemSerializer
    ordering = ["course", "seat", "created_at"]
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_serializer_class(self):
        if self.action == "create":
            return AddItemSerializer
        if self.action == "partial_update":
            return UpdateOrderItemSerializer
        return OrderItemSerializer

    def get_queryset(self):
        """
        Filter items based on the order_pk provided in the URL.
        """
        queryset = super().get_queryset()
        return queryset.filter(order__pk=self.kwargs["order_pk"])

    def get_object(self):
        queryset = self.get_queryset()
        obj = get_object_or_404(queryset, pk=self.kwargs["pk"])
        self.check_object_permissions(self.request, obj)
        return obj

    def create(self, request, *args, **kwargs):
        """Adds an item to the order."""
        order = get_object_or_404(Order, pk=self.kwargs["order_pk"])
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        self.get_order_service().add_item(
            order,
            menu_item_id=data["menu_item_id"],
            quantity=data["quantity"],
            seat=data["seat"],
            course=data["course"],
            special_instructions=data.get("special_instructions", ""),
            modifier_ids=data.get("modifier_ids") or [],
            check_id=data.get("check_id"),
            user=request.user,
        )
        return self.order_response(order, status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        item = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.get_order_service().update_item(item, user=request.user, **serializer.validated_data)
        return self.order_response(item.order_id)

    def destroy(self, request, *args, **kwargs):
        """Deletes a pending item that never reached the kitchen."""
        item = self.get_object()
        order_id = item.order_id
        self.get_order_service().remove_item(item, user=request.user)
        return self.order_response(order_id)

    @action(detail=True, methods=["post"], url_path="start")
    def start(self, request: Request, order_pk=None, pk=None) -> Response:
        item = self.get_object()
        self.get_order_service().start_item(item, user=request.user)
        return self.order_response(item.order_id)

    @action(detail=True, methods=["post"], url_path="bump")
    def bump(self, request: Request, order_pk=None, pk=None) -> Response:
        item = self.get_object()
        self.get_order_service().bump_item(item, user=request.user)
        return self.order_response(item.order_id)

    @action(detail=True, methods=["post"], url_path="serve")
    def serve(self, request: Request, order_pk=None, pk=None) -> Response:
        item = self.get_object()
        self.get_order_service().serve_item(item, user=request.user)
        return self.order_response(item.order_id)

    @action(detail=True, methods=["post"], url_path="void")
    def void(self, request: Request, order_pk=None, pk=None) -> Response:
        item = self.get_object()
        serializer = VoidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.get_order_service().void_item(
            item,
            reason=serializer.validated_data["reason"],
            approved_by=serializer.validated_data["approved_by"],
            user=request.user,
        )
        return self.order_response(item.order_id)
