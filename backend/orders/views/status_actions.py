from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from orders.serializers import (
    FireOrderSerializer,
    ItemIdsSerializer,
    TransferTableSerializer,
    VoidSerializer,
)


class StatusActionsMixin:
    """
    Mixin for order status transition actions

    This mixin provides action methods for OrderViewSet.
    """

    @action(detail=True, methods=["post"], url_path="fire")
    def fire(self, request: Request, pk=None) -> Response:
        """
        Sends items to the kitchen. Items that were already fired are skipped,
        so firing twice is harmless.
        """
        order = self.get_object()
        serializer = FireOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        service = self.get_order_service()
        if serializer.validated_data.get("item_ids"):
            service.fire_items(order, serializer.validated_data["item_ids"], user=request.user)
        else:
            service.fire_order(order, course=serializer.validated_data.get("course"), user=request.user)
        return self.order_response(order)

    @action(detail=True, methods=["post"], url_path="hold")
    def hold(self, request: Request, pk=None) -> Response:
        """Holds pending items back from the kitchen."""
        order = self.get_object()
        serializer = ItemIdsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.get_order_service().hold_items(
            order, serializer.validated_data["item_ids"], user=request.user
        )
        return self.order_response(order)

    @action(detail=True, methods=["post"], url_path="void")
    def void(self, request: Request, pk=None) -> Response:
        """Voids the whole order. Rejected once a payment has been taken."""
        order = self.get_object()
        serializer = VoidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.get_order_service().void_order(
            order,
            reason=serializer.validated_data["reason"],
            approved_by=serializer.validated_data["approved_by"],
            user=request.user,
        )
        return self.order_response(order)

    @action(detail=True, methods=["post"], url_path="close")
    def close(self, request: Request, pk=None) -> Response:
        order = self.get_object()
        self.get_order_service().close_order(order, user=request.user)
        return self.order_response(order)

    @action(detail=True, methods=["post"], url_path="transfer-table")
    def transfer_table(self, request: Request, pk=None) -> Response:
        order = self.get_object()
        serializer = TransferTableSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.get_order_service().transfer_table(
            order, serializer.validated_data["table_id"], user=request.user
        )
        return self.order_response(order)
