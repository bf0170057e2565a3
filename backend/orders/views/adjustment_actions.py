from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from orders.serializers import CompSerializer, DiscountSerializer


class AdjustmentActionsMixin:
    """
    Mixin for comps and discounts.

    Both are append-only: there is no endpoint to edit or remove them.
    """

    @action(detail=True, methods=["post"], url_path="comp")
    def comp(self, request: Request, pk=None) -> Response:
        """
        Comps an amount off the order. With ``item_id`` and no ``amount`` the
        item's whole line total is comped.
        """
        order = self.get_object()
        serializer = CompSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        self.get_order_service().add_comp(
            order,
            reason=data["reason"],
            approved_by=data["approved_by"],
            amount=data.get("amount"),
            item_id=data.get("item_id"),
            user=request.user,
        )
        return self.order_response(order, status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="discount")
    def discount(self, request: Request, pk=None) -> Response:
        """
        Applies a discount. Percentages are turned into a fixed amount against
        the subtotal at this moment.
        """
        order = self.get_object()
        serializer = DiscountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        self.get_order_service().add_discount(
            order,
            name=data["name"],
            discount_type=data["discount_type"],
            value=data["value"],
            reason=data["reason"],
            approved_by=data["approved_by"],
            user=request.user,
        )
        return self.order_response(order, status.HTTP_201_CREATED)
