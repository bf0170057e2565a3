from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from payments.serializers import (
    AddPaymentSerializer,
    CheckSerializer,
    PaymentSerializer,
    SplitCustomSerializer,
    SplitEvenSerializer,
)


class PaymentActionsMixin:
    """
    Mixin for tenders and check splitting.
    """

    @action(detail=True, methods=["post"], url_path="payments")
    def add_payment(self, request: Request, pk=None) -> Response:
        order = self.get_object()
        serializer = AddPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = self.get_order_service().add_payment(
            order, user=request.user, **serializer.validated_data
        )
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"], url_path="checks")
    def checks(self, request: Request, pk=None) -> Response:
        order = self.get_object()
        checks = order.checks.prefetch_related("items")
        return Response(CheckSerializer(checks, many=True).data)

    @action(detail=True, methods=["post"], url_path="split")
    def split(self, request: Request, pk=None) -> Response:
        """
        Custom split: ``{"splits": [{"name": "...", "order_item_ids": [...]}, ...]}``.
        Every live item must be assigned to exactly one check.
        """
        order = self.get_object()
        serializer = SplitCustomSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        checks = self.get_order_service().split_check(
            order, serializer.validated_data["splits"], user=request.user
        )
        return Response(CheckSerializer(checks, many=True).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="split-by-seat")
    def split_by_seat(self, request: Request, pk=None) -> Response:
        order = self.get_object()
        checks = self.get_order_service().split_check_by_seat(order, user=request.user)
        return Response(CheckSerializer(checks, many=True).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="split-even")
    def split_even(self, request: Request, pk=None) -> Response:
        """Per-person amounts only; no checks are created."""
        order = self.get_object()
        serializer = SplitEvenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_order_service().split_check_evenly(
            order, serializer.validated_data["number_of_checks"]
        )
        result["total"] = str(result["total"])
        result["amounts"] = [str(a) for a in result["amounts"]]
        return Response(result)
