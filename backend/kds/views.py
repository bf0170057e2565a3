import logging

from rest_framework.decorators import action
from rest_framework.response import Response

from core_backend.base import BaseAPIView
from orders.services import OrderService
from .serializers import (
    BumpTicketSerializer,
    KitchenQuerySerializer,
    RecallTicketSerializer,
    StartItemSerializer,
)
from .services import TicketRouter

logger = logging.getLogger(__name__)


class KitchenViewSet(BaseAPIView):
    """
    Kitchen display endpoints.

    GET  tickets/?location_id=&station_id=   cook view, one ticket per order
    GET  expo/?location_id=                  runner view with READY items
    GET  station-summary/?location_id=       cooking item count per station
    GET  timing-stats/?location_id=          last hour ticket timings
    POST bump-ticket/   {order_id, station_id?}
    POST recall/        {order_id}
    POST start-item/    {order_item_id}
    """

    router_class = TicketRouter

    def get_router(self):
        return self.router_class()

    def get_order_service(self):
        return OrderService()

    def _query(self, request):
        serializer = KitchenQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    @action(detail=False, methods=["get"], url_path="tickets")
    def tickets(self, request):
        params = self._query(request)
        return Response(
            self.get_router().get_tickets(params["location_id"], params.get("station_id"))
        )

    @action(detail=False, methods=["get"], url_path="expo")
    def expo(self, request):
        params = self._query(request)
        return Response(self.get_router().get_expo_view(params["location_id"]))

    @action(detail=False, methods=["get"], url_path="station-summary")
    def station_summary(self, request):
        params = self._query(request)
        return Response(self.get_router().get_station_summary(params["location_id"]))

    @action(detail=False, methods=["get"], url_path="timing-stats")
    def timing_stats(self, request):
        params = self._query(request)
        return Response(self.get_router().get_timing_stats(params["location_id"]))

    @action(detail=False, methods=["post"], url_path="bump-ticket")
    def bump_ticket(self, request):
        serializer = BumpTicketSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        items = self.get_order_service().bump_ticket(
            serializer.validated_data["order_id"],
            station_id=serializer.validated_data.get("station_id"),
            user=request.user,
        )
        return Response({"success": True, "bumped_item_ids": [i.pk for i in items]})

    @action(detail=False, methods=["post"], url_path="recall")
    def recall(self, request):
        serializer = RecallTicketSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = self.get_order_service().recall_ticket(
            serializer.validated_data["order_id"], user=request.user
        )
        logger.info(f"Ticket for order #{order.order_number} recalled by {request.user}")
        return Response({"success": True, "status": order.status})

    @action(detail=False, methods=["post"], url_path="start-item")
    def start_item(self, request):
        serializer = StartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = self.get_order_service().start_item(
            serializer.validated_data["order_item_id"], user=request.user
        )
        return Response({"success": True, "status": item.status})
