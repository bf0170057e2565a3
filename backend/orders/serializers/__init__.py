"""
Orders serializers package - modular serializer layer.
"""

# Order item serializers
from .order_item_serializers import (
    OrderItemModifierSerializer,
    OrderItemSerializer,
    AddItemSerializer,
    UpdateOrderItemSerializer,
)

# Adjustment serializers
from .adjustment_serializers import (
    OrderVoidSerializer,
    OrderCompSerializer,
    OrderDiscountSerializer,
    VoidSerializer,
    CompSerializer,
    DiscountSerializer,
)

# Order serializers
from .order_serializers import (
    OrderListSerializer,
    OrderSerializer,
    OrderCreateSerializer,
    OrderUpdateSerializer,
    TransferTableSerializer,
    TableOccupancySerializer,
    LocationQuerySerializer,
)

# Status serializers
from .status_serializers import ItemIdsSerializer, FireOrderSerializer

__all__ = [
    # Order items
    'OrderItemModifierSerializer',
    'OrderItemSerializer',
    'AddItemSerializer',
    'UpdateOrderItemSerializer',
    # Adjustments
    'OrderVoidSerializer',
    'OrderCompSerializer',
    'OrderDiscountSerializer',
    'VoidSerializer',
    'CompSerializer',
    'DiscountSerializer',
    # Orders
    'OrderListSerializer',
    'OrderSerializer',
    'OrderCreateSerializer',
    'OrderUpdateSerializer',
    'TransferTableSerializer',
    'TableOccupancySerializer',
    'LocationQuerySerializer',
    # Status
    'ItemIdsSerializer',
    'FireOrderSerializer',
]
