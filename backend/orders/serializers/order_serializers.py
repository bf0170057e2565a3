from rest_framework import serializers

from core_backend.base import BaseModelSerializer, MoneyField
from locations.models import Location, Table
from orders.models import Order
from users.models import User
from payments.serializers import CheckSerializer, PaymentSerializer
from .adjustment_serializers import (
    OrderCompSerializer,
    OrderDiscountSerializer,
    OrderVoidSerializer,
)
from .order_item_serializers import OrderItemSerializer


class OrderListSerializer(BaseModelSerializer):
    """Lightweight row for the open orders list."""

    display_name = serializers.CharField(read_only=True)
    server_name = serializers.CharField(source="server.display_name", read_only=True, default="")
    subtotal = MoneyField(read_only=True)
    total = MoneyField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "business_date",
            "order_type",
            "status",
            "display_name",
            "table",
            "server",
            "server_name",
            "guest_count",
            "subtotal",
            "total",
            "opened_at",
            "closed_at",
        ]
        read_only_fields = fields
        select_related_fields = ["table", "server"]


class LocationQuerySerializer(serializers.Serializer):
    location_id = serializers.IntegerField()


class TableOccupancySerializer(BaseModelSerializer):
    """A floor plan table with the live orders seated at it."""

    orders = OrderListSerializer(source="live_orders", many=True, read_only=True)

    class Meta:
        model = Table
        fields = ["id", "name", "section", "seats", "orders"]
        read_only_fields = fields


class OrderSerializer(BaseModelSerializer):
    """Full order with items, checks, payments and adjustments."""

    display_name = serializers.CharField(read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    checks = CheckSerializer(many=True, read_only=True)
    payments = PaymentSerializer(many=True, read_only=True)
    discounts = OrderDiscountSerializer(many=True, read_only=True)
    comps = OrderCompSerializer(many=True, read_only=True)
    voids = OrderVoidSerializer(many=True, read_only=True)
    subtotal = MoneyField(read_only=True)
    discount_amount = MoneyField(read_only=True)
    comp_amount = MoneyField(read_only=True)
    tax_amount = MoneyField(read_only=True)
    tip_amount = MoneyField(read_only=True)
    total = MoneyField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "location",
            "order_number",
            "business_date",
            "order_type",
            "status",
            "display_name",
            "table",
            "server",
            "tab_name",
            "guest_count",
            "guest_name",
            "guest_phone",
            "notes",
            "subtotal",
            "discount_amount",
            "comp_amount",
            "tax_amount",
            "tip_amount",
            "total",
            "items",
            "checks",
            "payments",
            "discounts",
            "comps",
            "voids",
            "opened_at",
            "closed_at",
            "updated_at",
        ]
        read_only_fields = fields
        select_related_fields = ["location", "table", "server"]
        prefetch_related_fields = [
            "items__modifiers",
            "items__menu_item",
            "checks",
            "payments",
            "discounts",
            "comps",
            "voids",
        ]


class OrderCreateSerializer(serializers.Serializer):
    location = serializers.PrimaryKeyRelatedField(queryset=Location.objects.filter(is_active=True))
    order_type = serializers.ChoiceField(
        choices=Order.OrderType.choices, default=Order.OrderType.DINE_IN
    )
    table = serializers.PrimaryKeyRelatedField(
        queryset=Table.objects.all(), required=False, allow_null=True
    )
    server = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(is_active=True), required=False, allow_null=True
    )
    tab_name = serializers.CharField(required=False, allow_blank=True, max_length=100, default="")
    guest_count = serializers.IntegerField(min_value=1, default=1)
    guest_name = serializers.CharField(required=False, allow_blank=True, max_length=150, default="")
    guest_phone = serializers.CharField(required=False, allow_blank=True, max_length=20, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, data):
        if data.get("order_type") == Order.OrderType.BAR_TAB and not (
            data.get("tab_name") or data.get("guest_name")
        ):
            raise serializers.ValidationError({"tab_name": "A bar tab needs a tab or guest name."})
        return data


class OrderUpdateSerializer(serializers.Serializer):
    order_type = serializers.ChoiceField(choices=Order.OrderType.choices, required=False)
    guest_count = serializers.IntegerField(min_value=1, required=False)
    tab_name = serializers.CharField(required=False, allow_blank=True, max_length=100)
    guest_name = serializers.CharField(required=False, allow_blank=True, max_length=150)
    guest_phone = serializers.CharField(required=False, allow_blank=True, max_length=20)
    notes = serializers.CharField(required=False, allow_blank=True)
    server = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(is_active=True), required=False, allow_null=True
    )


class TransferTableSerializer(serializers.Serializer):
    table_id = serializers.IntegerField()
