from rest_framework import serializers

from core_backend.base import BaseModelSerializer, MoneyField
from orders.models import OrderItem, OrderItemModifier


class OrderItemModifierSerializer(BaseModelSerializer):
    class Meta:
        model = OrderItemModifier
        fields = ["id", "modifier", "name", "price_adjustment"]
        read_only_fields = fields


class OrderItemSerializer(BaseModelSerializer):
    name = serializers.CharField(source="menu_item.name", read_only=True)
    kitchen_name = serializers.CharField(source="menu_item.ticket_name", read_only=True)
    modifiers = OrderItemModifierSerializer(many=True, read_only=True)
    unit_price = MoneyField(read_only=True)
    modifier_total = MoneyField(read_only=True)
    line_total = MoneyField(read_only=True)
    check_id = serializers.UUIDField(source="guest_check_id", read_only=True, allow_null=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "order",
            "menu_item",
            "name",
            "kitchen_name",
            "quantity",
            "seat",
            "course",
            "status",
            "special_instructions",
            "unit_price",
            "modifier_total",
            "line_total",
            "modifiers",
            "station",
            "check_id",
            "created_at",
            "sent_at",
            "fired_at",
            "ready_at",
            "served_at",
            "voided_at",
        ]
        read_only_fields = fields
        select_related_fields = ["menu_item", "station"]
        prefetch_related_fields = ["modifiers"]


class AddItemSerializer(serializers.Serializer):
    menu_item_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    seat = serializers.IntegerField(min_value=1, default=1)
    course = serializers.IntegerField(min_value=1, default=1)
    special_instructions = serializers.CharField(required=False, allow_blank=True, default="")
    modifier_ids = serializers.ListField(
        child=serializers.IntegerField(), required=False, default=list
    )
    check_id = serializers.UUIDField(required=False, allow_null=True)


class UpdateOrderItemSerializer(serializers.Serializer):
    """
    Partial item update. Omitted fields are left alone; ``modifier_ids``
    replaces the whole modifier selection when given.
    """

    quantity = serializers.IntegerField(min_value=1, required=False)
    seat = serializers.IntegerField(min_value=1, required=False)
    course = serializers.IntegerField(min_value=1, required=False)
    special_instructions = serializers.CharField(required=False, allow_blank=True)
    modifier_ids = serializers.ListField(child=serializers.IntegerField(), required=False)

    def validate(self, data):
        if not data:
            raise serializers.ValidationError("Nothing to update.")
        return data
