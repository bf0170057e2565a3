from rest_framework import serializers

from core_backend.base import BaseModelSerializer, MoneyField
from .models import MenuItem, Modifier, ModifierGroup


class ModifierSerializer(BaseModelSerializer):
    price_adjustment = MoneyField(read_only=True)

    class Meta:
        model = Modifier
        fields = ["id", "name", "price_adjustment", "is_active", "sort_order"]


class ModifierGroupSerializer(BaseModelSerializer):
    modifiers = ModifierSerializer(many=True, read_only=True)
    min_selections = serializers.IntegerField(source="effective_min", read_only=True)
    max_selections = serializers.IntegerField(source="effective_max", read_only=True)

    class Meta:
        model = ModifierGroup
        fields = [
            "id",
            "name",
            "selection_type",
            "required",
            "min_selections",
            "max_selections",
            "modifiers",
        ]


class MenuItemSerializer(BaseModelSerializer):
    price = MoneyField(read_only=True)
    kitchen_name = serializers.CharField(source="ticket_name", read_only=True)
    modifier_groups = ModifierGroupSerializer(many=True, read_only=True)

    class Meta:
        model = MenuItem
        fields = [
            "id",
            "location",
            "name",
            "kitchen_name",
            "price",
            "station",
            "is_86d",
            "is_active",
            "modifier_groups",
        ]
        read_only_fields = fields
        select_related_fields = ["station"]
        prefetch_related_fields = ["modifier_groups__modifiers"]


class EightySixSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=200, default="")
