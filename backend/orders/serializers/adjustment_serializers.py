from rest_framework import serializers

from core_backend.base import BaseModelSerializer, MoneyField
from orders.models import OrderComp, OrderDiscount, OrderVoid
from users.models import User


class OrderVoidSerializer(BaseModelSerializer):
    amount = MoneyField(read_only=True)

    class Meta:
        model = OrderVoid
        fields = ["id", "order_item", "reason", "amount", "approved_by", "created_by", "created_at"]
        read_only_fields = fields


class OrderCompSerializer(BaseModelSerializer):
    amount = MoneyField(read_only=True)

    class Meta:
        model = OrderComp
        fields = ["id", "order_item", "reason", "amount", "approved_by", "created_by", "created_at"]
        read_only_fields = fields


class OrderDiscountSerializer(BaseModelSerializer):
    amount = MoneyField(read_only=True)
    discount_type_display = serializers.CharField(
        source="get_discount_type_display", read_only=True
    )

    class Meta:
        model = OrderDiscount
        fields = [
            "id",
            "name",
            "discount_type",
            "discount_type_display",
            "value",
            "amount",
            "reason",
            "approved_by",
            "created_by",
            "created_at",
        ]
        read_only_fields = fields


class ApprovalSerializer(serializers.Serializer):
    """Every adjustment carries a reason and the approving staff member."""

    reason = serializers.CharField(max_length=500)
    approved_by = serializers.PrimaryKeyRelatedField(queryset=User.objects.filter(is_active=True))

    def validate_reason(self, value):
        if not value.strip():
            raise serializers.ValidationError("A reason is required.")
        return value.strip()


class VoidSerializer(ApprovalSerializer):
    pass


class CompSerializer(ApprovalSerializer):
    amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, allow_null=True
    )
    item_id = serializers.IntegerField(required=False, allow_null=True)

    def validate(self, data):
        if data.get("amount") is None and data.get("item_id") is None:
            raise serializers.ValidationError("Give an amount, an item_id, or both.")
        return data


class DiscountSerializer(ApprovalSerializer):
    name = serializers.CharField(max_length=100)
    discount_type = serializers.ChoiceField(choices=OrderDiscount.DiscountType.choices)
    value = serializers.DecimalField(max_digits=10, decimal_places=2)

    def validate_value(self, value):
        if value <= 0:
            raise serializers.ValidationError("Discount value must be positive.")
        return value
