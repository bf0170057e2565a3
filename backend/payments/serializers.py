from rest_framework import serializers

from core_backend.base import BaseModelSerializer, MoneyField
from .models import Check, Payment


class CheckSerializer(BaseModelSerializer):
    subtotal = MoneyField(read_only=True)
    tax_amount = MoneyField(read_only=True)
    total = MoneyField(read_only=True)
    item_ids = serializers.SerializerMethodField()

    class Meta:
        model = Check
        fields = [
            "id",
            "order",
            "name",
            "position",
            "subtotal",
            "tax_amount",
            "total",
            "is_paid",
            "item_ids",
            "created_at",
        ]
        read_only_fields = fields
        prefetch_related_fields = ["items"]

    def get_item_ids(self, obj):
        return [item.pk for item in obj.items.all()]


class PaymentSerializer(BaseModelSerializer):
    amount = MoneyField(read_only=True)
    tip_amount = MoneyField(read_only=True)
    check_id = serializers.UUIDField(source="guest_check_id", read_only=True, allow_null=True)
    method_display = serializers.CharField(source="get_method_display", read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "order",
            "check_id",
            "method",
            "method_display",
            "amount",
            "tip_amount",
            "card_last4",
            "card_brand",
            "transaction_id",
            "processed_by",
            "created_at",
        ]
        read_only_fields = fields


class AddPaymentSerializer(serializers.Serializer):
    """
    A tender that was already authorized at the terminal. Amounts arrive as
    decimal strings and are never parsed through floats.
    """

    method = serializers.ChoiceField(choices=Payment.PaymentMethod.choices)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    tip_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, default=0
    )
    check_id = serializers.UUIDField(required=False, allow_null=True)
    card_last4 = serializers.RegexField(r"^\d{4}$", required=False, allow_blank=True, default="")
    card_brand = serializers.CharField(required=False, allow_blank=True, max_length=20, default="")
    transaction_id = serializers.CharField(
        required=False, allow_blank=True, max_length=100, default=""
    )


class CheckGroupSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True, max_length=100)
    order_item_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)


class SplitCustomSerializer(serializers.Serializer):
    splits = CheckGroupSerializer(many=True)

    def validate_splits(self, value):
        if len(value) < 2:
            raise serializers.ValidationError("A split needs at least two checks.")
        return value


class SplitEvenSerializer(serializers.Serializer):
    number_of_checks = serializers.IntegerField(min_value=2)
