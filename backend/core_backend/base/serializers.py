from decimal import Decimal

from rest_framework import serializers


class MoneyField(serializers.DecimalField):
    """Currency amount rendered as a string with two decimal places."""

    def __init__(self, **kwargs):
        kwargs.setdefault("max_digits", 10)
        kwargs.setdefault("decimal_places", 2)
        kwargs.setdefault("coerce_to_string", True)
        super().__init__(**kwargs)


class BaseModelSerializer(serializers.ModelSerializer):
    """
    Base serializer that provides common functionality.

    Features:
    - Optimization hints read by BaseViewSet
    - Money columns rendered through MoneyField
    """

    serializer_field_mapping = dict(serializers.ModelSerializer.serializer_field_mapping)

    class Meta:
        # Default optimization fields (can be overridden)
        select_related_fields = []
        prefetch_related_fields = []

    def to_representation(self, instance):
        data = super().to_representation(instance)
        for key, value in data.items():
            if isinstance(value, Decimal):
                data[key] = str(value)
        return data
