from rest_framework import serializers


class ItemIdsSerializer(serializers.Serializer):
    """Body of the fire and hold actions."""

    item_ids = serializers.ListField(
        child=serializers.IntegerField(), allow_empty=False
    )


class FireOrderSerializer(serializers.Serializer):
    """
    ``item_ids`` fires exactly those items, ``course`` fires one course,
    neither fires everything pending or held.
    """

    item_ids = serializers.ListField(child=serializers.IntegerField(), required=False)
    course = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    def validate(self, data):
        if data.get("item_ids") and data.get("course") is not None:
            raise serializers.ValidationError("Send either item_ids or course, not both.")
        return data
