from rest_framework import serializers


class KitchenQuerySerializer(serializers.Serializer):
    location_id = serializers.IntegerField()
    station_id = serializers.IntegerField(required=False, allow_null=True)


class BumpTicketSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    station_id = serializers.IntegerField(required=False, allow_null=True)


class RecallTicketSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()


class StartItemSerializer(serializers.Serializer):
    order_item_id = serializers.IntegerField()
