from rest_framework import serializers


class AddCartItemSerializer(serializers.Serializer):
    """Range checks on ``quantity`` are left to ``CartService``."""

    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(required=False, default=1)
    guest_session_id = serializers.CharField(
        max_length=255, required=False, allow_blank=True
    )


class CartQuerySerializer(serializers.Serializer):
    guest_session_id = serializers.CharField(
        max_length=255, required=False, allow_blank=True
    )
