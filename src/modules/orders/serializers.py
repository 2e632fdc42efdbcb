"""Order DRF serializers for API input.

Serializers validate the HTTP payload shape only.  Business validation
(shipping method, status values, ownership) happens in the services,
which receive Pydantic DTOs from ``dtos.py``.  Responses are rendered
from the output DTOs.
"""

from __future__ import annotations

from rest_framework import serializers


class CreateOrderSerializer(serializers.Serializer):
    """Checkout payload.  Items come from the cart, not from the body."""

    shipping_method = serializers.CharField(
        max_length=20, required=False, allow_blank=True, default=""
    )
    shipping_address = serializers.DictField(allow_empty=False)
    billing_address = serializers.DictField(required=False, allow_null=True)
    payment_method = serializers.CharField(
        max_length=50, required=False, allow_blank=True, default=""
    )
    coupon_code = serializers.CharField(
        max_length=50, required=False, allow_blank=True, allow_null=True
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    guest_session_id = serializers.CharField(
        max_length=255, required=False, allow_blank=True
    )


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)
    comment = serializers.CharField(required=False, allow_blank=True, default="")


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class OrderListQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, default=1)
    limit = serializers.IntegerField(required=False)
    status = serializers.CharField(required=False, allow_blank=True)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
