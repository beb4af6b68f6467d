"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.orders.constants import CancelReason, DeliverySpeed, PaymentMethod
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.policies import cancellation_policy

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


def _coordinate(max_value: int) -> serializers.DecimalField:
    return serializers.DecimalField(
        max_digits=9,
        decimal_places=6,
        min_value=-max_value,
        max_value=max_value,
        required=False,
        allow_null=True,
        default=None,
    )


class CreateOrderSerializer(serializers.Serializer):
    """Validates the checkout hand-off payload."""

    items_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    shipping_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, default=Decimal("0.00")
    )
    coupon_discount_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, default=Decimal("0.00")
    )
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    delivery_speed = serializers.ChoiceField(
        choices=DeliverySpeed.choices, required=False, default="normal"
    )
    paid = serializers.BooleanField(required=False, default=False)
    shop_name = serializers.CharField(required=False, default="", allow_blank=True, max_length=150)
    shop_latitude = _coordinate(90)
    shop_longitude = _coordinate(180)
    shipping_name = serializers.CharField(required=False, default="", allow_blank=True, max_length=150)
    shipping_phone = serializers.CharField(required=False, default="", allow_blank=True, max_length=20)
    shipping_address = serializers.CharField(required=False, default="", allow_blank=True, max_length=255)
    shipping_city = serializers.CharField(required=False, default="", allow_blank=True, max_length=120)
    shipping_latitude = _coordinate(90)
    shipping_longitude = _coordinate(180)
    is_returnable = serializers.BooleanField(required=False, default=True)


class CancelOrderSerializer(serializers.Serializer):
    """Validates a cancellation request."""

    reason = serializers.ChoiceField(choices=CancelReason.choices)
    note = serializers.CharField(required=False, allow_blank=True, max_length=255)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Order detail with the derived flags the customer app renders."""

    is_paid = serializers.BooleanField(read_only=True)
    is_delivered = serializers.BooleanField(read_only=True)
    is_terminal = serializers.BooleanField(read_only=True)
    can_cancel = serializers.SerializerMethodField()
    can_return = serializers.SerializerMethodField()
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "customer_id",
            "items_price",
            "shipping_price",
            "shipping_extra_price",
            "coupon_discount_amount",
            "total_price",
            "payment_method",
            "paid_at",
            "is_paid",
            "delivery_status",
            "delivery_speed",
            "is_delivered",
            "is_terminal",
            "delivered_at",
            "failure_reason",
            "cancel_reason",
            "cancelled_at",
            "can_cancel",
            "can_return",
            "is_returnable",
            "shop_name",
            "shop_latitude",
            "shop_longitude",
            "shipping_name",
            "shipping_phone",
            "shipping_address",
            "shipping_city",
            "shipping_latitude",
            "shipping_longitude",
            "created_at",
            "updated_at",
            "status_history",
        ]
        read_only_fields = fields

    def get_can_cancel(self, obj: Order) -> bool:
        return cancellation_policy.can_cancel(obj)

    def get_can_return(self, obj: Order) -> bool:
        from modules.returns.policies import return_policy

        return return_policy.is_eligible(obj)


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order lists (no nested relations)."""

    is_paid = serializers.BooleanField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "customer_id",
            "total_price",
            "payment_method",
            "is_paid",
            "delivery_status",
            "delivery_speed",
            "shipping_name",
            "shipping_city",
            "delivered_at",
            "created_at",
        ]
        read_only_fields = fields
