"""Delivery DRF serializers (rider app and operations)."""

from __future__ import annotations

from rest_framework import serializers

from modules.deliveries.constants import PROMISED_ETA_CHOICES, RejectionReason
from modules.deliveries.models import DeliveryAssignment
from modules.orders.constants import FailureReason
from modules.orders.models import Order

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class RejectOfferSerializer(serializers.Serializer):
    reason = serializers.ChoiceField(choices=RejectionReason.choices)


class FailDeliverySerializer(serializers.Serializer):
    reason = serializers.ChoiceField(choices=FailureReason.choices)
    note = serializers.CharField(required=False, default="", allow_blank=True, max_length=200)


class PromiseEtaSerializer(serializers.Serializer):
    minutes = serializers.ChoiceField(choices=PROMISED_ETA_CHOICES)


class LocationUpdateSerializer(serializers.Serializer):
    latitude = serializers.DecimalField(
        max_digits=9, decimal_places=6, min_value=-90, max_value=90
    )
    longitude = serializers.DecimalField(
        max_digits=9, decimal_places=6, min_value=-180, max_value=180
    )


class AssignRiderSerializer(serializers.Serializer):
    rider_id = serializers.IntegerField(min_value=1)


# ---------------------------------------------------------------------------
# Output Serializers
# ---------------------------------------------------------------------------


class RiderOrderSerializer(serializers.ModelSerializer):
    """What a rider sees on an order card."""

    is_paid = serializers.BooleanField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "total_price",
            "payment_method",
            "is_paid",
            "delivery_status",
            "delivery_speed",
            "shop_name",
            "shop_latitude",
            "shop_longitude",
            "shipping_name",
            "shipping_phone",
            "shipping_address",
            "shipping_city",
            "shipping_latitude",
            "shipping_longitude",
            "failure_reason",
            "delivered_at",
            "created_at",
        ]
        read_only_fields = fields


class AssignmentSerializer(serializers.ModelSerializer):
    order = RiderOrderSerializer(read_only=True)

    class Meta:
        model = DeliveryAssignment
        fields = [
            "id",
            "order",
            "rider_id",
            "is_active",
            "promised_eta_minutes",
            "end_reason",
            "ended_at",
            "created_at",
        ]
        read_only_fields = fields


def grouped_orders(board: dict) -> dict:
    """Serialize ``{group: {speed: [orders]}}`` from ``rider_orders``."""
    return {
        group: {
            speed: RiderOrderSerializer(orders, many=True).data
            for speed, orders in by_speed.items()
        }
        for group, by_speed in board.items()
    }
