"""Return DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.returns.constants import RIDER_STEPS, RefundMode
from modules.returns.models import ReturnRequest

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class RequestReturnSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000)
    bank_account_name = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=120
    )
    bank_account_number = serializers.RegexField(
        r"^\d{6,34}$", required=False, default="", allow_blank=True
    )
    ifsc = serializers.RegexField(
        r"^[A-Za-z]{4}0[A-Za-z0-9]{6}$", required=False, default="", allow_blank=True
    )
    upi_id = serializers.RegexField(
        r"^[\w.\-]{2,}@[A-Za-z]{2,}$", required=False, default="", allow_blank=True
    )
    phone = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=20
    )


class AdvanceReturnSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=sorted(RIDER_STEPS))


class MarkRefundedSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    mode = serializers.ChoiceField(
        choices=RefundMode.choices, required=False, default=RefundMode.UPI
    )
    reference = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=120
    )
    note = serializers.CharField(required=False, default="", allow_blank=True)


class RejectReturnSerializer(serializers.Serializer):
    note = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers
# ---------------------------------------------------------------------------


class ReturnRequestSerializer(serializers.ModelSerializer):
    """Full return, for the customer who asked and for admins."""

    order_total = serializers.DecimalField(
        source="order.total_price", max_digits=10, decimal_places=2, read_only=True
    )

    class Meta:
        model = ReturnRequest
        fields = [
            "id",
            "order_id",
            "order_total",
            "customer_id",
            "rider_id",
            "reason",
            "status",
            "bank_account_name",
            "bank_account_number",
            "ifsc",
            "upi_id",
            "phone",
            "refund_amount",
            "refund_mode",
            "refund_reference",
            "admin_note",
            "accepted_at",
            "picked_up_at",
            "delivered_to_shop_at",
            "completed_at",
            "rejected_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PickupSerializer(serializers.ModelSerializer):
    """What a rider needs to collect the parcel; no refund details."""

    shipping_name = serializers.CharField(source="order.shipping_name", read_only=True)
    shipping_address = serializers.CharField(
        source="order.shipping_address", read_only=True
    )
    shipping_city = serializers.CharField(source="order.shipping_city", read_only=True)
    shipping_latitude = serializers.DecimalField(
        source="order.shipping_latitude",
        max_digits=9,
        decimal_places=6,
        read_only=True,
    )
    shipping_longitude = serializers.DecimalField(
        source="order.shipping_longitude",
        max_digits=9,
        decimal_places=6,
        read_only=True,
    )
    shop_name = serializers.CharField(source="order.shop_name", read_only=True)

    class Meta:
        model = ReturnRequest
        fields = [
            "id",
            "order_id",
            "rider_id",
            "reason",
            "status",
            "phone",
            "shipping_name",
            "shipping_address",
            "shipping_city",
            "shipping_latitude",
            "shipping_longitude",
            "shop_name",
            "accepted_at",
            "picked_up_at",
            "delivered_to_shop_at",
            "created_at",
        ]
        read_only_fields = fields
