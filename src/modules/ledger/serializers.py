"""COD ledger DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.ledger.constants import SettlementMethod
from modules.ledger.models import CODRecord, Settlement


class RecordSettlementSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=SettlementMethod.choices)
    reference = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=120
    )
    note = serializers.CharField(required=False, default="", allow_blank=True)


class CODRecordSerializer(serializers.ModelSerializer):
    order_status = serializers.CharField(source="order.delivery_status", read_only=True)

    class Meta:
        model = CODRecord
        fields = [
            "id",
            "order_id",
            "order_status",
            "rider_id",
            "amount",
            "status",
            "settlement_id",
            "settled_at",
            "created_at",
        ]
        read_only_fields = fields


class SettlementSerializer(serializers.ModelSerializer):
    class Meta:
        model = Settlement
        fields = [
            "id",
            "rider_id",
            "total_amount",
            "cod_count",
            "status",
            "method",
            "reference",
            "note",
            "processed_at",
            "created_at",
        ]
        read_only_fields = fields
