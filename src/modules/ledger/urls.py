"""COD ledger URL configuration."""

from __future__ import annotations

from django.urls import path

from modules.ledger.views import (
    AdminCODSummaryView,
    AdminRecordSettlementView,
    AdminRiderCODHistoryView,
    AdminRiderSettlementsView,
    RiderPayoutHistoryView,
    RiderPayoutView,
    RiderWalletView,
)

urlpatterns = [
    path("rider/wallet/", RiderWalletView.as_view(), name="rider-wallet"),
    path("rider/payout/", RiderPayoutView.as_view(), name="rider-payout"),
    path(
        "rider/payout-history/",
        RiderPayoutHistoryView.as_view(),
        name="rider-payout-history",
    ),
    path("admin/cod/summary/", AdminCODSummaryView.as_view(), name="admin-cod-summary"),
    path(
        "admin/riders/<int:rider_id>/cod-history/",
        AdminRiderCODHistoryView.as_view(),
        name="admin-rider-cod-history",
    ),
    path(
        "admin/riders/<int:rider_id>/settlements/",
        AdminRiderSettlementsView.as_view(),
        name="admin-rider-settlements",
    ),
    path(
        "admin/settlements/<int:settlement_id>/record/",
        AdminRecordSettlementView.as_view(),
        name="admin-record-settlement",
    ),
]
