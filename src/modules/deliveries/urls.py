"""Delivery URL configuration."""

from __future__ import annotations

from django.urls import path
from rest_framework.routers import SimpleRouter

from modules.deliveries.views import (
    AdminAssignView,
    AdminFailView,
    AdminRiderOrdersView,
    LiveLocationView,
    RiderHistoryView,
    RiderLocationView,
    RiderOrderViewSet,
    RiderStatsView,
    TrackingConfigView,
)

router = SimpleRouter(trailing_slash=True)
router.register("delivery/orders", RiderOrderViewSet, basename="delivery-order")

urlpatterns = [
    path("delivery/history/", RiderHistoryView.as_view(), name="delivery-history"),
    path("delivery/location/", RiderLocationView.as_view(), name="delivery-location"),
    path("delivery/stats/", RiderStatsView.as_view(), name="delivery-stats"),
    path(
        "orders/<int:order_id>/live-location/",
        LiveLocationView.as_view(),
        name="order-live-location",
    ),
    path("tracking/config/", TrackingConfigView.as_view(), name="tracking-config"),
    path(
        "admin/orders/<int:order_id>/assign/",
        AdminAssignView.as_view(),
        name="admin-order-assign",
    ),
    path(
        "admin/orders/<int:order_id>/fail/",
        AdminFailView.as_view(),
        name="admin-order-fail",
    ),
    path(
        "admin/riders/<int:rider_id>/orders/",
        AdminRiderOrdersView.as_view(),
        name="admin-rider-orders",
    ),
] + router.urls
