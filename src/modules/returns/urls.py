"""Return URL configuration."""

from __future__ import annotations

from django.urls import path

from modules.returns.views import (
    AcceptPickupView,
    AdminMarkRefundedView,
    AdminRejectReturnView,
    AdminReturnsView,
    CompletedPickupsView,
    MyReturnsView,
    PickupStatusView,
    PickupsView,
    RequestReturnView,
)

urlpatterns = [
    path(
        "orders/<int:order_id>/return/",
        RequestReturnView.as_view(),
        name="order-request-return",
    ),
    path("returns/my/", MyReturnsView.as_view(), name="my-returns"),
    path("returns/pickups/", PickupsView.as_view(), name="return-pickups"),
    path(
        "returns/completed/",
        CompletedPickupsView.as_view(),
        name="return-pickups-completed",
    ),
    path(
        "returns/<int:return_id>/accept/",
        AcceptPickupView.as_view(),
        name="return-accept",
    ),
    path(
        "returns/<int:return_id>/status/",
        PickupStatusView.as_view(),
        name="return-status",
    ),
    path("admin/returns/", AdminReturnsView.as_view(), name="admin-returns"),
    path(
        "admin/returns/<int:return_id>/reject/",
        AdminRejectReturnView.as_view(),
        name="admin-return-reject",
    ),
    path(
        "admin/returns/<int:return_id>/mark-refunded/",
        AdminMarkRefundedView.as_view(),
        name="admin-return-mark-refunded",
    ),
]
