"""Delivery API views.

Rider endpoints require an active rider profile (``IsRider``) and act on
the caller's own assignments.  Operations endpoints require staff
(``IsAdminUser``).  The live-location and tracking-config endpoints serve
the customer app's polling loop.
"""

from __future__ import annotations

from django.conf import settings
from django.utils.dateparse import parse_date
from pydantic import ValidationError as DTOValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.core.http import domain_error_response, window_from_request
from modules.core.pagination import StandardResultsSetPagination
from modules.deliveries.dtos import FailDeliveryDTO, PromiseEtaDTO, RejectOfferDTO
from modules.deliveries.repositories.django_repository import (
    AssignmentDjangoRepository,
)
from modules.deliveries.serializers import (
    AssignmentSerializer,
    AssignRiderSerializer,
    FailDeliverySerializer,
    LocationUpdateSerializer,
    PromiseEtaSerializer,
    RejectOfferSerializer,
    RiderOrderSerializer,
    grouped_orders,
)
from modules.deliveries.services import DeliveryService
from modules.deliveries.tracking import LiveLocationRelay
from modules.ledger.views import build_ledger_service
from modules.orders.constants import FailureReason
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import OrderSerializer
from modules.orders.services import OrderService
from modules.orders.views import dto_error_response
from modules.riders.permissions import IsRider, rider_for_user
from modules.riders.repositories.django_repository import RiderDjangoRepository
from shared.domain.exceptions import DomainError
from shared.infrastructure.polling import PollingConfig


def build_delivery_service() -> DeliveryService:
    assignment_repository = AssignmentDjangoRepository()
    return DeliveryService(
        order_service=OrderService(order_repository=OrderDjangoRepository()),
        ledger_service=build_ledger_service(),
        assignment_repository=assignment_repository,
        rider_repository=RiderDjangoRepository(),
        relay=LiveLocationRelay(assignment_repository),
    )


class DeliveryView(APIView):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_delivery_service()


# ---------------------------------------------------------------------------
# Rider
# ---------------------------------------------------------------------------


class RiderOrderViewSet(GenericViewSet):
    """The rider's order board and per-order actions.

    Every action answers with the updated order so the app can redraw the
    card without another poll.
    """

    queryset = Order.objects.none()
    permission_classes = [IsAuthenticated, IsRider]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_delivery_service()

    def _rider(self, request: Request):
        return rider_for_user(request.user)

    def _order_response(self, order: Order) -> Response:
        return Response(RiderOrderSerializer(order).data)

    def list(self, request: Request) -> Response:
        """GET /api/v1/delivery/orders/

        ``{"active": {"fast": [...], "normal": [...]}, "new": {...}}``,
        oldest first inside each group.  Polled by the rider app.
        """
        board = self._service.rider_orders(self._rider(request))
        return Response(grouped_orders(board))

    @action(detail=True, methods=["post"])
    def accept(self, request: Request, pk: str | None = None) -> Response:
        try:
            order = self._service.accept(pk, self._rider(request))
        except DomainError as exc:
            return domain_error_response(exc)
        return self._order_response(order)

    @action(detail=True, methods=["post"])
    def reject(self, request: Request, pk: str | None = None) -> Response:
        serializer = RejectOfferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = RejectOfferDTO(**serializer.validated_data)
        try:
            self._service.reject_offer(pk, self._rider(request), dto)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def depart(self, request: Request, pk: str | None = None) -> Response:
        try:
            order = self._service.depart(pk, self._rider(request))
        except DomainError as exc:
            return domain_error_response(exc)
        return self._order_response(order)

    @action(detail=True, methods=["post"])
    def onway(self, request: Request, pk: str | None = None) -> Response:
        try:
            order = self._service.on_the_way(pk, self._rider(request))
        except DomainError as exc:
            return domain_error_response(exc)
        return self._order_response(order)

    @action(detail=True, methods=["post"])
    def deliver(self, request: Request, pk: str | None = None) -> Response:
        try:
            order = self._service.mark_delivered(pk, self._rider(request))
        except DomainError as exc:
            return domain_error_response(exc)
        return self._order_response(order)

    @action(detail=True, methods=["post"])
    def fail(self, request: Request, pk: str | None = None) -> Response:
        serializer = FailDeliverySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = FailDeliveryDTO(**serializer.validated_data)
        try:
            order = self._service.mark_failed(
                pk, dto, actor_id=request.user.pk, rider=self._rider(request)
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return self._order_response(order)

    @action(detail=True, methods=["post"])
    def eta(self, request: Request, pk: str | None = None) -> Response:
        serializer = PromiseEtaSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            dto = PromiseEtaDTO(**serializer.validated_data)
        except DTOValidationError as exc:
            return dto_error_response(exc)
        try:
            assignment = self._service.promise_eta(pk, self._rider(request), dto)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(AssignmentSerializer(assignment).data)


class RiderHistoryView(DeliveryView):
    """GET /api/v1/delivery/history/?status=delivered|failed"""

    permission_classes = [IsAuthenticated, IsRider]

    def get(self, request: Request) -> Response:
        assignments = self._service.history(
            rider_for_user(request.user), status=request.query_params.get("status")
        )
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(assignments, request, view=self)
        return paginator.get_paginated_response(
            AssignmentSerializer(page, many=True).data
        )


class RiderLocationView(DeliveryView):
    """POST /api/v1/delivery/location/

    Answers with the number of active assignments updated; an idle rider
    gets ``0``, not an error.
    """

    permission_classes = [IsAuthenticated, IsRider]
    throttle_scope = "location_update"

    def post(self, request: Request) -> Response:
        serializer = LocationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        updated = self._service.record_location(
            rider_for_user(request.user),
            serializer.validated_data["latitude"],
            serializer.validated_data["longitude"],
        )
        return Response({"updated": updated})


class RiderStatsView(DeliveryView):
    """GET /api/v1/delivery/stats/?date=YYYY-MM-DD (default today)"""

    permission_classes = [IsAuthenticated, IsRider]

    def get(self, request: Request) -> Response:
        raw = request.query_params.get("date")
        day = None
        if raw:
            try:
                day = parse_date(raw)
            except ValueError:
                day = None
            if day is None:
                return Response(
                    {"date": "Use the YYYY-MM-DD format."},
                    status=status.HTTP_400_BAD_REQUEST,
                )
        stats = self._service.rider_stats(rider_for_user(request.user), day)
        return Response(stats.model_dump(mode="json"))


# ---------------------------------------------------------------------------
# Customer tracking
# ---------------------------------------------------------------------------


class LiveLocationView(DeliveryView):
    """GET /api/v1/orders/{order_id}/live-location/

    Always 200 for a visible order: ``state`` tells the client whether to
    keep polling (``tracking`` / ``no_active_rider``) or stop (``closed``).
    """

    permission_classes = [IsAuthenticated]

    def get(self, request: Request, order_id: int) -> Response:
        customer_id = None if request.user.is_staff else request.user.pk
        try:
            answer = self._service.live_location(order_id, customer_id=customer_id)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(answer.model_dump(mode="json"))


class TrackingConfigView(APIView):
    """GET /api/v1/tracking/config/

    Poll intervals for the customer and rider apps, served from settings so
    they can be tuned without an app release.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        return Response(
            {
                **PollingConfig.from_settings().as_dict(),
                "stale_after_seconds": settings.LIVE_LOCATION_STALE_AFTER_SECONDS,
            }
        )


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


class AdminAssignView(DeliveryView):
    """POST /api/v1/admin/orders/{order_id}/assign/ ``{"rider_id": 7}``"""

    permission_classes = [IsAdminUser]

    def post(self, request: Request, order_id: int) -> Response:
        serializer = AssignRiderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = self._service.reassign(
                order_id,
                serializer.validated_data["rider_id"],
                actor_id=request.user.pk,
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)


class AdminFailView(DeliveryView):
    """POST /api/v1/admin/orders/{order_id}/fail/

    ``reason`` defaults to ``ops``.
    """

    permission_classes = [IsAdminUser]

    def post(self, request: Request, order_id: int) -> Response:
        data = {"reason": FailureReason.OPS, **request.data}
        serializer = FailDeliverySerializer(data=data)
        serializer.is_valid(raise_exception=True)
        dto = FailDeliveryDTO(**serializer.validated_data)
        try:
            order = self._service.mark_failed(order_id, dto, actor_id=request.user.pk)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)


class AdminRiderOrdersView(DeliveryView):
    """GET /api/v1/admin/riders/{rider_id}/orders/?period=&status="""

    permission_classes = [IsAdminUser]

    def get(self, request: Request, rider_id: int) -> Response:
        window = window_from_request(request)
        try:
            orders = self._service.rider_order_overview(
                rider_id, window, status=request.query_params.get("status")
            )
        except DomainError as exc:
            return domain_error_response(exc)
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(orders, request, view=self)
        return paginator.get_paginated_response(
            RiderOrderSerializer(page, many=True).data
        )
