"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.  Domain
exceptions are caught around each service call and translated by
``domain_error_response``; the view never swallows generic exceptions.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as DTOValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.http import domain_error_response
from modules.core.pagination import StandardResultsSetPagination
from modules.orders.dtos import CancelOrderDTO, CreateOrderDTO
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CancelOrderSerializer,
    CreateOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
)
from modules.orders.services import OrderService
from shared.domain.exceptions import DomainError


def dto_error_response(exc: DTOValidationError) -> Response:
    return Response(
        {"detail": [error["msg"] for error in exc.errors()]},
        status=status.HTTP_400_BAD_REQUEST,
    )


class OrderViewSet(GenericViewSet):
    """Customer order endpoints.

    Uses ``OrderService`` with an injected repository (DIP).  Customers only
    ever see their own orders; staff may read and cancel any order.
    """

    queryset = Order.objects.none()
    filterset_class = OrderFilter
    ordering_fields = ["created_at", "total_price", "delivery_status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(order_repository=OrderDjangoRepository())

    def get_throttles(self) -> list[BaseThrottle]:
        self.throttle_scope = "order_creation" if self.action == "create" else None
        return super().get_throttles()

    def _customer_scope(self, request: Request) -> int | None:
        return None if request.user.is_staff else request.user.pk

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header.
        Returns 200 if the key was already used, 201 for new orders.
        """
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        idempotency_key = request.headers.get("Idempotency-Key")
        try:
            dto = CreateOrderDTO(
                customer_id=request.user.pk,
                idempotency_key=idempotency_key,
                **serializer.validated_data,
            )
        except DTOValidationError as exc:
            return dto_error_response(exc)

        replay = bool(
            idempotency_key
            and Order.objects.filter(idempotency_key=idempotency_key).exists()
        )
        try:
            order = self._service.create_order(dto)
        except DomainError as exc:
            return domain_error_response(exc)

        return Response(
            OrderSerializer(order).data,
            status=status.HTTP_200_OK if replay else status.HTTP_201_CREATED,
        )

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        customer_id = self._customer_scope(self.request)
        if customer_id is None:
            return OrderDjangoRepository().list()
        return self._service.list_customer_orders(customer_id)

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/"""
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/

        Polled by the order detail screen while the order is not terminal.
        """
        try:
            order = self._service.get_order(pk, customer_id=self._customer_scope(request))
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Cancel (dedicated action)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Allowed only while the order is ``new``; 409 ``not_cancelable``
        otherwise.
        """
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = CancelOrderDTO(**serializer.validated_data)

        try:
            order = self._service.cancel_order(
                order_id=pk,
                dto=dto,
                actor_id=request.user.pk,
                customer_id=self._customer_scope(request),
            )
        except DomainError as exc:
            return domain_error_response(exc)

        return Response(OrderSerializer(order).data)
