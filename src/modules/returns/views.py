"""Return API views.

Customers request and list their own returns, riders work the pickups,
admins reject or record refunds.  Domain exceptions are translated by
``domain_error_response``.
"""

from __future__ import annotations

from pydantic import ValidationError as DTOValidationError
from rest_framework import status
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.http import domain_error_response
from modules.core.pagination import StandardResultsSetPagination
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.orders.views import dto_error_response
from modules.returns.dtos import (
    AdvanceReturnDTO,
    MarkRefundedDTO,
    RejectReturnDTO,
    RequestReturnDTO,
)
from modules.returns.repositories.django_repository import ReturnDjangoRepository
from modules.returns.serializers import (
    AdvanceReturnSerializer,
    MarkRefundedSerializer,
    PickupSerializer,
    RejectReturnSerializer,
    RequestReturnSerializer,
    ReturnRequestSerializer,
)
from modules.returns.services import ReturnService
from modules.riders.permissions import IsRider, rider_for_user
from shared.domain.exceptions import DomainError


def build_return_service() -> ReturnService:
    return ReturnService(
        return_repository=ReturnDjangoRepository(),
        order_service=OrderService(order_repository=OrderDjangoRepository()),
    )


class ReturnView(APIView):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_return_service()

    def paginate(self, request: Request, queryset, serializer_class) -> Response:
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        return paginator.get_paginated_response(serializer_class(page, many=True).data)


# ---------------------------------------------------------------------------
# Customer
# ---------------------------------------------------------------------------


class RequestReturnView(ReturnView):
    """POST /api/v1/orders/{order_id}/return/

    409 ``not_eligible`` when the order is not delivered, the window has
    closed or a return already exists.
    """

    permission_classes = [IsAuthenticated]

    def post(self, request: Request, order_id: int) -> Response:
        serializer = RequestReturnSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            dto = RequestReturnDTO(**serializer.validated_data)
        except DTOValidationError as exc:
            return dto_error_response(exc)

        try:
            return_request = self._service.request_return(
                order_id, customer_id=request.user.pk, dto=dto
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(
            ReturnRequestSerializer(return_request).data,
            status=status.HTTP_201_CREATED,
        )


class MyReturnsView(ReturnView):
    """GET /api/v1/returns/my/"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        return self.paginate(
            request, self._service.my_returns(request.user.pk), ReturnRequestSerializer
        )


# ---------------------------------------------------------------------------
# Rider
# ---------------------------------------------------------------------------


class PickupsView(ReturnView):
    """GET /api/v1/returns/pickups/"""

    permission_classes = [IsAuthenticated, IsRider]

    def get(self, request: Request) -> Response:
        rider = rider_for_user(request.user)
        return self.paginate(request, self._service.pickups(rider), PickupSerializer)


class CompletedPickupsView(ReturnView):
    """GET /api/v1/returns/completed/"""

    permission_classes = [IsAuthenticated, IsRider]

    def get(self, request: Request) -> Response:
        rider = rider_for_user(request.user)
        return self.paginate(request, self._service.completed(rider), PickupSerializer)


class AcceptPickupView(ReturnView):
    """POST /api/v1/returns/{return_id}/accept/"""

    permission_classes = [IsAuthenticated, IsRider]

    def post(self, request: Request, return_id: int) -> Response:
        try:
            return_request = self._service.accept(
                return_id, rider_for_user(request.user)
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(PickupSerializer(return_request).data)


class PickupStatusView(ReturnView):
    """POST /api/v1/returns/{return_id}/status/ ``{"status": "picked_up"}``"""

    permission_classes = [IsAuthenticated, IsRider]

    def post(self, request: Request, return_id: int) -> Response:
        serializer = AdvanceReturnSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = AdvanceReturnDTO(**serializer.validated_data)
        try:
            return_request = self._service.advance(
                return_id, rider_for_user(request.user), dto
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(PickupSerializer(return_request).data)


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


class AdminReturnsView(ReturnView):
    """GET /api/v1/admin/returns/?status="""

    permission_classes = [IsAdminUser]

    def get(self, request: Request) -> Response:
        returns = self._service.admin_list(status=request.query_params.get("status"))
        return self.paginate(request, returns, ReturnRequestSerializer)


class AdminRejectReturnView(ReturnView):
    """POST /api/v1/admin/returns/{return_id}/reject/"""

    permission_classes = [IsAdminUser]

    def post(self, request: Request, return_id: int) -> Response:
        serializer = RejectReturnSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = RejectReturnDTO(**serializer.validated_data)
        try:
            return_request = self._service.reject(return_id, dto)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(ReturnRequestSerializer(return_request).data)


class AdminMarkRefundedView(ReturnView):
    """POST /api/v1/admin/returns/{return_id}/mark-refunded/

    409 ``already_finalized`` once the return is completed or rejected.
    """

    permission_classes = [IsAdminUser]

    def post(self, request: Request, return_id: int) -> Response:
        serializer = MarkRefundedSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            dto = MarkRefundedDTO(**serializer.validated_data)
        except DTOValidationError as exc:
            return dto_error_response(exc)

        try:
            return_request = self._service.mark_refunded(return_id, dto)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(ReturnRequestSerializer(return_request).data)
