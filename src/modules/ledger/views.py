"""COD ledger API views.

Rider endpoints act on the caller's own rider profile; admin endpoints
(``IsAdminUser``) read across riders and record received payouts.
"""

from __future__ import annotations

from pydantic import ValidationError as DTOValidationError
from rest_framework import status
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.http import domain_error_response, window_from_request
from modules.core.pagination import StandardResultsSetPagination
from modules.ledger.dtos import RecordSettlementDTO
from modules.ledger.repositories.django_repository import (
    CODRecordDjangoRepository,
    SettlementDjangoRepository,
)
from modules.ledger.serializers import (
    CODRecordSerializer,
    RecordSettlementSerializer,
    SettlementSerializer,
)
from modules.ledger.services import CODLedgerService
from modules.orders.views import dto_error_response
from modules.riders.permissions import IsRider, rider_for_user
from modules.riders.repositories.django_repository import RiderDjangoRepository
from shared.domain.exceptions import DomainError


def build_ledger_service() -> CODLedgerService:
    return CODLedgerService(
        cod_repository=CODRecordDjangoRepository(),
        settlement_repository=SettlementDjangoRepository(),
        rider_repository=RiderDjangoRepository(),
    )


class LedgerView(APIView):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_ledger_service()

    def paginate(self, request: Request, queryset, serializer_class, **extra) -> Response:
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        response = paginator.get_paginated_response(
            serializer_class(page, many=True).data
        )
        response.data.update(extra)
        return response


# ---------------------------------------------------------------------------
# Rider
# ---------------------------------------------------------------------------


class RiderWalletView(LedgerView):
    """GET /api/v1/rider/wallet/"""

    permission_classes = [IsAuthenticated, IsRider]

    def get(self, request: Request) -> Response:
        rider = rider_for_user(request.user)
        summary = self._service.wallet_summary(rider.pk)
        return Response(summary.model_dump(mode="json"))


class RiderPayoutView(LedgerView):
    """POST /api/v1/rider/payout/

    409 ``insufficient_batch`` until the rider holds a full batch.
    """

    permission_classes = [IsAuthenticated, IsRider]

    def post(self, request: Request) -> Response:
        rider = rider_for_user(request.user)
        try:
            settlement = self._service.request_payout(rider.pk)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(
            SettlementSerializer(settlement).data, status=status.HTTP_201_CREATED
        )


class RiderPayoutHistoryView(LedgerView):
    """GET /api/v1/rider/payout-history/"""

    permission_classes = [IsAuthenticated, IsRider]

    def get(self, request: Request) -> Response:
        rider = rider_for_user(request.user)
        return self.paginate(
            request, self._service.payout_history(rider.pk), SettlementSerializer
        )


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


class AdminCODSummaryView(LedgerView):
    """GET /api/v1/admin/cod/summary/?search=&period=&date_from=&date_to="""

    permission_classes = [IsAdminUser]

    def get(self, request: Request) -> Response:
        window = window_from_request(request)
        overview = self._service.overview(
            window, query=request.query_params.get("search", "")
        )
        return Response(overview.model_dump(mode="json"))


class AdminRiderCODHistoryView(LedgerView):
    """GET /api/v1/admin/riders/{rider_id}/cod-history/?period=&status="""

    permission_classes = [IsAdminUser]

    def get(self, request: Request, rider_id: int) -> Response:
        window = window_from_request(request)
        try:
            records = self._service.cod_history(
                rider_id, window, status=request.query_params.get("status")
            )
        except DomainError as exc:
            return domain_error_response(exc)
        summary = {
            key: str(value) if key.endswith("amount") else value
            for key, value in self._service.summarize(records).items()
        }
        return self.paginate(request, records, CODRecordSerializer, summary=summary)


class AdminRiderSettlementsView(LedgerView):
    """GET /api/v1/admin/riders/{rider_id}/settlements/"""

    permission_classes = [IsAdminUser]

    def get(self, request: Request, rider_id: int) -> Response:
        try:
            settlements = self._service.rider_settlements(rider_id)
        except DomainError as exc:
            return domain_error_response(exc)
        return self.paginate(request, settlements, SettlementSerializer)


class AdminRecordSettlementView(LedgerView):
    """POST /api/v1/admin/settlements/{settlement_id}/record/"""

    permission_classes = [IsAdminUser]

    def post(self, request: Request, settlement_id: int) -> Response:
        serializer = RecordSettlementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            dto = RecordSettlementDTO(**serializer.validated_data)
        except DTOValidationError as exc:
            return dto_error_response(exc)

        try:
            settlement = self._service.record_settlement(
                settlement_id, dto, actor_id=request.user.pk
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(SettlementSerializer(settlement).data)
