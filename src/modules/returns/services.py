"""Return workflow service layer.

``pending -> accepted -> picked_up -> delivered_to_shop -> completed``, with
``rejected`` reachable from any open status.  Every command re-reads the
return under a row lock and checks the stored status, so a rider tapping
"picked up" and an admin rejecting at the same moment cannot both win.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import structlog
from django.db import models, transaction
from django.utils import timezone

from modules.orders.exceptions import OrderNotFound
from modules.returns.constants import REFUNDABLE_STATES, ReturnStatus
from modules.returns.events import (
    ReturnRefunded,
    ReturnRequested,
    ReturnStatusChanged,
)
from modules.returns.exceptions import (
    AlreadyFinalized,
    InvalidRefund,
    InvalidReturnTransition,
    NotEligible,
    NotPickupRider,
    ReturnNotFound,
)
from modules.returns.policies import ReturnPolicy, return_policy

if TYPE_CHECKING:
    from modules.orders.services import OrderService
    from modules.returns.dtos import (
        AdvanceReturnDTO,
        MarkRefundedDTO,
        RejectReturnDTO,
        RequestReturnDTO,
    )
    from modules.returns.models import ReturnRequest
    from modules.returns.repositories.interfaces import IReturnRepository
    from modules.riders.models import RiderProfile

logger = structlog.get_logger(__name__)

STEP_TIMESTAMPS = {
    ReturnStatus.ACCEPTED: "accepted_at",
    ReturnStatus.PICKED_UP: "picked_up_at",
    ReturnStatus.DELIVERED_TO_SHOP: "delivered_to_shop_at",
    ReturnStatus.COMPLETED: "completed_at",
    ReturnStatus.REJECTED: "rejected_at",
}


class ReturnService:
    """Application service for customer, rider and admin return use-cases."""

    def __init__(
        self,
        return_repository: IReturnRepository,
        order_service: OrderService,
        policy: ReturnPolicy = return_policy,
    ) -> None:
        self._return_repo = return_repository
        self._orders = order_service
        self._policy = policy

    # ------------------------------------------------------------------
    # Customer
    # ------------------------------------------------------------------

    @transaction.atomic
    def request_return(
        self, order_id: int, customer_id: int, dto: RequestReturnDTO
    ) -> ReturnRequest:
        """Open a ``pending`` return for the customer's delivered order.

        The order row is locked so two taps on "request return" produce one
        request and one ``NotEligible``.

        Raises:
            OrderNotFound: order does not exist or is not the caller's.
            NotEligible: see ``ReturnPolicy``.
        """
        order = self._orders.lock_order(order_id)
        if order.customer_id != customer_id:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=order.pk, customer_id=customer_id)
        try:
            self._policy.check(order)
        except NotEligible as exc:
            log.info("returns.not_eligible", reason=str(exc))
            raise

        return_request = self._return_repo.create(
            {
                "order": order,
                "customer_id": customer_id,
                "reason": dto.reason,
                "bank_account_name": dto.bank_account_name,
                "bank_account_number": dto.bank_account_number,
                "ifsc": dto.ifsc,
                "upi_id": dto.upi_id,
                "phone": dto.phone or order.shipping_phone,
            }
        )
        return_request.add_domain_event(
            ReturnRequested(aggregate_id=return_request.pk, order_id=order.pk)
        )
        self._return_repo.save(return_request)
        log.info("returns.requested", return_id=return_request.pk)
        return return_request

    def my_returns(self, customer_id: int) -> models.QuerySet:
        return self._return_repo.for_customer(customer_id)

    # ------------------------------------------------------------------
    # Rider
    # ------------------------------------------------------------------

    @transaction.atomic
    def accept(self, return_id: int, rider: RiderProfile) -> ReturnRequest:
        """Rider takes the pickup.  Repeating the call is a no-op.

        Only the rider who delivered the order may claim a pending return.

        Raises:
            ReturnNotFound, AlreadyFinalized, NotPickupRider,
            InvalidReturnTransition.
        """
        return_request = self._lock(return_id)
        if return_request.rider_id is not None and return_request.rider_id != rider.pk:
            raise NotPickupRider(f"Return {return_request.pk} is handled by another rider.")
        if return_request.status == ReturnStatus.ACCEPTED:
            return return_request
        if return_request.status == ReturnStatus.PENDING and not (
            self._return_repo.is_offered_to(return_request.pk, rider.pk)
        ):
            raise NotPickupRider(
                f"Return {return_request.pk} belongs to another rider's deliveries."
            )

        return_request.rider = rider
        return self._change_status(return_request, ReturnStatus.ACCEPTED)

    @transaction.atomic
    def advance(
        self, return_id: int, rider: RiderProfile, dto: AdvanceReturnDTO
    ) -> ReturnRequest:
        """Report ``picked_up`` or ``delivered_to_shop``.

        Raises:
            ReturnNotFound, AlreadyFinalized, NotPickupRider,
            InvalidReturnTransition.
        """
        return_request = self._lock(return_id)
        if return_request.rider_id != rider.pk:
            raise NotPickupRider(f"Return {return_request.pk} is not assigned to you.")
        if return_request.status == dto.status:
            return return_request
        return self._change_status(return_request, dto.status)

    def pickups(self, rider: RiderProfile) -> models.QuerySet:
        return self._return_repo.pickups_for_rider(rider.pk)

    def completed(self, rider: RiderProfile) -> models.QuerySet:
        return self._return_repo.completed_for_rider(rider.pk)

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    @transaction.atomic
    def reject(self, return_id: int, dto: RejectReturnDTO) -> ReturnRequest:
        """Raises: ReturnNotFound, AlreadyFinalized."""
        return_request = self._lock(return_id)
        return_request.admin_note = dto.note
        return self._change_status(return_request, ReturnStatus.REJECTED)

    @transaction.atomic
    def mark_refunded(self, return_id: int, dto: MarkRefundedDTO) -> ReturnRequest:
        """Record the refund and complete the return.

        Partial refunds are allowed; the amount may not exceed what the
        customer paid for the order.

        Raises:
            ReturnNotFound: return does not exist.
            AlreadyFinalized: already completed or rejected; refund data is
                never overwritten.
            InvalidReturnTransition: still ``pending``.
            InvalidRefund: amount above the order total.
        """
        return_request = self._lock(return_id)
        if return_request.status not in REFUNDABLE_STATES:
            raise InvalidReturnTransition(
                f"Return {return_request.pk} must be accepted before it is refunded."
            )

        order_total = Decimal(return_request.order.total_price)
        if dto.amount > order_total:
            raise InvalidRefund(
                f"Refund {dto.amount} exceeds the order total {order_total}."
            )

        return_request.refund_amount = dto.amount
        return_request.refund_mode = dto.mode
        return_request.refund_reference = dto.reference
        return_request.admin_note = dto.note
        return_request.add_domain_event(
            ReturnRefunded(
                aggregate_id=return_request.pk,
                order_id=return_request.order_id,
                refund_amount=str(dto.amount),
                refund_mode=dto.mode,
            )
        )
        self._change_status(return_request, ReturnStatus.COMPLETED)
        logger.info(
            "returns.refunded",
            return_id=return_request.pk,
            order_id=return_request.order_id,
            refund_amount=str(dto.amount),
            partial=dto.amount < order_total,
        )
        return return_request

    def admin_list(self, status: Optional[str] = None) -> models.QuerySet:
        queryset = self._return_repo.list()
        if status in ReturnStatus.values:
            queryset = queryset.filter(status=status)
        return queryset

    def get_return(self, return_id: int) -> ReturnRequest:
        return_request = self._return_repo.get_by_id(return_id)
        if return_request is None:
            raise ReturnNotFound(f"Return {return_id} not found.")
        return return_request

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock(self, return_id: int) -> ReturnRequest:
        return_request = self._return_repo.get_for_update(return_id)
        if return_request is None:
            raise ReturnNotFound(f"Return {return_id} not found.")
        if return_request.is_terminal:
            logger.info(
                "returns.already_finalized",
                return_id=return_request.pk,
                status=return_request.status,
            )
            raise AlreadyFinalized(
                f"Return {return_request.pk} is already {return_request.status}."
            )
        return return_request

    def _change_status(
        self,
        return_request: ReturnRequest,
        new_status: str,
        now: Optional[datetime] = None,
    ) -> ReturnRequest:
        old_status = return_request.status
        if not return_request.can_transition_to(new_status):
            logger.info(
                "returns.invalid_transition",
                return_id=return_request.pk,
                current_status=old_status,
                new_status=new_status,
            )
            raise InvalidReturnTransition(
                f"Cannot move return {return_request.pk} from {old_status} "
                f"to {new_status}."
            )

        return_request.status = new_status
        setattr(return_request, STEP_TIMESTAMPS[new_status], now or timezone.now())
        return_request.add_domain_event(
            ReturnStatusChanged(
                aggregate_id=return_request.pk,
                old_status=old_status,
                new_status=new_status,
            )
        )
        self._return_repo.save(return_request)
        logger.info(
            "returns.status_updated",
            return_id=return_request.pk,
            old_status=old_status,
            new_status=new_status,
        )
        return return_request
