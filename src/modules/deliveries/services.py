"""Delivery assignment service layer.

Every command locks the order row first (``OrderService.lock_order``) and
then checks the assignment, so two riders tapping "accept" together, or a
rider delivering while ops reassigns, are serialized by the database.

Business rules enforced:
- At most one active assignment per order; a different rider gets
  ``AlreadyAssigned``, the same rider's repeated accept is a no-op.
- Only the rider holding the active assignment may depart, deliver, set an
  ETA or fail the order.  Staff may fail any non-terminal order and replace
  the rider.
- Entering ``delivered`` records the COD collection once; entering
  ``failed`` records nothing.  Both close the active assignment.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, List, Optional

import structlog
from django.db import models, transaction
from django.utils import timezone

from modules.deliveries.constants import AssignmentEndReason
from modules.deliveries.dtos import LiveLocationDTO, RiderStatsDTO
from modules.deliveries.events import RiderAssigned, RiderReassigned
from modules.deliveries.exceptions import (
    AlreadyAssigned,
    NotAssignedRider,
    OfferUnavailable,
)
from modules.orders.constants import (
    IN_TRANSIT_STATES,
    DeliverySpeed,
    DeliveryStatus,
)
from modules.orders.exceptions import InvalidDeliveryTransition
from modules.riders.exceptions import RiderNotFound
from shared.domain.periods import resolve_window

if TYPE_CHECKING:
    from modules.deliveries.dtos import FailDeliveryDTO, PromiseEtaDTO, RejectOfferDTO
    from modules.deliveries.models import DeliveryAssignment
    from modules.deliveries.repositories.interfaces import IAssignmentRepository
    from modules.deliveries.tracking import LiveLocationRelay
    from modules.ledger.services import CODLedgerService
    from modules.orders.models import Order
    from modules.orders.services import OrderService
    from modules.riders.models import RiderProfile
    from modules.riders.repositories.interfaces import IRiderRepository
    from shared.domain.periods import DateWindow

logger = structlog.get_logger(__name__)

HISTORY_REASONS = {
    DeliveryStatus.DELIVERED: [AssignmentEndReason.DELIVERED],
    DeliveryStatus.FAILED: [AssignmentEndReason.FAILED],
}


class DeliveryService:
    """Application service for the rider and operations delivery surfaces.

    Collaborators are injected (DIP): status changes go through
    ``OrderService.transition``, COD bookkeeping through
    ``CODLedgerService`` and live samples through ``LiveLocationRelay``.
    """

    def __init__(
        self,
        order_service: OrderService,
        ledger_service: CODLedgerService,
        assignment_repository: IAssignmentRepository,
        rider_repository: IRiderRepository,
        relay: LiveLocationRelay,
    ) -> None:
        self._orders = order_service
        self._ledger = ledger_service
        self._assignment_repo = assignment_repository
        self._rider_repo = rider_repository
        self._relay = relay

    # ------------------------------------------------------------------
    # Offers
    # ------------------------------------------------------------------

    @transaction.atomic
    def accept(self, order_id: int, rider: RiderProfile) -> Order:
        """Claim a ``new`` order for *rider* and move it to ``accepted``.

        Raises:
            OrderNotFound: order does not exist.
            AlreadyAssigned: another rider holds the order.
            OfferUnavailable: the order is no longer ``new``.
        """
        order = self._orders.lock_order(order_id)
        log = logger.bind(order_id=order.pk, rider_id=rider.pk)

        active = self._assignment_repo.active_for_order(order.pk)
        if active is not None:
            if active.rider_id == rider.pk:
                log.info("delivery.accept_repeated")
                return order
            log.info("delivery.already_assigned", holder_id=active.rider_id)
            raise AlreadyAssigned(f"Order #{order.pk} is already assigned.")

        if order.delivery_status != DeliveryStatus.NEW:
            log.info("delivery.offer_unavailable", status=order.delivery_status)
            raise OfferUnavailable(
                f"Order #{order.pk} is no longer available ({order.delivery_status})."
            )

        self._assignment_repo.create(order, rider.pk, assigned_by_id=rider.user_id)
        order.add_domain_event(RiderAssigned(aggregate_id=order.pk, rider_id=rider.pk))
        self._orders.transition(
            order,
            DeliveryStatus.ACCEPTED,
            actor_id=rider.user_id,
            notes=f"Accepted by {rider.name}",
        )
        log.info("delivery.accepted")
        return order

    @transaction.atomic
    def reject_offer(
        self, order_id: int, rider: RiderProfile, dto: RejectOfferDTO
    ) -> None:
        """Hide a ``new`` order from *rider*'s list.

        Raises:
            OfferUnavailable: the order is no longer ``new``.
        """
        order = self._orders.lock_order(order_id)
        if order.delivery_status != DeliveryStatus.NEW:
            raise OfferUnavailable(
                f"Order #{order.pk} is no longer available ({order.delivery_status})."
            )
        self._assignment_repo.record_rejection(order.pk, rider.pk, dto.reason)

    # ------------------------------------------------------------------
    # Rider progress
    # ------------------------------------------------------------------

    @transaction.atomic
    def depart(self, order_id: int, rider: RiderProfile) -> Order:
        """Rider left the shop: ``accepted`` -> ``enroute``."""
        order, _ = self._held_order(order_id, rider)
        return self._orders.transition(
            order, DeliveryStatus.ENROUTE, actor_id=rider.user_id, notes="Picked up"
        )

    @transaction.atomic
    def on_the_way(self, order_id: int, rider: RiderProfile) -> Order:
        """Rider is heading to the customer: -> ``onway``."""
        order, _ = self._held_order(order_id, rider)
        return self._orders.transition(
            order, DeliveryStatus.ONWAY, actor_id=rider.user_id, notes="On the way"
        )

    @transaction.atomic
    def promise_eta(
        self, order_id: int, rider: RiderProfile, dto: PromiseEtaDTO
    ) -> DeliveryAssignment:
        _, assignment = self._held_order(order_id, rider)
        assignment.promised_eta_minutes = dto.minutes
        assignment.save(update_fields=["promised_eta_minutes"])
        logger.info(
            "delivery.eta_promised",
            order_id=assignment.order_id,
            rider_id=rider.pk,
            minutes=dto.minutes,
        )
        return assignment

    @transaction.atomic
    def mark_delivered(self, order_id: int, rider: RiderProfile) -> Order:
        """Complete the delivery and book the COD collection.

        A repeated call by the rider who delivered returns the order
        unchanged; the ledger call is idempotent, so no second record
        appears.

        Raises:
            NotAssignedRider: the caller does not hold the order.
            InvalidDeliveryTransition: the order has not left the shop.
            LedgerIntegrityError: an existing COD record disagrees.
        """
        order = self._orders.lock_order(order_id)
        log = logger.bind(order_id=order.pk, rider_id=rider.pk)

        if order.is_delivered:
            delivered_by = self._assignment_repo.ended_for_order(
                order.pk, AssignmentEndReason.DELIVERED
            )
            if delivered_by is None or delivered_by.rider_id != rider.pk:
                raise NotAssignedRider(f"Order #{order.pk} was not delivered by you.")
            if order.is_cod:
                self._ledger.record_collection(order, rider.pk)
            log.info("delivery.deliver_repeated")
            return order

        self._require_holder(order, rider)
        self._orders.transition(
            order,
            DeliveryStatus.DELIVERED,
            actor_id=rider.user_id,
            notes=f"Delivered by {rider.name}",
        )
        closed = self._assignment_repo.close_active(
            order.pk, AssignmentEndReason.DELIVERED, order.delivered_at
        )
        if order.is_cod:
            self._ledger.record_collection(order, rider.pk)
        self._forget_on_commit(closed)
        log.info("delivery.delivered", cod=order.is_cod)
        return order

    @transaction.atomic
    def mark_failed(
        self,
        order_id: int,
        dto: FailDeliveryDTO,
        actor_id: int,
        rider: Optional[RiderProfile] = None,
    ) -> Order:
        """Fail the order with a reason.

        With *rider* the caller must hold the order and it must be in
        transit; without one the call comes from operations and any
        non-terminal order may be failed.

        Raises:
            NotAssignedRider: the rider does not hold the order.
            InvalidDeliveryTransition: the order is already terminal.
        """
        order = self._orders.lock_order(order_id)
        if rider is not None:
            self._require_holder(order, rider)
            if order.delivery_status not in IN_TRANSIT_STATES:
                raise InvalidDeliveryTransition(
                    f"Order #{order.pk} is not in transit ({order.delivery_status})."
                )

        self._orders.transition(
            order, DeliveryStatus.FAILED, actor_id=actor_id, reason=dto.reason_text
        )
        closed = self._assignment_repo.close_active(
            order.pk, AssignmentEndReason.FAILED, timezone.now()
        )
        self._forget_on_commit(closed)
        logger.info(
            "delivery.failed",
            order_id=order.pk,
            rider_id=rider.pk if rider else None,
            reason=dto.reason,
        )
        return order

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @transaction.atomic
    def reassign(self, order_id: int, rider_id: int, actor_id: int) -> Order:
        """Make *rider_id* the order's rider, replacing any current one.

        A ``new`` order is moved to ``accepted``; an order already in transit
        keeps its status.

        Raises:
            RiderNotFound: rider does not exist or is inactive.
            InvalidDeliveryTransition: the order is terminal.
        """
        order = self._orders.lock_order(order_id)
        rider = self._rider_repo.get_by_id(rider_id)
        if rider is None or not rider.is_active:
            raise RiderNotFound(f"Rider {rider_id} not found.")
        if order.is_terminal:
            raise InvalidDeliveryTransition(
                f"Order #{order.pk} is {order.delivery_status}; it cannot be reassigned."
            )

        log = logger.bind(order_id=order.pk, rider_id=rider.pk)
        active = self._assignment_repo.active_for_order(order.pk)
        if active is not None and active.rider_id == rider.pk:
            return order

        previous_rider_id = None
        if active is not None:
            previous_rider_id = active.rider_id
            closed = self._assignment_repo.close_active(
                order.pk, AssignmentEndReason.REASSIGNED, timezone.now()
            )
            self._forget_on_commit(closed)

        self._assignment_repo.create(order, rider.pk, assigned_by_id=actor_id)
        if previous_rider_id is None:
            order.add_domain_event(
                RiderAssigned(aggregate_id=order.pk, rider_id=rider.pk)
            )
        else:
            order.add_domain_event(
                RiderReassigned(
                    aggregate_id=order.pk,
                    previous_rider_id=previous_rider_id,
                    rider_id=rider.pk,
                )
            )

        if order.delivery_status == DeliveryStatus.NEW:
            self._orders.transition(
                order,
                DeliveryStatus.ACCEPTED,
                actor_id=actor_id,
                notes=f"Assigned to {rider.name}",
            )
        else:
            self._orders.save(order)
        log.info("delivery.reassigned", previous_rider_id=previous_rider_id)
        return order

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def record_location(
        self, rider: RiderProfile, latitude: Decimal, longitude: Decimal
    ) -> int:
        return self._relay.record_location(rider, latitude, longitude)

    def live_location(
        self, order_id: int, customer_id: Optional[int] = None
    ) -> LiveLocationDTO:
        order = self._orders.get_order(order_id, customer_id=customer_id)
        return self._relay.poll(order)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def rider_orders(self, rider: RiderProfile) -> Dict[str, Dict[str, List[Order]]]:
        """The rider's order board, fast orders listed before normal ones.

        ``active`` holds the orders the rider is carrying; ``new`` the
        open offers minus the ones this rider declined.
        """
        active = self._orders.list_orders(
            {"assignments__rider_id": rider.pk, "assignments__is_active": True}
        )
        offers = self._orders.list_orders(
            {"delivery_status": DeliveryStatus.NEW}
        ).exclude(pk__in=self._assignment_repo.rejected_order_ids(rider.pk))
        return {
            "active": _by_speed(active),
            "new": _by_speed(offers),
        }

    def history(
        self, rider: RiderProfile, status: Optional[str] = None
    ) -> models.QuerySet:
        """Closed assignments of the rider, delivered and/or failed."""
        reasons = HISTORY_REASONS.get(
            status, [AssignmentEndReason.DELIVERED, AssignmentEndReason.FAILED]
        )
        return self._assignment_repo.ended_for_rider(rider.pk, reasons)

    def rider_stats(self, rider: RiderProfile, day: Optional[date] = None) -> RiderStatsDTO:
        now = timezone.localtime()
        day = day or now.date()
        window = resolve_window(now, date_from=day, date_to=day)
        return RiderStatsDTO(
            day=day,
            delivered=self._assignment_repo.ended_for_rider(
                rider.pk, [AssignmentEndReason.DELIVERED], day
            ).count(),
            failed=self._assignment_repo.ended_for_rider(
                rider.pk, [AssignmentEndReason.FAILED], day
            ).count(),
            rejected=self._assignment_repo.rejections_on(rider.pk, day),
            cod_total=self._ledger.collected_on(rider.pk, window),
        )

    def rider_order_overview(
        self, rider_id: int, window: DateWindow, status: Optional[str] = None
    ) -> models.QuerySet:
        """Orders a rider has been assigned inside *window* (admin)."""
        if self._rider_repo.get_by_id(rider_id) is None:
            raise RiderNotFound(f"Rider {rider_id} not found.")
        queryset = (
            self._orders.list_orders({"assignments__rider_id": rider_id})
            .filter(**window.lookups("created_at"))
            .distinct()
        )
        if status in DeliveryStatus.values:
            queryset = queryset.filter(delivery_status=status)
        return queryset

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_holder(self, order: Order, rider: RiderProfile) -> DeliveryAssignment:
        assignment = self._assignment_repo.active_for_order(order.pk)
        if assignment is None or assignment.rider_id != rider.pk:
            logger.info(
                "delivery.not_assigned_rider", order_id=order.pk, rider_id=rider.pk
            )
            raise NotAssignedRider(f"Order #{order.pk} is not assigned to you.")
        return assignment

    def _held_order(self, order_id: int, rider: RiderProfile):
        order = self._orders.lock_order(order_id)
        return order, self._require_holder(order, rider)

    def _forget_on_commit(self, assignments: List[DeliveryAssignment]) -> None:
        if assignments:
            transaction.on_commit(lambda: self._relay.forget(assignments))


def _by_speed(queryset: models.QuerySet) -> Dict[str, List[Order]]:
    orders = list(queryset.order_by("created_at", "id"))
    return {
        DeliverySpeed.FAST.value: [o for o in orders if o.is_fast],
        DeliverySpeed.NORMAL.value: [o for o in orders if not o.is_fast],
    }
