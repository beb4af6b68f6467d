"""Delivery assignment exceptions."""

from __future__ import annotations

from shared.domain.exceptions import ActorNotAllowed, NotFound, StateConflict


class AlreadyAssigned(StateConflict):
    """Another rider holds the active assignment for this order."""

    code = "already_assigned"


class NotAssignedRider(ActorNotAllowed):
    """The caller does not hold the active assignment for this order."""

    code = "not_assigned_rider"


class OfferUnavailable(StateConflict):
    """The order is no longer a ``new`` offer the rider can accept or reject."""

    code = "offer_unavailable"


class AssignmentNotFound(NotFound):
    """No assignment links this rider to the order."""
