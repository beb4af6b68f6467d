"""Return workflow exceptions."""

from __future__ import annotations

from shared.domain.exceptions import ActorNotAllowed, NotFound, StateConflict


class NotEligible(StateConflict):
    """The order cannot be returned (not delivered, window closed, open return)."""

    code = "not_eligible"


class AlreadyFinalized(StateConflict):
    """The return is already completed or rejected."""

    code = "already_finalized"


class InvalidReturnTransition(StateConflict):
    code = "invalid_return_transition"


class InvalidRefund(StateConflict):
    """Refund amount is not positive or exceeds the order total."""

    code = "invalid_refund"


class ReturnNotFound(NotFound):
    """The return does not exist or is not visible to the caller."""


class NotPickupRider(ActorNotAllowed):
    """Another rider is handling this return."""

    code = "not_pickup_rider"
