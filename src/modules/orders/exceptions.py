"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) translates them into HTTP responses through
``modules.core.http.domain_error_response``.
"""

from __future__ import annotations

from shared.domain.exceptions import DomainError, NotFound, StateConflict


class OrderNotFound(NotFound):
    """The requested order does not exist or is not visible to the caller."""


class InvalidDeliveryTransition(StateConflict):
    """The status change is not in the transition table."""

    code = "invalid_transition"


class NotCancelable(StateConflict):
    """Cancellation is only allowed while the order is ``new``."""

    code = "not_cancelable"


class InvalidPricing(DomainError):
    """The pricing snapshot does not add up or would be negative."""

    code = "invalid_pricing"


class OutOfDeliveryRadius(DomainError):
    """The delivery address is farther from the shop than the service radius."""

    code = "out_of_delivery_radius"
