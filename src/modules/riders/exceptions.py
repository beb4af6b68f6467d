"""Rider exceptions."""

from __future__ import annotations

from shared.domain.exceptions import ActorNotAllowed, NotFound


class RiderNotFound(NotFound):
    """The rider does not exist."""


class NotARider(ActorNotAllowed):
    """The authenticated user has no active rider profile."""

    code = "not_a_rider"
