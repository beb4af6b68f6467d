"""Exception families shared by the bounded contexts.

Each module raises its own exception classes (``modules.<app>.exceptions``)
and derives them from one of these bases.  The API layer maps a base to an
HTTP status once instead of listing every concrete error.
"""

from __future__ import annotations


class DomainError(Exception):
    """Root of every business rule violation."""

    code = "domain_error"


class NotFound(DomainError):
    """The addressed aggregate does not exist (or is not visible to the caller)."""

    code = "not_found"


class StateConflict(DomainError):
    """The operation is not allowed in the aggregate's current state.

    Expected in normal operation (double taps, stale screens, races) and
    logged at info level.
    """

    code = "state_conflict"


class ActorNotAllowed(DomainError):
    """The caller is not the party allowed to perform this operation."""

    code = "not_allowed"


class IntegrityViolation(DomainError):
    """Stored data contradicts an invariant.  Never auto-corrected."""

    code = "integrity_violation"
