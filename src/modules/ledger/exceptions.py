"""COD ledger exceptions."""

from __future__ import annotations

from shared.domain.exceptions import IntegrityViolation, NotFound, StateConflict


class InsufficientBatch(StateConflict):
    """Fewer unsettled COD records than the payout batch size."""

    code = "insufficient_batch"


class AlreadyFinalized(StateConflict):
    """The settlement has already been recorded as paid."""

    code = "already_finalized"


class SettlementNotFound(NotFound):
    """The settlement does not exist."""


class LedgerIntegrityError(IntegrityViolation):
    """Ledger rows contradict each other.  Requires manual reconciliation."""

    code = "ledger_integrity"
