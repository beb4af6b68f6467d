from django.apps import AppConfig


class LedgerConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.ledger"
    label = "ledger"

    def ready(self) -> None:
        from modules.ledger.events import PayoutRequested, SettlementPaid
        from modules.ledger.handlers import (
            payout_requested_handler,
            settlement_paid_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(PayoutRequested, payout_requested_handler)
        event_bus.subscribe(SettlementPaid, settlement_paid_handler)
