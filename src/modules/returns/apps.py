from django.apps import AppConfig


class ReturnsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.returns"
    label = "returns"

    def ready(self) -> None:
        from modules.returns.events import (
            ReturnRefunded,
            ReturnRequested,
            ReturnStatusChanged,
        )
        from modules.returns.handlers import (
            return_refunded_handler,
            return_requested_handler,
            return_status_changed_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(ReturnRequested, return_requested_handler)
        event_bus.subscribe(ReturnStatusChanged, return_status_changed_handler)
        event_bus.subscribe(ReturnRefunded, return_refunded_handler)
