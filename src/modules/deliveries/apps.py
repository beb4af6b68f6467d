from django.apps import AppConfig


class DeliveriesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.deliveries"
    label = "deliveries"

    def ready(self) -> None:
        from modules.deliveries.events import RiderAssigned, RiderReassigned
        from modules.deliveries.handlers import (
            rider_assigned_handler,
            rider_reassigned_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(RiderAssigned, rider_assigned_handler)
        event_bus.subscribe(RiderReassigned, rider_reassigned_handler)
