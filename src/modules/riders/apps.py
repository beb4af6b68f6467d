from django.apps import AppConfig


class RidersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.riders"
    label = "riders"
