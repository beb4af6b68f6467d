from django.urls import path

from modules.core.views import MeView, health_check

urlpatterns = [
    path("health", health_check, name="health_check"),
    path("api/v1/me/", MeView.as_view(), name="me"),
]
