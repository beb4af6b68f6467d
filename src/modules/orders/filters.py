import django_filters

from modules.orders.constants import DeliverySpeed, DeliveryStatus, PaymentMethod
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(
        field_name="delivery_status", choices=DeliveryStatus.choices
    )
    payment_method = django_filters.ChoiceFilter(choices=PaymentMethod.choices)
    speed = django_filters.ChoiceFilter(
        field_name="delivery_speed", choices=DeliverySpeed.choices
    )
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    class Meta:
        model = Order
        fields = ["status", "payment_method", "speed", "start_date", "end_date"]
