import django_filters

from modules.orders.constants import OrderStatus
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    """Filters for the order listing.

    ``status`` filters on ``current_status_value``, the latest ledger
    status annotated by ``OrderDjangoRepository.list``.
    """

    status = django_filters.ChoiceFilter(
        field_name="current_status_value", choices=OrderStatus.choices
    )
    customer = django_filters.UUIDFilter(field_name="customer_id")
    assigned_to = django_filters.UUIDFilter(field_name="assigned_to_id")
    tracking_code = django_filters.CharFilter(
        field_name="tracking_code", lookup_expr="iexact"
    )
    start_date = django_filters.DateFilter(
        field_name="order_date", lookup_expr="date__gte"
    )
    end_date = django_filters.DateFilter(field_name="order_date", lookup_expr="date__lte")
    is_active = django_filters.BooleanFilter(field_name="is_active")

    class Meta:
        model = Order
        fields = [
            "status",
            "customer",
            "assigned_to",
            "tracking_code",
            "start_date",
            "end_date",
            "is_active",
        ]
