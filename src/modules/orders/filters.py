import django_filters

from modules.orders.constants import OrderStatus
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    """Optional list filters.

    Used directly by the repository (not as a DRF filter backend), so an
    invalid value drops out of ``cleaned_data`` and is ignored instead of
    failing the request.
    """

    status = django_filters.ChoiceFilter(
        field_name="status", choices=OrderStatus.choices
    )
    start_date = django_filters.DateFilter(
        field_name="created_at", lookup_expr="date__gte"
    )
    end_date = django_filters.DateFilter(
        field_name="created_at", lookup_expr="date__lte"
    )
    min_total = django_filters.NumberFilter(
        field_name="total_amount", lookup_expr="gte"
    )
    max_total = django_filters.NumberFilter(
        field_name="total_amount", lookup_expr="lte"
    )

    class Meta:
        model = Order
        fields = ["status", "start_date", "end_date", "min_total", "max_total"]
