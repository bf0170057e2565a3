import django_filters

from .models import Order


class OrderFilter(django_filters.FilterSet):
    """
    Filters for the order list.

    ``status`` accepts a comma separated list (``?status=SENT,IN_PROGRESS``);
    ``is_open`` narrows to orders that are neither CLOSED nor VOID.
    """

    status = django_filters.BaseInFilter(field_name="status", lookup_expr="in")
    is_open = django_filters.BooleanFilter(method="filter_is_open")
    opened_at__gte = django_filters.DateTimeFilter(field_name="opened_at", lookup_expr="gte")
    opened_at__lte = django_filters.DateTimeFilter(field_name="opened_at", lookup_expr="lte")
    closed_at__gte = django_filters.DateTimeFilter(field_name="closed_at", lookup_expr="gte")
    closed_at__lte = django_filters.DateTimeFilter(field_name="closed_at", lookup_expr="lte")

    class Meta:
        model = Order
        fields = ["location", "order_type", "server", "table", "business_date", "order_number"]

    def filter_is_open(self, queryset, name, value):
        if value is None:
            return queryset
        if value:
            return queryset.exclude(status__in=Order.TERMINAL_STATUSES)
        return queryset.filter(status__in=Order.TERMINAL_STATUSES)
