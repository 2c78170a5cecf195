from django_filters import rest_framework as filters

from .models import StockReservation


class StockReservationFilterSet(filters.FilterSet):
    variant = filters.NumberFilter(field_name="variant_id")
    order = filters.NumberFilter(field_name="order_id")
    state = filters.ChoiceFilter(choices=StockReservation.STATE_CHOICES)
    expires_before = filters.IsoDateTimeFilter(field_name="expires_at", lookup_expr="lt")

    class Meta:
        model = StockReservation
        fields = ["variant", "order", "state", "expires_before"]
