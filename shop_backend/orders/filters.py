# orders/filters.py

"""
Ops triage filters for the staff shipment list.
"""

import django_filters

from orders.models import Order


class OrderShipmentFilter(django_filters.FilterSet):
    shipping_status = django_filters.MultipleChoiceFilter(choices=Order.SHIPPING_STATUS_CHOICES)
    payment_status = django_filters.ChoiceFilter(choices=Order.PAYMENT_STATUS_CHOICES)
    order_no = django_filters.CharFilter(lookup_expr="icontains")
    tracking_code = django_filters.CharFilter()
    created_from = django_filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_to = django_filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Order
        fields = [
            "shipping_status",
            "payment_status",
            "order_no",
            "tracking_code",
            "created_from",
            "created_to",
        ]
