# PATH: shipping/serializers.py

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers


class ServiceabilityRequestSerializer(serializers.Serializer):
    delivery_pincode = serializers.RegexField(r"^\d{6}$")
    weight = serializers.DecimalField(
        max_digits=8,
        decimal_places=3,
        min_value=Decimal("0.001"),
        required=False,
        default=Decimal("0.5"),
    )


class CourierOptionSerializer(serializers.Serializer):
    courier_company_id = serializers.CharField()
    courier_name = serializers.CharField()
    rate = serializers.DecimalField(max_digits=12, decimal_places=2)
    estimated_delivery_days = serializers.CharField(allow_blank=True)
    etd = serializers.CharField(allow_blank=True)


class ServiceabilityResponseSerializer(serializers.Serializer):
    pickup_pincode = serializers.CharField()
    delivery_pincode = serializers.CharField()
    serviceable = serializers.BooleanField()
    couriers = CourierOptionSerializer(many=True)
