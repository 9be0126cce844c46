# shipping/apps.py

"""
SHIPPING APP CONFIG

Carrier aggregator integration (no models):
- carrier port + Shiprocket-style HTTP adapter + in-memory fake
- process-wide auth token provider (TTL + single-flight refresh)
- courier serviceability endpoint
"""

from django.apps import AppConfig


class ShippingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "shipping"
    verbose_name = "Shipping"
