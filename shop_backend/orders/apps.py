# orders/apps.py

"""
ORDERS APP CONFIG

Order fulfillment pipeline:
- order intent -> payment verification -> inventory commit
- background shipment orchestration (durable job table + worker)
- retry / cancellation / returns & exchanges
"""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"
    verbose_name = "Orders & Fulfillment"
