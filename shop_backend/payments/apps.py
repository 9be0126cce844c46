# payments/apps.py

"""
PAYMENTS APP CONFIG

Payment gateway integration (no models):
- gateway port + Razorpay-style HTTP adapter + in-memory fake
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
