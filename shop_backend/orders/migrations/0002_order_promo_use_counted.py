"""
======================================================
PATH: orders/migrations/0002_order_promo_use_counted.py
======================================================
MIGRATION: ORDERS (track whether a paid order counted a promo use)
"""

from __future__ import annotations

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="order",
            name="promo_use_counted",
            field=models.BooleanField(default=False),
        ),
    ]
