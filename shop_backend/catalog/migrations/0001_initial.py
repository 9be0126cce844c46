"""
======================================================
PATH: catalog/migrations/0001_initial.py
======================================================
MIGRATION: CATALOG (items, size variants, stock commits)
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="CatalogItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(db_index=True, max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[("draft", "Draft"), ("live", "Live"), ("archived", "Archived")],
                        db_index=True,
                        default="live",
                        max_length=16,
                    ),
                ),
                ("hsn_code", models.CharField(blank=True, default="", max_length=32)),
                ("weight_kg", models.DecimalField(decimal_places=3, default=Decimal("0.500"), max_digits=8)),
                ("length_cm", models.DecimalField(decimal_places=2, default=Decimal("0.50"), max_digits=8)),
                ("breadth_cm", models.DecimalField(decimal_places=2, default=Decimal("0.50"), max_digits=8)),
                ("height_cm", models.DecimalField(decimal_places=2, default=Decimal("0.50"), max_digits=8)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="catalog_cat_status_6c1f0e_idx"),
                    models.Index(fields=["name"], name="catalog_cat_name_8a2b4d_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockCommit",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("idempotency_key", models.CharField(max_length=255, unique=True)),
                ("order_id", models.UUIDField(db_index=True)),
                ("payment_id", models.CharField(max_length=128)),
                (
                    "lines",
                    models.JSONField(
                        default=list,
                        help_text='Committed lines: [{"sku": "...", "quantity": n}, ...]',
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="SizeVariant",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("size", models.CharField(max_length=32)),
                ("sku", models.CharField(db_index=True, max_length=128, unique=True)),
                ("regular_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("sale_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("stock", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="size_variants",
                        to="catalog.catalogitem",
                    ),
                ),
            ],
            options={
                "ordering": ["item", "size"],
                "constraints": [
                    models.UniqueConstraint(fields=("item", "size"), name="uniq_size_per_catalog_item"),
                ],
            },
        ),
    ]
