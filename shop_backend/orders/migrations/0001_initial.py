"""
======================================================
PATH: orders/migrations/0001_initial.py
======================================================
MIGRATION: ORDERS (order aggregate, frozen line items, shipment jobs,
return / exchange requests)
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


def _money(**kwargs):
    return models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12, **kwargs)


def _ref():
    return models.CharField(blank=True, default="", max_length=128)


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("catalog", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "order_no",
                    models.CharField(
                        blank=True,
                        help_text="System-generated public order number",
                        max_length=64,
                        unique=True,
                    ),
                ),
                ("subtotal_amount", _money()),
                ("savings_amount", _money()),
                ("tax_amount", _money()),
                ("tax_rate_percent", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
                ("shipping_amount", _money()),
                ("discount_amount", _money()),
                ("total_amount", _money()),
                ("currency", models.CharField(default="INR", max_length=8)),
                ("promo_code", models.CharField(blank=True, db_index=True, default="", max_length=64)),
                ("promo_discount_type", models.CharField(blank=True, default="", max_length=32)),
                (
                    "payment_status",
                    models.CharField(
                        choices=[("awaiting_payment", "Awaiting Payment"), ("paid", "Paid"), ("failed", "Failed")],
                        default="awaiting_payment",
                        max_length=32,
                    ),
                ),
                (
                    "order_status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("confirmed", "Confirmed"), ("cancelled", "Cancelled")],
                        default="pending",
                        max_length=32,
                    ),
                ),
                (
                    "shipping_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("shipped", "Shipped"),
                            ("retrying", "Retrying"),
                            ("failed", "Failed"),
                            ("awb_failed", "AWB Failed"),
                            ("permission_denied", "Permission Denied"),
                            ("delivered", "Delivered"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=32,
                    ),
                ),
                ("gateway", models.CharField(blank=True, default="", max_length=32)),
                ("gateway_order_id", models.CharField(blank=True, max_length=128, null=True, unique=True)),
                ("gateway_payment_id", _ref()),
                (
                    "refund_status",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("", "None"),
                            ("initiated", "Initiated"),
                            ("not_required", "Not Required"),
                            ("failed", "Failed"),
                        ],
                        default="",
                        max_length=32,
                    ),
                ),
                ("refund_id", _ref()),
                ("refund_amount", _money()),
                ("payment_error", models.TextField(blank=True, default="")),
                ("cancellation_reason", models.TextField(blank=True, default="")),
                ("delivery_address", models.JSONField(default=dict)),
                ("carrier_order_id", _ref()),
                ("shipment_id", _ref()),
                ("tracking_code", models.CharField(blank=True, db_index=True, default="", max_length=128)),
                ("courier_name", _ref()),
                ("courier_company_id", models.CharField(blank=True, default="", max_length=64)),
                ("freight_charge", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("expected_delivery_date", models.DateField(blank=True, null=True)),
                ("shipping_error", models.TextField(blank=True, default="")),
                ("carrier_error_details", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("shipping_started_at", models.DateTimeField(blank=True, null=True)),
                ("shipping_completed_at", models.DateTimeField(blank=True, null=True)),
                ("shipping_failed_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["payment_status"], name="orders_orde_payment_3b1e2a_idx"),
                    models.Index(fields=["shipping_status"], name="orders_orde_shippin_5d7c9f_idx"),
                    models.Index(fields=["created_at"], name="orders_orde_created_8e4a61_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderLineItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("item_name", models.CharField(max_length=255)),
                ("sku", models.CharField(max_length=128)),
                ("size", models.CharField(max_length=32)),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("regular_price", _money()),
                (
                    "price_type",
                    models.CharField(choices=[("regular", "Regular"), ("sale", "Sale")], max_length=16),
                ),
                ("discount_percentage", models.PositiveIntegerField(default=0)),
                ("savings_amount", _money()),
                ("line_total", models.DecimalField(decimal_places=2, max_digits=12)),
                ("is_promo_bonus", models.BooleanField(default=False)),
                ("weight_kg", models.DecimalField(decimal_places=3, default=Decimal("0.500"), max_digits=8)),
                ("length_cm", models.DecimalField(decimal_places=2, default=Decimal("0.50"), max_digits=8)),
                ("breadth_cm", models.DecimalField(decimal_places=2, default=Decimal("0.50"), max_digits=8)),
                ("height_cm", models.DecimalField(decimal_places=2, default=Decimal("0.50"), max_digits=8)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="orders.order",
                    ),
                ),
                (
                    "catalog_item",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="catalog.catalogitem",
                    ),
                ),
                (
                    "size_variant",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="catalog.sizevariant",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "sku"],
                "indexes": [
                    models.Index(fields=["sku"], name="orders_orde_sku_4f2c7b_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ShipmentJob",
            fields=[
                (
                    "order",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        primary_key=True,
                        related_name="shipment_job",
                        serialize=False,
                        to="orders.order",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("queued", "Queued"), ("running", "Running"), ("done", "Done"), ("failed", "Failed")],
                        default="queued",
                        max_length=16,
                    ),
                ),
                ("attempts", models.PositiveIntegerField(default=0)),
                ("available_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("locked_at", models.DateTimeField(blank=True, null=True)),
                ("locked_by", _ref()),
                ("last_error", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["available_at"],
                "indexes": [
                    models.Index(fields=["status", "available_at"], name="orders_ship_status_9a3d2e_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReversalRequest",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("kind", models.CharField(choices=[("return", "Return"), ("exchange", "Exchange")], max_length=16)),
                ("status", models.CharField(default="requested", max_length=32)),
                ("rma_number", models.CharField(max_length=128, unique=True)),
                ("reason", models.TextField()),
                ("images", models.JSONField(blank=True, default=list)),
                ("desired_size", models.CharField(blank=True, default="", max_length=32)),
                ("return_carrier_order_id", _ref()),
                ("return_shipment_id", _ref()),
                ("return_tracking_code", _ref()),
                ("return_label_url", models.URLField(blank=True, default="")),
                ("forward_reference", _ref()),
                ("forward_carrier_order_id", _ref()),
                ("forward_shipment_id", _ref()),
                ("forward_tracking_code", _ref()),
                ("refund_id", _ref()),
                ("refund_amount", _money()),
                ("refund_status", models.CharField(blank=True, default="", max_length=32)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reversal",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
