# orders/models/order_line_item.py

import uuid
from decimal import Decimal

from django.db import models

from .order import Order


class OrderLineItem(models.Model):
    """
    Frozen snapshot of one purchased line.

    GUARANTEES:
    - unit price / price type / discount / savings are captured at
      order-creation time and NEVER recomputed from the live catalog
    - the snapshot is immutable once persisted (save() refuses changes)
    - is_promo_bonus lines are BOGO additions; their value is credited back
      through Order.discount_amount
    """

    PRICE_TYPE_REGULAR = "regular"
    PRICE_TYPE_SALE = "sale"

    PRICE_TYPE_CHOICES = [
        (PRICE_TYPE_REGULAR, "Regular"),
        (PRICE_TYPE_SALE, "Sale"),
    ]

    _FROZEN_FIELDS = (
        "order_id",
        "sku",
        "size",
        "quantity",
        "unit_price",
        "regular_price",
        "price_type",
        "discount_percentage",
        "savings_amount",
        "line_total",
        "is_promo_bonus",
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
    )

    catalog_item = models.ForeignKey(
        "catalog.CatalogItem",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    size_variant = models.ForeignKey(
        "catalog.SizeVariant",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    item_name = models.CharField(max_length=255)
    sku = models.CharField(max_length=128)
    size = models.CharField(max_length=32)
    quantity = models.PositiveIntegerField()

    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    regular_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    price_type = models.CharField(max_length=16, choices=PRICE_TYPE_CHOICES)
    discount_percentage = models.PositiveIntegerField(default=0)
    savings_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    line_total = models.DecimalField(max_digits=12, decimal_places=2)

    is_promo_bonus = models.BooleanField(default=False)

    # package metrics snapshot (for carrier booking)
    weight_kg = models.DecimalField(max_digits=8, decimal_places=3, default=Decimal("0.500"))
    length_cm = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal("0.50"))
    breadth_cm = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal("0.50"))
    height_cm = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal("0.50"))

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "sku"]
        indexes = [
            models.Index(fields=["sku"], name="orders_orde_sku_4f2c7b_idx"),
        ]

    def __str__(self):
        return f"{self.sku} x{self.quantity} @ {self.unit_price}"

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding:
            previous = OrderLineItem.objects.filter(pk=self.pk).first()
            if previous is not None:
                for field in self._FROZEN_FIELDS:
                    if getattr(self, field) != getattr(previous, field):
                        raise ValueError(
                            f"Order line items are frozen. Field '{field}' cannot be changed."
                        )
        super().save(*args, **kwargs)
