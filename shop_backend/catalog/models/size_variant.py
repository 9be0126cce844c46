# catalog/models/size_variant.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from .item import CatalogItem


class SizeVariant(models.Model):
    """
    Per-size purchasable record of a CatalogItem.

    PRICE MODEL:
    - regular_price: list price
    - sale_price: optional; when > 0 it is the effective price
    - the effective price is derived by catalog.services.pricing (never stored)

    STOCK MODEL (IMPORTANT):
    - stock is a plain counter per SKU
    - it is mutated ONLY by catalog.services.inventory.commit_stock
      (conditional decrement, never below zero)
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    item = models.ForeignKey(
        CatalogItem,
        on_delete=models.CASCADE,
        related_name="size_variants",
    )

    size = models.CharField(max_length=32)
    sku = models.CharField(max_length=128, unique=True, db_index=True)

    regular_price = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    sale_price = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    stock = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["item", "size"]
        constraints = [
            models.UniqueConstraint(
                fields=["item", "size"], name="uniq_size_per_catalog_item"
            ),
        ]

    def __str__(self):
        return f"{self.item.name} [{self.size}] ({self.sku})"

    def clean(self):
        if self.regular_price is not None and Decimal(self.regular_price) < 0:
            raise ValidationError("regular_price cannot be negative")
        if self.sale_price is not None and Decimal(self.sale_price) < 0:
            raise ValidationError("sale_price cannot be negative")
