# catalog/models/item.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class CatalogItem(models.Model):
    """
    A sellable catalog item (style). Prices and stock live on SizeVariant.

    PURCHASABILITY:
    - Only LIVE items can be ordered.
    - DRAFT / ARCHIVED items stay visible to order history but reject new intents.

    PACKAGE METRICS:
    - weight/dimensions feed the carrier booking payload.
    - Missing values fall back to the shipping defaults (0.5 kg / 0.5 cm floor).
    """

    STATUS_DRAFT = "draft"
    STATUS_LIVE = "live"
    STATUS_ARCHIVED = "archived"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_LIVE, "Live"),
        (STATUS_ARCHIVED, "Archived"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255, db_index=True)
    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_LIVE,
        db_index=True,
    )

    hsn_code = models.CharField(max_length=32, blank=True, default="")

    weight_kg = models.DecimalField(
        max_digits=8, decimal_places=3, default=Decimal("0.500")
    )
    length_cm = models.DecimalField(
        max_digits=8, decimal_places=2, default=Decimal("0.50")
    )
    breadth_cm = models.DecimalField(
        max_digits=8, decimal_places=2, default=Decimal("0.50")
    )
    height_cm = models.DecimalField(
        max_digits=8, decimal_places=2, default=Decimal("0.50")
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="catalog_cat_status_6c1f0e_idx"),
            models.Index(fields=["name"], name="catalog_cat_name_8a2b4d_idx"),
        ]

    def __str__(self):
        return self.name

    @property
    def is_purchasable(self) -> bool:
        return self.status == self.STATUS_LIVE

    def clean(self):
        for field in ("weight_kg", "length_cm", "breadth_cm", "height_cm"):
            value = getattr(self, field)
            if value is not None and Decimal(value) < Decimal("0"):
                raise ValidationError(f"{field} cannot be negative")
