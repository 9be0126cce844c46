# promotions/models/promo_code.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class PromoCode(models.Model):
    """
    Discount code applied at order-intent time.

    USAGE COUNTER:
    - current_uses is incremented when an order using the code is PAID
      and decremented on cancellation / return.
    - It is only ever changed with F() expressions (see promo_evaluator).
    - max_uses == 0 means unlimited; per_user_limit == 0 means unlimited.
    """

    TYPE_PERCENTAGE = "percentage"
    TYPE_FIXED = "fixed"
    TYPE_FREE_SHIPPING = "free_shipping"
    TYPE_BOGO = "bogo"

    TYPE_CHOICES = [
        (TYPE_PERCENTAGE, "Percentage"),
        (TYPE_FIXED, "Fixed amount"),
        (TYPE_FREE_SHIPPING, "Free shipping"),
        (TYPE_BOGO, "Buy one get one"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(max_length=64, unique=True, db_index=True)
    title = models.CharField(max_length=255, blank=True, default="")
    description = models.TextField(blank=True, default="")

    discount_type = models.CharField(max_length=32, choices=TYPE_CHOICES)
    discount_value = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    min_order_value = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    max_discount_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Cap for percentage discounts. Empty = no cap.",
    )

    start_date = models.DateTimeField()
    end_date = models.DateTimeField()

    max_uses = models.PositiveIntegerField(default=0)
    current_uses = models.PositiveIntegerField(default=0)
    per_user_limit = models.PositiveIntegerField(default=1)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.code

    def clean(self):
        if self.discount_value is not None and Decimal(self.discount_value) < 0:
            raise ValidationError("discount_value cannot be negative")
        if (
            self.discount_type == self.TYPE_PERCENTAGE
            and Decimal(self.discount_value or 0) > Decimal("100")
        ):
            raise ValidationError("percentage discount cannot exceed 100")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError("end_date must be after start_date")

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        super().save(*args, **kwargs)
