# catalog/models/stock_commit.py

import uuid

from django.db import models


class StockCommit(models.Model):
    """
    Idempotency record for a committed inventory decrement.

    One row per (order, payment). The unique idempotency_key
    ("<order_id>:<payment_id>") guarantees an order's stock is decremented
    exactly once, even when payment verification is replayed.

    order_id is stored as a plain UUID so catalog does not depend on orders.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    idempotency_key = models.CharField(max_length=255, unique=True)
    order_id = models.UUIDField(db_index=True)
    payment_id = models.CharField(max_length=128)

    lines = models.JSONField(
        default=list,
        help_text='Committed lines: [{"sku": "...", "quantity": n}, ...]',
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.idempotency_key
