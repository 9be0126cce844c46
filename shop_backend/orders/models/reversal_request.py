# orders/models/reversal_request.py

import uuid
from decimal import Decimal

from django.db import models

from .order import Order


class ReversalRequest(models.Model):
    """
    Return or exchange of a delivered order.

    - One per order (OneToOne)
    - Only creatable while order.shipping_status == delivered and inside the
      return window measured from order.delivered_at
    - Return: reverse pickup + refund of the order total (if paid)
    - Exchange: reverse pickup + forward replacement (desired_size); no refund
    """

    KIND_RETURN = "return"
    KIND_EXCHANGE = "exchange"

    KIND_CHOICES = [
        (KIND_RETURN, "Return"),
        (KIND_EXCHANGE, "Exchange"),
    ]

    STATUS_REQUESTED = "requested"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.OneToOneField(
        Order,
        on_delete=models.PROTECT,
        related_name="reversal",
    )

    kind = models.CharField(max_length=16, choices=KIND_CHOICES)
    status = models.CharField(max_length=32, default=STATUS_REQUESTED)
    rma_number = models.CharField(max_length=128, unique=True)
    reason = models.TextField()
    images = models.JSONField(default=list, blank=True)
    desired_size = models.CharField(max_length=32, blank=True, default="")

    # reverse leg (pickup from customer)
    return_carrier_order_id = models.CharField(max_length=128, blank=True, default="")
    return_shipment_id = models.CharField(max_length=128, blank=True, default="")
    return_tracking_code = models.CharField(max_length=128, blank=True, default="")
    return_label_url = models.URLField(blank=True, default="")

    # forward leg (exchange only)
    forward_reference = models.CharField(max_length=128, blank=True, default="")
    forward_carrier_order_id = models.CharField(max_length=128, blank=True, default="")
    forward_shipment_id = models.CharField(max_length=128, blank=True, default="")
    forward_tracking_code = models.CharField(max_length=128, blank=True, default="")

    # refund (return only)
    refund_id = models.CharField(max_length=128, blank=True, default="")
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    refund_status = models.CharField(max_length=32, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.rma_number} ({self.kind})"
