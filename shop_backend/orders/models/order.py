# orders/models/order.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

User = settings.AUTH_USER_MODEL


def generate_order_no() -> str:
    prefix = timezone.now().strftime("ORD%Y%m%d")
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


class Order(models.Model):
    """
    Aggregate root of the fulfillment pipeline.

    Three independent status axes:
    - payment_status:  awaiting_payment -> paid | failed
    - order_status:    pending -> confirmed | cancelled
    - shipping_status: see orders.services.shipping_lifecycle

    GUARANTEES:
    - Created ONLY by the order intent service (awaiting_payment / pending)
    - Money fields are server-computed snapshots; never recomputed from catalog
    - Never deleted: cancellation is a terminal state
    - Shipping fields are written under select_for_update (single writer)
    """

    PAYMENT_AWAITING = "awaiting_payment"
    PAYMENT_PAID = "paid"
    PAYMENT_FAILED = "failed"

    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_AWAITING, "Awaiting Payment"),
        (PAYMENT_PAID, "Paid"),
        (PAYMENT_FAILED, "Failed"),
    ]

    ORDER_PENDING = "pending"
    ORDER_CONFIRMED = "confirmed"
    ORDER_CANCELLED = "cancelled"

    ORDER_STATUS_CHOICES = [
        (ORDER_PENDING, "Pending"),
        (ORDER_CONFIRMED, "Confirmed"),
        (ORDER_CANCELLED, "Cancelled"),
    ]

    SHIPPING_PENDING = "pending"
    SHIPPING_PROCESSING = "processing"
    SHIPPING_SHIPPED = "shipped"
    SHIPPING_RETRYING = "retrying"
    SHIPPING_FAILED = "failed"
    SHIPPING_AWB_FAILED = "awb_failed"
    SHIPPING_PERMISSION_DENIED = "permission_denied"
    SHIPPING_DELIVERED = "delivered"
    SHIPPING_CANCELLED = "cancelled"

    SHIPPING_STATUS_CHOICES = [
        (SHIPPING_PENDING, "Pending"),
        (SHIPPING_PROCESSING, "Processing"),
        (SHIPPING_SHIPPED, "Shipped"),
        (SHIPPING_RETRYING, "Retrying"),
        (SHIPPING_FAILED, "Failed"),
        (SHIPPING_AWB_FAILED, "AWB Failed"),
        (SHIPPING_PERMISSION_DENIED, "Permission Denied"),
        (SHIPPING_DELIVERED, "Delivered"),
        (SHIPPING_CANCELLED, "Cancelled"),
    ]

    REFUND_NONE = ""
    REFUND_INITIATED = "initiated"
    REFUND_NOT_REQUIRED = "not_required"
    REFUND_FAILED = "failed"

    REFUND_STATUS_CHOICES = [
        (REFUND_NONE, "None"),
        (REFUND_INITIATED, "Initiated"),
        (REFUND_NOT_REQUIRED, "Not Required"),
        (REFUND_FAILED, "Failed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order_no = models.CharField(
        max_length=64,
        unique=True,
        blank=True,
        help_text="System-generated public order number",
    )

    customer = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )

    # Money snapshot (server authoritative)
    subtotal_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    savings_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_rate_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    shipping_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=8, default="INR")

    promo_code = models.CharField(max_length=64, blank=True, default="", db_index=True)
    promo_discount_type = models.CharField(max_length=32, blank=True, default="")
    # set when payment counted a use against the code; only counted uses are released
    promo_use_counted = models.BooleanField(default=False)

    # Status axes
    payment_status = models.CharField(
        max_length=32, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_AWAITING
    )
    order_status = models.CharField(
        max_length=32, choices=ORDER_STATUS_CHOICES, default=ORDER_PENDING
    )
    shipping_status = models.CharField(
        max_length=32, choices=SHIPPING_STATUS_CHOICES, default=SHIPPING_PENDING
    )

    # Gateway identifiers
    gateway = models.CharField(max_length=32, blank=True, default="")
    gateway_order_id = models.CharField(max_length=128, unique=True, null=True, blank=True)
    gateway_payment_id = models.CharField(max_length=128, blank=True, default="")

    # Refund (cancellation / stock failure)
    refund_status = models.CharField(
        max_length=32, choices=REFUND_STATUS_CHOICES, blank=True, default=REFUND_NONE
    )
    refund_id = models.CharField(max_length=128, blank=True, default="")
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    payment_error = models.TextField(blank=True, default="")
    cancellation_reason = models.TextField(blank=True, default="")

    # Delivery address snapshot
    delivery_address = models.JSONField(default=dict)

    # Shipment record (embedded)
    carrier_order_id = models.CharField(max_length=128, blank=True, default="")
    shipment_id = models.CharField(max_length=128, blank=True, default="")
    tracking_code = models.CharField(max_length=128, blank=True, default="", db_index=True)
    courier_name = models.CharField(max_length=128, blank=True, default="")
    courier_company_id = models.CharField(max_length=64, blank=True, default="")
    freight_charge = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    expected_delivery_date = models.DateField(null=True, blank=True)
    shipping_error = models.TextField(blank=True, default="")
    carrier_error_details = models.JSONField(default=dict, blank=True)

    # Phase timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    shipping_started_at = models.DateTimeField(null=True, blank=True)
    shipping_completed_at = models.DateTimeField(null=True, blank=True)
    shipping_failed_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["payment_status"], name="orders_orde_payment_3b1e2a_idx"),
            models.Index(fields=["shipping_status"], name="orders_orde_shippin_5d7c9f_idx"),
            models.Index(fields=["created_at"], name="orders_orde_created_8e4a61_idx"),
        ]

    def __str__(self):
        return f"{self.order_no} | {self.total_amount} | {self.shipping_status}"

    @property
    def is_paid(self) -> bool:
        return self.payment_status == self.PAYMENT_PAID

    @property
    def tracking_url(self) -> str:
        from shipping.carrier import tracking_url_for

        return tracking_url_for(self.tracking_code)

    def save(self, *args, **kwargs):
        if not self.order_no:
            self.order_no = generate_order_no()
            update_fields = kwargs.get("update_fields")
            if update_fields is not None:
                kwargs["update_fields"] = list(update_fields) + ["order_no"]
        super().save(*args, **kwargs)
