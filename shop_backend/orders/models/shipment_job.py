# orders/models/shipment_job.py

from django.db import models
from django.utils import timezone

from .order import Order


class ShipmentJob(models.Model):
    """
    Durable background job: "book the shipment for this order".

    - Keyed by order (one row per order; re-enqueue reuses the row)
    - queued -> running -> done | failed(terminal after max attempts)
    - A running job whose lease expired is reclaimed by the worker
      (crash recovery, at-least-once execution)
    """

    STATUS_QUEUED = "queued"
    STATUS_RUNNING = "running"
    STATUS_DONE = "done"
    STATUS_FAILED = "failed"

    STATUS_CHOICES = [
        (STATUS_QUEUED, "Queued"),
        (STATUS_RUNNING, "Running"),
        (STATUS_DONE, "Done"),
        (STATUS_FAILED, "Failed"),
    ]

    order = models.OneToOneField(
        Order,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="shipment_job",
    )

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_QUEUED)
    attempts = models.PositiveIntegerField(default=0)
    available_at = models.DateTimeField(default=timezone.now)
    locked_at = models.DateTimeField(null=True, blank=True)
    locked_by = models.CharField(max_length=128, blank=True, default="")
    last_error = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["available_at"]
        indexes = [
            models.Index(fields=["status", "available_at"], name="orders_ship_status_9a3d2e_idx"),
        ]

    def __str__(self):
        return f"ShipmentJob({self.order_id}) {self.status} #{self.attempts}"
