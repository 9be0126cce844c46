# orders/services/shipment_retry.py

"""
RETRY / RECOVERY CONTROLLER

retry_shipping(order_id):
- requires payment_status == paid
- accepted from pending / failed / awb_failed only
- clears shipping_error, moves to retrying and re-queues the shipment job
- a previously obtained shipment id is kept, so the orchestrator resumes
  at tracking assignment instead of booking twice
- retrying / processing: already in flight, returned unchanged
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction

from orders.models import Order
from orders.services.shipment_jobs import enqueue_shipment
from orders.services.shipping_lifecycle import RETRYABLE_STATES, validate_transition

logger = logging.getLogger(__name__)

IN_FLIGHT_STATES = {
    Order.SHIPPING_RETRYING,
    Order.SHIPPING_PROCESSING,
}


class ShipmentRetryError(Exception):
    pass


class ShipmentRetryNotAllowedError(ShipmentRetryError):
    pass


@dataclass(frozen=True)
class RetryResult:
    order: Order
    scheduled: bool


@transaction.atomic
def retry_shipping(*, order_id) -> RetryResult:
    order = Order.objects.select_for_update().get(id=order_id)

    if order.payment_status != Order.PAYMENT_PAID:
        raise ShipmentRetryNotAllowedError("Shipping can only be retried for paid orders")

    if order.shipping_status in IN_FLIGHT_STATES:
        return RetryResult(order=order, scheduled=False)

    if order.shipping_status not in RETRYABLE_STATES:
        raise ShipmentRetryNotAllowedError(
            f"Shipping cannot be retried from '{order.shipping_status}'"
        )

    validate_transition(order=order, target_status=Order.SHIPPING_RETRYING)
    previous = order.shipping_status
    order.shipping_status = Order.SHIPPING_RETRYING
    order.shipping_error = ""
    order.carrier_error_details = {}
    order.save(update_fields=["shipping_status", "shipping_error", "carrier_error_details", "updated_at"])

    enqueue_shipment(order.id, reset_attempts=True)

    logger.info(
        "Shipping retry scheduled",
        extra={
            "order_id": str(order.id),
            "from_status": previous,
            "shipment_id": order.shipment_id,
        },
    )
    return RetryResult(order=order, scheduled=True)
