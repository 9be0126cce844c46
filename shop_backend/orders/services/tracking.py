# orders/services/tracking.py

"""
Shipping status polling surface + carrier tracking sync.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from orders.models import Order
from orders.services.shipping_lifecycle import validate_transition
from shipping.carrier import TrackingStatus, get_carrier

logger = logging.getLogger(__name__)


class TrackingSyncError(Exception):
    pass


@dataclass(frozen=True)
class TrackingSyncResult:
    order: Order
    status: TrackingStatus
    delivered_now: bool


def shipping_status_payload(order: Order) -> dict:
    return {
        "order_id": str(order.id),
        "order_no": order.order_no,
        "payment_status": order.payment_status,
        "order_status": order.order_status,
        "shipping_status": order.shipping_status,
        "shipping_error": order.shipping_error,
        "tracking_code": order.tracking_code,
        "tracking_url": order.tracking_url,
        "courier_name": order.courier_name,
        "carrier_order_id": order.carrier_order_id,
        "expected_delivery_date": order.expected_delivery_date,
        "created_at": order.created_at,
        "shipping_started_at": order.shipping_started_at,
        "shipping_completed_at": order.shipping_completed_at,
        "shipping_failed_at": order.shipping_failed_at,
        "delivered_at": order.delivered_at,
    }


@transaction.atomic
def sync_tracking(*, order_id, carrier=None) -> TrackingSyncResult:
    """
    Ask the carrier for the latest status; shipped -> delivered when the
    carrier reports delivery.
    """
    order = Order.objects.select_for_update().get(id=order_id)

    if order.shipping_status not in {Order.SHIPPING_SHIPPED, Order.SHIPPING_DELIVERED}:
        raise TrackingSyncError(f"Order {order.order_no} has not shipped yet")
    if not order.tracking_code:
        raise TrackingSyncError(f"Order {order.order_no} has no tracking code")

    carrier = carrier or get_carrier()
    status = carrier.track(order.tracking_code)

    delivered_now = False
    if status.delivered and order.shipping_status == Order.SHIPPING_SHIPPED:
        validate_transition(order=order, target_status=Order.SHIPPING_DELIVERED)
        order.shipping_status = Order.SHIPPING_DELIVERED
        order.delivered_at = timezone.now()
        order.save(update_fields=["shipping_status", "delivered_at", "updated_at"])
        delivered_now = True

        logger.info(
            "Order delivered",
            extra={"order_id": str(order.id), "tracking_code": order.tracking_code},
        )

    return TrackingSyncResult(order=order, status=status, delivered_now=delivered_now)
