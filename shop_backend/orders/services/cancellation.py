# orders/services/cancellation.py

"""
======================================================
PATH: orders/services/cancellation.py
======================================================
ORDER CANCELLATION

Rules:
- Rejected once delivered (no field changes)
- Idempotent: an already cancelled order is returned as-is
- The order row is locked first; a cancel that arrives while the shipment
  worker holds the lock waits for the carrier call to finish
- A booked shipment is cancelled at the carrier BEFORE local state flips;
  a carrier failure aborts the cancellation
- Paid orders are refunded in full and release their promo use
- Stock is not restored
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from orders.models import Order
from orders.services.payment_verifier import refund_order_payment, release_promo_use
from orders.services.shipping_lifecycle import is_cancellable, validate_transition
from payments.gateway import get_gateway
from shipping.carrier import CarrierError, get_carrier

logger = logging.getLogger(__name__)


class CancellationError(Exception):
    pass


class OrderNotCancellableError(CancellationError):
    pass


class CarrierCancellationError(CancellationError):
    pass


@dataclass(frozen=True)
class CancellationResult:
    order: Order
    already_cancelled: bool


@transaction.atomic
def cancel_order(*, order_id, reason: str = "", carrier=None, gateway=None) -> CancellationResult:
    order = Order.objects.select_for_update().get(id=order_id)

    if order.order_status == Order.ORDER_CANCELLED and order.shipping_status == Order.SHIPPING_CANCELLED:
        return CancellationResult(order=order, already_cancelled=True)

    if not is_cancellable(order):
        raise OrderNotCancellableError(
            f"Order {order.order_no} cannot be cancelled once {order.shipping_status}"
        )

    if order.carrier_order_id:
        carrier = carrier or get_carrier()
        try:
            carrier.cancel_shipment(order.carrier_order_id)
        except CarrierError as exc:
            logger.warning(
                "Carrier cancellation failed; order left unchanged",
                extra={"order_id": str(order.id), "carrier_order_id": order.carrier_order_id, "error": str(exc)},
            )
            raise CarrierCancellationError(f"Carrier cancellation failed: {exc}") from exc

    was_paid = order.is_paid

    validate_transition(order=order, target_status=Order.SHIPPING_CANCELLED)
    order.order_status = Order.ORDER_CANCELLED
    order.shipping_status = Order.SHIPPING_CANCELLED
    order.cancelled_at = timezone.now()
    order.cancellation_reason = str(reason or "").strip()
    if not was_paid:
        order.refund_status = Order.REFUND_NOT_REQUIRED
    order.save(
        update_fields=[
            "order_status",
            "shipping_status",
            "cancelled_at",
            "cancellation_reason",
            "refund_status",
            "updated_at",
        ]
    )

    if was_paid:
        refund_order_payment(order, gateway=gateway or get_gateway(), reason="order_cancelled")
        release_promo_use(order)

    logger.info(
        "Order cancelled",
        extra={
            "order_id": str(order.id),
            "was_paid": was_paid,
            "refund_status": order.refund_status,
        },
    )
    return CancellationResult(order=order, already_cancelled=False)
