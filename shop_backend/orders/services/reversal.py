# orders/services/reversal.py

"""
======================================================
PATH: orders/services/reversal.py
======================================================
REVERSAL HANDLER (returns + exchanges)

Preconditions (both kinds):
- shipping_status == delivered
- now <= delivered_at + FULFILLMENT["RETURN_WINDOW_DAYS"]
- at most one reversal per order; repeating the same kind returns the
  existing request unchanged
- reason required, at most FULFILLMENT["MAX_REVERSAL_IMAGES"] image URLs

Return:   reverse pickup, full refund when paid, promo use released
Exchange: reverse pickup + forward replacement in `new_size`, payment
          untouched, promo use released

A tracking number is requested for each booked leg that came back without
one; failure there is logged, not fatal. Carrier booking errors propagate
and nothing is persisted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from catalog.models import SizeVariant
from orders.models import Order, ReversalRequest
from orders.services.order_intent import LineItemUnavailableError
from orders.services.payment_verifier import release_promo_use
from orders.services.shipment_payload import build_exchange_payload, build_return_payload
from payments.gateway import GatewayRefundError, get_gateway
from shipping.carrier import CarrierError, CarrierLeg, get_carrier

logger = logging.getLogger(__name__)


# ============================================================
# DOMAIN ERRORS
# ============================================================

class ReversalError(Exception):
    pass


class ReversalNotAllowedError(ReversalError):
    pass


class ReturnWindowExpiredError(ReversalNotAllowedError):
    pass


@dataclass(frozen=True)
class ReversalResult:
    reversal: ReversalRequest
    created: bool


# ============================================================
# HELPERS
# ============================================================

def _window_days() -> int:
    return int(settings.FULFILLMENT.get("RETURN_WINDOW_DAYS", 30))


def _clean_inputs(*, reason, images) -> tuple[str, list[str]]:
    reason = str(reason or "").strip()
    if not reason:
        raise ValidationError({"reason": "A reason is required."})

    images = [str(url).strip() for url in (images or []) if str(url or "").strip()]
    max_images = int(settings.FULFILLMENT.get("MAX_REVERSAL_IMAGES", 3))
    if len(images) > max_images:
        raise ValidationError({"images": f"At most {max_images} images are allowed."})

    return reason, images


def _lock_eligible_order(*, order_id, kind: str, now) -> tuple[Order, ReversalRequest | None]:
    order = Order.objects.select_for_update().get(id=order_id)

    existing = ReversalRequest.objects.filter(order=order).first()
    if existing is not None:
        if existing.kind == kind:
            return order, existing
        raise ReversalNotAllowedError(
            f"Order {order.order_no} already has a {existing.kind} request ({existing.rma_number})"
        )

    if order.shipping_status != Order.SHIPPING_DELIVERED or order.delivered_at is None:
        raise ReversalNotAllowedError(
            f"Order {order.order_no} must be delivered before a {kind} can be requested"
        )

    deadline = order.delivered_at + timedelta(days=_window_days())
    if now > deadline:
        raise ReturnWindowExpiredError(
            f"The {_window_days()}-day {kind} window for order {order.order_no} has closed"
        )

    return order, None


def _with_tracking(carrier, leg: CarrierLeg, *, order_id) -> CarrierLeg:
    if leg.tracking_code or not leg.shipment_id:
        return leg
    try:
        assignment = carrier.assign_tracking(leg.shipment_id)
    except CarrierError as exc:
        logger.warning(
            "Tracking assignment for reversal leg failed",
            extra={"order_id": str(order_id), "shipment_id": leg.shipment_id, "error": str(exc)},
        )
        return leg
    return CarrierLeg(
        carrier_order_id=leg.carrier_order_id,
        shipment_id=leg.shipment_id,
        tracking_code=assignment.tracking_code,
        label_url=leg.label_url,
    )


def _rma(prefix: str, order: Order, now) -> str:
    return f"{prefix}_{order.id}_{int(now.timestamp())}"


def _validate_exchange_size(order: Order, new_size: str) -> str:
    new_size = str(new_size or "").strip()
    if not new_size:
        raise ValidationError({"new_size": "The replacement size is required."})

    items = [i for i in order.items.all() if not i.is_promo_bonus]
    if all(i.size.strip().upper() == new_size.upper() for i in items):
        raise ValidationError({"new_size": "The order already has this size."})

    for item in items:
        variants = list(SizeVariant.objects.filter(item_id=item.catalog_item_id))
        if not any(v.size.strip().upper() == new_size.upper() for v in variants):
            raise LineItemUnavailableError(
                f"Size {new_size} is not available for '{item.item_name}'",
                item_id=item.catalog_item_id,
                requested_sku=item.sku,
                requested_size=new_size,
                available_sizes=[v.size for v in variants],
                available_skus=[v.sku for v in variants],
            )
    return new_size


# ============================================================
# PUBLIC API
# ============================================================

@transaction.atomic
def create_return(*, order_id, reason, images=None, now=None, carrier=None, gateway=None) -> ReversalResult:
    reason, images = _clean_inputs(reason=reason, images=images)
    now = now or timezone.now()

    order, existing = _lock_eligible_order(order_id=order_id, kind=ReversalRequest.KIND_RETURN, now=now)
    if existing is not None:
        return ReversalResult(reversal=existing, created=False)

    carrier = carrier or get_carrier()
    rma_number = _rma("R", order, now)

    leg = carrier.create_return_shipment(build_return_payload(order, rma_number=rma_number, reason=reason))
    leg = _with_tracking(carrier, leg, order_id=order.id)

    reversal = ReversalRequest(
        order=order,
        kind=ReversalRequest.KIND_RETURN,
        rma_number=rma_number,
        reason=reason,
        images=images,
        return_carrier_order_id=leg.carrier_order_id,
        return_shipment_id=leg.shipment_id,
        return_tracking_code=leg.tracking_code,
        return_label_url=leg.label_url,
    )

    if order.is_paid:
        gateway = gateway or get_gateway()
        try:
            refund = gateway.refund(payment_id=order.gateway_payment_id, amount=order.total_amount)
        except GatewayRefundError as exc:
            reversal.refund_status = Order.REFUND_FAILED
            logger.error(
                "Return refund failed",
                extra={"order_id": str(order.id), "rma_number": rma_number, "error": str(exc)},
            )
        else:
            reversal.refund_id = refund.refund_id
            reversal.refund_amount = refund.amount
            reversal.refund_status = Order.REFUND_INITIATED

            order.refund_status = Order.REFUND_INITIATED
            order.refund_id = refund.refund_id
            order.refund_amount = refund.amount
            order.save(update_fields=["refund_status", "refund_id", "refund_amount", "updated_at"])
    else:
        reversal.refund_status = Order.REFUND_NOT_REQUIRED

    reversal.save()
    release_promo_use(order)

    logger.info(
        "Return requested",
        extra={
            "order_id": str(order.id),
            "rma_number": rma_number,
            "return_shipment_id": leg.shipment_id,
            "refund_status": reversal.refund_status,
        },
    )
    return ReversalResult(reversal=reversal, created=True)


@transaction.atomic
def create_exchange(*, order_id, new_size, reason, images=None, now=None, carrier=None) -> ReversalResult:
    reason, images = _clean_inputs(reason=reason, images=images)
    now = now or timezone.now()

    order, existing = _lock_eligible_order(order_id=order_id, kind=ReversalRequest.KIND_EXCHANGE, now=now)
    if existing is not None:
        return ReversalResult(reversal=existing, created=False)

    new_size = _validate_exchange_size(order, new_size)

    carrier = carrier or get_carrier()
    rma_number = _rma("R", order, now)
    forward_reference = _rma("EX", order, now)

    booking = carrier.create_exchange_shipment(
        build_exchange_payload(
            order,
            rma_number=rma_number,
            forward_reference=forward_reference,
            new_size=new_size,
            reason=reason,
        )
    )
    return_leg = _with_tracking(carrier, booking.return_leg, order_id=order.id)
    forward_leg = _with_tracking(carrier, booking.forward_leg, order_id=order.id)

    reversal = ReversalRequest.objects.create(
        order=order,
        kind=ReversalRequest.KIND_EXCHANGE,
        rma_number=rma_number,
        reason=reason,
        images=images,
        desired_size=new_size,
        return_carrier_order_id=return_leg.carrier_order_id,
        return_shipment_id=return_leg.shipment_id,
        return_tracking_code=return_leg.tracking_code,
        return_label_url=return_leg.label_url,
        forward_reference=forward_reference,
        forward_carrier_order_id=forward_leg.carrier_order_id,
        forward_shipment_id=forward_leg.shipment_id,
        forward_tracking_code=forward_leg.tracking_code,
        refund_status=Order.REFUND_NOT_REQUIRED,
    )
    release_promo_use(order)

    logger.info(
        "Exchange requested",
        extra={
            "order_id": str(order.id),
            "rma_number": rma_number,
            "new_size": new_size,
            "forward_shipment_id": forward_leg.shipment_id,
        },
    )
    return ReversalResult(reversal=reversal, created=True)
