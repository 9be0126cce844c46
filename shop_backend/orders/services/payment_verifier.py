# orders/services/payment_verifier.py

"""
======================================================
PATH: orders/services/payment_verifier.py
======================================================
PAYMENT VERIFIER

Handles the gateway callback for an order intent.

Flow:
1) verify HMAC signature over "order_id|payment_id" (mismatch -> no change)
2) lock the order row
3) already paid -> success, no side effects (duplicate callback)
4) re-price the frozen snapshot; refuse a tampered order
5) commit stock for every line atomically (all-or-nothing, exactly once)
6) paid / confirmed, count the promo use, queue the shipment job
7) stock failure -> order cancelled, full refund, InsufficientStockError

The caller never waits on carrier I/O: the shipment job runs after commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from catalog.services.inventory import InsufficientStockError, commit_stock
from orders.models import Order
from orders.services.cart_totals import recompute_order_totals
from orders.services.shipment_jobs import enqueue_shipment
from orders.services.shipping_lifecycle import validate_transition
from payments.gateway import GatewayRefundError, get_gateway
from promotions.services.promo_evaluator import decrement_uses, increment_uses

logger = logging.getLogger(__name__)


# ============================================================
# DOMAIN ERRORS
# ============================================================

class PaymentVerificationError(Exception):
    pass


class SignatureMismatchError(PaymentVerificationError):
    pass


class OrderNotFoundError(PaymentVerificationError):
    pass


class OrderNotPayableError(PaymentVerificationError):
    pass


class OrderTotalsMismatchError(PaymentVerificationError):
    pass


@dataclass(frozen=True)
class VerificationResult:
    order: Order
    already_paid: bool


# ============================================================
# REFUND HELPER
# ============================================================

def refund_order_payment(order: Order, *, gateway=None, reason: str) -> None:
    """
    Refund the full order total and record the outcome on the order.

    A gateway failure is recorded as refund_status=failed and logged; it does
    not undo the caller's state change.
    """
    gateway = gateway or get_gateway()
    try:
        refund = gateway.refund(payment_id=order.gateway_payment_id, amount=order.total_amount)
    except GatewayRefundError as exc:
        order.refund_status = Order.REFUND_FAILED
        order.save(update_fields=["refund_status", "updated_at"])
        logger.error(
            "Refund failed",
            extra={"order_id": str(order.id), "payment_id": order.gateway_payment_id, "reason": reason, "error": str(exc)},
        )
        return

    order.refund_status = Order.REFUND_INITIATED
    order.refund_id = refund.refund_id
    order.refund_amount = refund.amount
    order.save(update_fields=["refund_status", "refund_id", "refund_amount", "updated_at"])

    logger.info(
        "Refund initiated",
        extra={"order_id": str(order.id), "refund_id": refund.refund_id, "reason": reason},
    )


# ============================================================
# PROMO HELPER
# ============================================================

def release_promo_use(order: Order) -> bool:
    """
    Give back the promo use this order counted at payment. Orders whose
    increment was refused at the cap never counted one and release nothing.
    """
    if not (order.promo_code and order.promo_use_counted):
        return False

    decrement_uses(order.promo_code)
    order.promo_use_counted = False
    order.save(update_fields=["promo_use_counted", "updated_at"])
    return True


# ============================================================
# PUBLIC API
# ============================================================

def verify_payment(*, gateway_order_id: str, gateway_payment_id: str, signature: str) -> VerificationResult:
    gateway_order_id = str(gateway_order_id or "").strip()
    gateway_payment_id = str(gateway_payment_id or "").strip()

    gateway = get_gateway()
    if not gateway.verify_signature(
        order_id=gateway_order_id,
        payment_id=gateway_payment_id,
        signature=signature,
    ):
        logger.warning(
            "Payment signature mismatch",
            extra={"gateway_order_id": gateway_order_id, "payment_id": gateway_payment_id},
        )
        raise SignatureMismatchError("Payment signature verification failed")

    stock_error: InsufficientStockError | None = None
    refund_reason = ""

    with transaction.atomic():
        order = (
            Order.objects.select_for_update()
            .filter(gateway_order_id=gateway_order_id)
            .first()
        )
        if order is None:
            raise OrderNotFoundError(f"No order for gateway order {gateway_order_id}")

        if order.payment_status == Order.PAYMENT_PAID:
            logger.info(
                "Duplicate payment verification ignored",
                extra={"order_id": str(order.id), "payment_id": gateway_payment_id},
            )
            return VerificationResult(order=order, already_paid=True)

        if order.payment_status == Order.PAYMENT_FAILED:
            raise OrderNotPayableError(
                f"Order {order.order_no} payment already failed: {order.payment_error}"
            )

        if order.order_status == Order.ORDER_CANCELLED:
            if order.gateway_payment_id == gateway_payment_id and order.refund_status == Order.REFUND_INITIATED:
                raise OrderNotPayableError(f"Order {order.order_no} was cancelled; payment refunded")

            # customer paid for an order cancelled before the callback
            order.gateway_payment_id = gateway_payment_id
            order.payment_error = "Payment received for a cancelled order"
            order.save(update_fields=["gateway_payment_id", "payment_error", "updated_at"])
            refund_reason = "cancelled_before_payment"

        else:
            totals = recompute_order_totals(order)
            if totals.total != order.total_amount:
                logger.error(
                    "Order totals do not match frozen snapshot",
                    extra={
                        "order_id": str(order.id),
                        "stored_total": str(order.total_amount),
                        "recomputed_total": str(totals.total),
                    },
                )
                raise OrderTotalsMismatchError(
                    f"Order {order.order_no} totals do not match its line items"
                )

            lines = [(item.sku, item.quantity) for item in order.items.all()]
            try:
                commit_stock(order_id=order.id, payment_id=gateway_payment_id, lines=lines)
            except InsufficientStockError as exc:
                stock_error = exc
                now = timezone.now()
                validate_transition(order=order, target_status=Order.SHIPPING_CANCELLED)
                order.payment_status = Order.PAYMENT_FAILED
                order.order_status = Order.ORDER_CANCELLED
                order.shipping_status = Order.SHIPPING_CANCELLED
                order.gateway_payment_id = gateway_payment_id
                order.payment_error = str(exc)
                order.cancelled_at = now
                order.save(
                    update_fields=[
                        "payment_status",
                        "order_status",
                        "shipping_status",
                        "gateway_payment_id",
                        "payment_error",
                        "cancelled_at",
                        "updated_at",
                    ]
                )
                refund_reason = "insufficient_stock"
            else:
                order.payment_status = Order.PAYMENT_PAID
                order.order_status = Order.ORDER_CONFIRMED
                order.gateway_payment_id = gateway_payment_id
                order.paid_at = timezone.now()
                order.save(
                    update_fields=[
                        "payment_status",
                        "order_status",
                        "gateway_payment_id",
                        "paid_at",
                        "updated_at",
                    ]
                )

                if order.promo_code:
                    counted = increment_uses(order.promo_code)
                    if counted:
                        order.promo_use_counted = True
                        order.save(update_fields=["promo_use_counted", "updated_at"])
                    else:
                        # the order is honoured; the code was oversold concurrently
                        logger.warning(
                            "Promo cap reached at payment time",
                            extra={"order_id": str(order.id), "code": order.promo_code},
                        )

                enqueue_shipment(order.id)

    if refund_reason:
        refund_order_payment(order, gateway=gateway, reason=refund_reason)
        if stock_error is not None:
            raise stock_error
        raise OrderNotPayableError(f"Order {order.order_no} was cancelled; payment refunded")

    logger.info(
        "Payment verified",
        extra={
            "order_id": str(order.id),
            "gateway_order_id": gateway_order_id,
            "payment_id": gateway_payment_id,
        },
    )
    return VerificationResult(order=order, already_paid=False)
