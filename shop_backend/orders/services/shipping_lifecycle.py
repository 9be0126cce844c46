# orders/services/shipping_lifecycle.py

"""
SHIPPING LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed transitions of Order.shipping_status.

    pending    -> processing | retrying | failed | cancelled
    processing -> shipped | failed | awb_failed | permission_denied | cancelled
    retrying   -> processing | failed | cancelled
    failed     -> retrying | cancelled
    awb_failed -> retrying | cancelled
    permission_denied -> cancelled          (operator action only)
    shipped    -> delivered | cancelled     (carrier-side cancel first)
    delivered, cancelled                     terminal

pending / retrying -> failed only when the shipment job gives up.

DESIGN PRINCIPLES:
- No database writes
- No carrier calls
- Single source of truth
"""

from orders.models import Order

# ============================================================
# DOMAIN ERRORS
# ============================================================


class ShippingLifecycleError(Exception):
    pass


class InvalidShippingTransitionError(ShippingLifecycleError):
    pass


# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Order.SHIPPING_DELIVERED,
    Order.SHIPPING_CANCELLED,
}

RETRYABLE_STATES = {
    Order.SHIPPING_PENDING,
    Order.SHIPPING_FAILED,
    Order.SHIPPING_AWB_FAILED,
}

# states the orchestrator may (re-)enter processing from
PROCESSABLE_STATES = {
    Order.SHIPPING_PENDING,
    Order.SHIPPING_RETRYING,
    Order.SHIPPING_PROCESSING,
}

ALLOWED_TRANSITIONS = {
    Order.SHIPPING_PENDING: {
        Order.SHIPPING_PROCESSING,
        Order.SHIPPING_RETRYING,
        Order.SHIPPING_FAILED,
        Order.SHIPPING_CANCELLED,
    },
    Order.SHIPPING_PROCESSING: {
        Order.SHIPPING_SHIPPED,
        Order.SHIPPING_FAILED,
        Order.SHIPPING_AWB_FAILED,
        Order.SHIPPING_PERMISSION_DENIED,
        Order.SHIPPING_CANCELLED,
    },
    Order.SHIPPING_RETRYING: {
        Order.SHIPPING_PROCESSING,
        Order.SHIPPING_FAILED,
        Order.SHIPPING_CANCELLED,
    },
    Order.SHIPPING_FAILED: {
        Order.SHIPPING_RETRYING,
        Order.SHIPPING_CANCELLED,
    },
    Order.SHIPPING_AWB_FAILED: {
        Order.SHIPPING_RETRYING,
        Order.SHIPPING_CANCELLED,
    },
    Order.SHIPPING_PERMISSION_DENIED: {
        Order.SHIPPING_CANCELLED,
    },
    Order.SHIPPING_SHIPPED: {
        Order.SHIPPING_DELIVERED,
        Order.SHIPPING_CANCELLED,
    },
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, order: Order, target_status: str):
    if not can_transition(
        from_status=order.shipping_status,
        to_status=target_status,
    ):
        raise InvalidShippingTransitionError(
            f"Order {order.id} shipping cannot transition from "
            f"'{order.shipping_status}' to '{target_status}'"
        )


def is_cancellable(order: Order) -> bool:
    return can_transition(
        from_status=order.shipping_status,
        to_status=Order.SHIPPING_CANCELLED,
    )
