# orders/views/common.py

"""
Shared HTTP edge helpers for the orders API:
- canonical error envelope
- throttle scopes
- service exception -> (code, status) mapping
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle, UserRateThrottle

from catalog.services.inventory import InsufficientStockError, InventoryError
from catalog.services.pricing import NoValidPriceError, PricingError
from orders.models import Order
from orders.services.cancellation import CancellationError, CarrierCancellationError, OrderNotCancellableError
from orders.services.order_intent import (
    EmptyCartError,
    LineItemUnavailableError,
    NonPositiveTotalError,
    OrderIntentError,
)
from orders.services.payment_verifier import (
    PaymentVerificationError,
    OrderNotFoundError,
    OrderNotPayableError,
    OrderTotalsMismatchError,
    SignatureMismatchError,
)
from orders.services.reversal import ReturnWindowExpiredError, ReversalError, ReversalNotAllowedError
from orders.services.shipment_retry import ShipmentRetryError, ShipmentRetryNotAllowedError
from orders.services.tracking import TrackingSyncError
from payments.gateway import GatewayError
from promotions.services.promo_evaluator import PromoError, PromoInvalidError
from shipping.carrier import CarrierError

logger = logging.getLogger(__name__)

DOMAIN_ERRORS = (
    DjangoValidationError,
    OrderIntentError,
    PricingError,
    PromoError,
    InventoryError,
    PaymentVerificationError,
    CancellationError,
    ShipmentRetryError,
    TrackingSyncError,
    ReversalError,
    GatewayError,
    CarrierError,
)


# ======================================================
# API ERROR NORMALIZATION
# ======================================================

def error_response(*, code: str, message: str, http_status: int, details: dict | None = None):
    """
    Canonical API error response.
    """
    return Response(
        {"error": {"code": code, "message": message, "details": details or {}}},
        status=http_status,
    )


def validation_error_response(errors):
    return error_response(
        code="VALIDATION_ERROR",
        message="Invalid request.",
        http_status=status.HTTP_400_BAD_REQUEST,
        details=errors,
    )


def order_not_found_response():
    return error_response(
        code="ORDER_NOT_FOUND",
        message="Order not found.",
        http_status=status.HTTP_404_NOT_FOUND,
    )


def _django_validation_details(exc: DjangoValidationError) -> dict:
    if hasattr(exc, "message_dict"):
        return exc.message_dict
    return {"non_field_errors": exc.messages}


def service_error_response(exc: Exception):
    """
    Map a domain exception to the error envelope.
    Unknown exceptions are re-raised.
    """
    if isinstance(exc, DjangoValidationError):
        return error_response(
            code="VALIDATION_ERROR",
            message="Invalid request.",
            http_status=status.HTTP_400_BAD_REQUEST,
            details=_django_validation_details(exc),
        )

    if isinstance(exc, LineItemUnavailableError):
        return error_response(
            code="LINE_ITEM_UNAVAILABLE",
            message=str(exc),
            http_status=status.HTTP_400_BAD_REQUEST,
            details=exc.details,
        )

    if isinstance(exc, NoValidPriceError):
        return error_response(
            code="NO_VALID_PRICE",
            message=str(exc),
            http_status=status.HTTP_400_BAD_REQUEST,
            details={"sku": exc.sku},
        )

    if isinstance(exc, PromoInvalidError):
        return error_response(
            code="PROMO_INVALID",
            message=str(exc),
            http_status=status.HTTP_400_BAD_REQUEST,
            details={"reason": exc.reason},
        )

    if isinstance(exc, (EmptyCartError, NonPositiveTotalError)):
        return error_response(
            code="INVALID_CART",
            message=str(exc),
            http_status=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, SignatureMismatchError):
        return error_response(
            code="SIGNATURE_MISMATCH",
            message=str(exc),
            http_status=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, InsufficientStockError):
        return error_response(
            code="INSUFFICIENT_STOCK",
            message=str(exc),
            http_status=status.HTTP_409_CONFLICT,
            details={"sku": exc.sku, "requested": exc.requested, "available": exc.available},
        )

    if isinstance(exc, OrderNotFoundError):
        return error_response(
            code="ORDER_NOT_FOUND",
            message=str(exc),
            http_status=status.HTTP_404_NOT_FOUND,
        )

    if isinstance(exc, (OrderNotPayableError, OrderTotalsMismatchError)):
        return error_response(
            code="ORDER_NOT_PAYABLE",
            message=str(exc),
            http_status=status.HTTP_409_CONFLICT,
        )

    if isinstance(exc, ReturnWindowExpiredError):
        return error_response(
            code="RETURN_WINDOW_EXPIRED",
            message=str(exc),
            http_status=status.HTTP_409_CONFLICT,
        )

    if isinstance(
        exc,
        (OrderNotCancellableError, ShipmentRetryNotAllowedError, TrackingSyncError, ReversalNotAllowedError),
    ):
        return error_response(
            code="PRECONDITION_FAILED",
            message=str(exc),
            http_status=status.HTTP_409_CONFLICT,
        )

    if isinstance(exc, GatewayError):
        logger.error("Payment gateway error at HTTP edge", extra={"error": str(exc)})
        return error_response(
            code="PAYMENT_GATEWAY_ERROR",
            message=str(exc),
            http_status=status.HTTP_502_BAD_GATEWAY,
        )

    if isinstance(exc, (CarrierError, CarrierCancellationError)):
        logger.error("Carrier error at HTTP edge", extra={"error": str(exc)})
        return error_response(
            code="CARRIER_ERROR",
            message=str(exc),
            http_status=status.HTTP_502_BAD_GATEWAY,
        )

    if isinstance(exc, DOMAIN_ERRORS):
        return error_response(
            code="REQUEST_FAILED",
            message=str(exc),
            http_status=status.HTTP_400_BAD_REQUEST,
        )

    raise exc


# ======================================================
# THROTTLES
# ======================================================

class PublicWriteThrottle(UserRateThrottle):
    """
    Order-intent creation (authenticated customers).
    Uses REST_FRAMEWORK['DEFAULT_THROTTLE_RATES']['public_write'].
    """

    scope = "public_write"


class PublicPollThrottle(AnonRateThrottle):
    """
    Shipping status polling.
    Uses REST_FRAMEWORK['DEFAULT_THROTTLE_RATES']['public_poll'].
    """

    scope = "public_poll"


class WebhookThrottle(AnonRateThrottle):
    scope = "webhook"


# ======================================================
# ACCESS HELPERS
# ======================================================

def order_for_user(user, order_id) -> Order | None:
    """Owner or staff only; everyone else gets None (reported as 404)."""
    order = Order.objects.filter(id=order_id).first()
    if order is None:
        return None
    if getattr(user, "is_staff", False):
        return order
    if order.customer_id is not None and order.customer_id == getattr(user, "id", None):
        return order
    return None
