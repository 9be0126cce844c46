# orders/services/shipment_orchestrator.py

"""
======================================================
PATH: orders/services/shipment_orchestrator.py
======================================================
SHIPMENT ORCHESTRATOR

Runs in the background worker, never in a customer request.

Phase 1 (short transaction):
- lock the order, check it is paid and in a processable state
- pending / retrying -> processing, stamp shipping_started_at

Phase 2 (booking, own transaction held across carrier I/O):
- re-lock the order; exit if it is no longer processing (cancel won)
- create shipment (skipped when a shipment id already exists)
- commit shipment id + carrier order id before the AWB call

Phase 3 (tracking, own transaction held across carrier I/O):
- re-lock the order; exit if it is no longer processing
- assign tracking number (AWB)
- write the outcome before the lock is released

A crash after phase 2 leaves the shipment id committed, so the next run
resumes at phase 3 without booking again.

Outcome classification:
- CarrierPermissionError on booking   -> permission_denied (+ remediation)
- any other CarrierError on booking   -> failed
- any CarrierError on AWB assignment  -> awb_failed (shipment id kept)
- success                             -> shipped

Carrier errors are RECORDED on the order, never raised to a caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from orders.models import Order
from orders.services.shipment_payload import build_shipment_payload
from orders.services.shipping_lifecycle import PROCESSABLE_STATES, validate_transition
from shipping.carrier import (
    CarrierError,
    CarrierPermissionError,
    CarrierTrackingError,
    get_carrier,
)

logger = logging.getLogger(__name__)

SHIPPING_FIELDS = [
    "shipping_status",
    "shipping_error",
    "carrier_error_details",
    "carrier_order_id",
    "shipment_id",
    "tracking_code",
    "courier_name",
    "courier_company_id",
    "freight_charge",
    "expected_delivery_date",
    "shipping_started_at",
    "shipping_completed_at",
    "shipping_failed_at",
    "updated_at",
]


@dataclass(frozen=True)
class ShipmentOutcome:
    order_id: str
    shipping_status: str
    processed: bool
    error: str = ""


def _skip(order: Order, reason: str) -> ShipmentOutcome:
    logger.info(
        "Shipment processing skipped",
        extra={"order_id": str(order.id), "shipping_status": order.shipping_status, "reason": reason},
    )
    return ShipmentOutcome(
        order_id=str(order.id),
        shipping_status=order.shipping_status,
        processed=False,
        error=order.shipping_error,
    )


def _mark_failure(order: Order, *, status: str, message: str, details: dict | None = None) -> None:
    validate_transition(order=order, target_status=status)
    order.shipping_status = status
    order.shipping_error = message
    order.carrier_error_details = details or {}
    order.shipping_failed_at = timezone.now()
    order.save(update_fields=SHIPPING_FIELDS)

    logger.warning(
        "Shipment processing failed",
        extra={"order_id": str(order.id), "shipping_status": status, "error": message},
    )


def _start(order_id) -> tuple[Order | None, str]:
    with transaction.atomic():
        order = Order.objects.select_for_update().filter(id=order_id).first()
        if order is None:
            return None, "order_not_found"
        if not order.is_paid:
            return order, "not_paid"
        if order.shipping_status not in PROCESSABLE_STATES:
            return order, "not_processable"

        if order.shipping_status != Order.SHIPPING_PROCESSING:
            validate_transition(order=order, target_status=Order.SHIPPING_PROCESSING)
            order.shipping_status = Order.SHIPPING_PROCESSING

        order.shipping_error = ""
        order.carrier_error_details = {}
        order.shipping_started_at = timezone.now()
        order.save(update_fields=SHIPPING_FIELDS)
        return order, ""


def _book(order_id, carrier) -> ShipmentOutcome | None:
    """
    Phase 2: create the shipment and commit its ids before anything else
    touches the carrier. Returns an outcome when processing stops here.
    """
    with transaction.atomic():
        order = Order.objects.select_for_update().get(id=order_id)
        if order.shipping_status != Order.SHIPPING_PROCESSING:
            return _skip(order, "state_changed")

        # reuse a previous shipment id
        if order.shipment_id:
            return None

        try:
            booking = carrier.create_shipment(build_shipment_payload(order))
        except CarrierPermissionError as exc:
            details = dict(exc.details)
            details["remediation"] = exc.remediation
            _mark_failure(
                order,
                status=Order.SHIPPING_PERMISSION_DENIED,
                message=f"{exc} {exc.remediation}".strip(),
                details=details,
            )
            return ShipmentOutcome(str(order.id), order.shipping_status, True, order.shipping_error)
        except CarrierError as exc:
            details = {"status_code": getattr(exc, "status_code", None)}
            _mark_failure(order, status=Order.SHIPPING_FAILED, message=str(exc), details=details)
            return ShipmentOutcome(str(order.id), order.shipping_status, True, order.shipping_error)

        order.shipment_id = booking.shipment_id
        order.carrier_order_id = booking.carrier_order_id
        order.save(update_fields=["shipment_id", "carrier_order_id", "updated_at"])

    logger.info(
        "Shipment booked",
        extra={
            "order_id": str(order.id),
            "shipment_id": booking.shipment_id,
            "carrier_order_id": booking.carrier_order_id,
        },
    )
    return None


def _assign(order_id, carrier) -> ShipmentOutcome:
    """
    Phase 3: assign the tracking number for the committed shipment id.
    """
    with transaction.atomic():
        order = Order.objects.select_for_update().get(id=order_id)
        if order.shipping_status != Order.SHIPPING_PROCESSING:
            return _skip(order, "state_changed")

        try:
            assignment = carrier.assign_tracking(order.shipment_id)
        except CarrierError as exc:
            details = dict(getattr(exc, "details", {}) or {}) if isinstance(exc, CarrierTrackingError) else {}
            details["shipment_id"] = order.shipment_id
            _mark_failure(order, status=Order.SHIPPING_AWB_FAILED, message=str(exc), details=details)
            return ShipmentOutcome(str(order.id), order.shipping_status, True, order.shipping_error)

        validate_transition(order=order, target_status=Order.SHIPPING_SHIPPED)
        order.tracking_code = assignment.tracking_code
        order.courier_name = assignment.courier_name
        order.courier_company_id = assignment.courier_company_id
        order.freight_charge = assignment.freight_charge
        order.expected_delivery_date = assignment.expected_delivery_date
        order.shipping_status = Order.SHIPPING_SHIPPED
        order.shipping_error = ""
        order.carrier_error_details = {}
        order.shipping_completed_at = timezone.now()
        order.save(update_fields=SHIPPING_FIELDS)

    logger.info(
        "Shipment ready",
        extra={
            "order_id": str(order.id),
            "tracking_code": order.tracking_code,
            "courier_name": order.courier_name,
        },
    )
    return ShipmentOutcome(str(order.id), order.shipping_status, True)


def process_shipment(order_id, *, carrier=None) -> ShipmentOutcome:
    """
    Book the shipment for a paid order and record the outcome.

    Re-entrant: an order left in processing by a crashed worker is picked up
    again; a committed shipment id is reused instead of booking twice.
    """
    order, skip_reason = _start(order_id)
    if order is None:
        logger.warning("Shipment job for unknown order", extra={"order_id": str(order_id)})
        return ShipmentOutcome(order_id=str(order_id), shipping_status="", processed=False, error=skip_reason)
    if skip_reason:
        return _skip(order, skip_reason)

    carrier = carrier or get_carrier()

    outcome = _book(order_id, carrier)
    if outcome is not None:
        return outcome
    return _assign(order_id, carrier)


def record_job_failure(order_id, *, error: str) -> bool:
    """
    The shipment job gave up after repeated crashes: move the order out of
    its in-flight state to failed so it is visible and retryable.
    """
    with transaction.atomic():
        order = Order.objects.select_for_update().filter(id=order_id).first()
        if order is None or order.shipping_status not in PROCESSABLE_STATES:
            return False

        _mark_failure(
            order,
            status=Order.SHIPPING_FAILED,
            message=f"Shipment job gave up: {error}",
            details={"job_error": error, "shipment_id": order.shipment_id},
        )
    return True
