# shipping/carrier/shiprocket_adapter.py

"""
======================================================
PATH: shipping/carrier/shiprocket_adapter.py
======================================================
SHIPROCKET-STYLE CARRIER AGGREGATOR ADAPTER

Call policy (every authenticated call goes through `_call`):
- per-call timeout (SHIPPING["SHIPROCKET"]["TIMEOUT_SECONDS"])
- network errors and 5xx: retried up to MAX_RETRIES times,
  linear backoff (BACKOFF_SECONDS * attempt)
- 401: token invalidated, exactly ONE refresh + ONE replay of the call;
  a second 401 surfaces as CarrierAuthError
- 403: CarrierPermissionError immediately (never retried), with
  operator remediation text (account email, company id, support contact)
- other 4xx: CarrierRequestError (not retried)

Endpoints:
- POST /auth/login
- GET  /courier/serviceability/
- POST /orders/create/adhoc
- POST /courier/assign/awb        (awb_assign_status == 1 means success)
- POST /orders/cancel
- GET  /courier/track/awb/<awb>
- POST /orders/create/return
- POST /orders/create/exchange
"""

from __future__ import annotations

import logging
import time
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable
from urllib.parse import urlencode

from django.conf import settings

from shipping.carrier.http import CarrierNetworkError, urllib_transport
from shipping.carrier.port import (
    CarrierAuthError,
    CarrierLeg,
    CarrierPermissionError,
    CarrierPort,
    CarrierRequestError,
    CarrierServiceabilityError,
    CarrierTrackingError,
    CarrierUnavailableError,
    CourierOption,
    ExchangeBooking,
    ShipmentBooking,
    TrackingAssignment,
    TrackingEvent,
    TrackingStatus,
)
from shipping.carrier.token_provider import TokenProvider

logger = logging.getLogger(__name__)

SHIPROCKET_BASE = "https://apiv2.shiprocket.in/v1/external"

# AWB assignment status_code for an empty carrier wallet
STATUS_INSUFFICIENT_WALLET = 350

DELIVERED_SHIPMENT_STATUS = 7


def _shiprocket_cfg() -> dict:
    shipping = getattr(settings, "SHIPPING", {}) or {}
    cfg = shipping.get("SHIPROCKET") if isinstance(shipping, dict) else None
    return cfg if isinstance(cfg, dict) else {}


def _decimal(v, default: str = "0.00") -> Decimal:
    if v is None or v == "":
        return Decimal(default)
    try:
        return Decimal(str(v))
    except (InvalidOperation, ValueError, TypeError):
        return Decimal(default)


def _parse_date(v) -> date | None:
    raw = str(v or "").strip()
    if not raw:
        return None
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d", "%d-%m-%Y", "%b %d, %Y"):
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def _message(parsed: dict) -> str:
    return str(parsed.get("message") or parsed.get("error") or parsed.get("raw") or "").strip()


class ShiprocketCarrier(CarrierPort):
    name = "shiprocket"

    def __init__(
        self,
        *,
        config: dict | None = None,
        transport: Callable[..., tuple[int, dict[str, Any]]] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        cfg = dict(_shiprocket_cfg())
        cfg.update(config or {})

        self.base_url = str(cfg.get("BASE_URL") or SHIPROCKET_BASE).rstrip("/")
        self.email = str(cfg.get("EMAIL") or "").strip()
        self.password = str(cfg.get("PASSWORD") or "")
        self.timeout = float(cfg.get("TIMEOUT_SECONDS") or 15)
        self.max_retries = int(cfg.get("MAX_RETRIES") if cfg.get("MAX_RETRIES") is not None else 2)
        self.backoff_seconds = float(cfg.get("BACKOFF_SECONDS") or 0)
        self.company_id = str(cfg.get("COMPANY_ID") or "").strip()
        self.support_email = str(cfg.get("SUPPORT_EMAIL") or "support@shiprocket.in").strip()

        self.transport = transport or urllib_transport
        self.sleep = sleep
        self.tokens = TokenProvider(
            self.authenticate,
            ttl_seconds=cfg.get("TOKEN_TTL_SECONDS") or 10 * 24 * 3600,
            safety_margin_seconds=cfg.get("TOKEN_SAFETY_MARGIN_SECONDS") or 0,
            clock=clock,
        )

    # --------------------------------------------------
    # transport + call policy
    # --------------------------------------------------
    def _remediation(self) -> str:
        account = self.email or "<unset>"
        company = self.company_id or "<unknown>"
        return (
            f"Carrier account permission issue: account '{account}' "
            f"(company id {company}) lacks API order-management permissions. "
            f"Email {self.support_email} with the account details to enable API access."
        )

    def _send(self, method: str, path: str, *, body: dict | None, token: str | None):
        """
        One HTTP exchange with bounded retries for network errors and 5xx.
        Returns (status, parsed) for any non-5xx response.
        """
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        attempt = 0

        while True:
            try:
                status, parsed = self.transport(
                    method, url, body=body, headers=headers, timeout=self.timeout
                )
            except CarrierNetworkError as exc:
                attempt += 1
                if attempt > self.max_retries:
                    raise CarrierUnavailableError(str(exc)) from exc
                logger.warning(
                    "Carrier request failed; retrying",
                    extra={"path": path, "attempt": attempt, "error": str(exc)},
                )
                self.sleep(self.backoff_seconds * attempt)
                continue

            if status >= 500:
                attempt += 1
                if attempt > self.max_retries:
                    raise CarrierRequestError(
                        f"Carrier server error {status}: {_message(parsed)}",
                        status_code=status,
                        payload=parsed,
                    )
                logger.warning(
                    "Carrier server error; retrying",
                    extra={"path": path, "attempt": attempt, "status": status},
                )
                self.sleep(self.backoff_seconds * attempt)
                continue

            return status, parsed

    def _call(self, method: str, path: str, *, body: dict | None = None) -> dict[str, Any]:
        token = self.tokens.get()
        status, parsed = self._send(method, path, body=body, token=token)

        if status == 401:
            logger.info("Carrier token rejected; refreshing once", extra={"path": path})
            self.tokens.invalidate(token)
            token = self.tokens.get()
            status, parsed = self._send(method, path, body=body, token=token)
            if status == 401:
                raise CarrierAuthError(f"Carrier rejected refreshed token: {_message(parsed)}")

        if status == 403:
            logger.error(
                "Carrier permission denied",
                extra={"path": path, "company_id": self.company_id},
            )
            raise CarrierPermissionError(
                f"Carrier API permission denied: {_message(parsed) or 'forbidden'}",
                remediation=self._remediation(),
                details={
                    "error_type": "API_PERMISSION_DENIED",
                    "error_code": 403,
                    "account_email": self.email,
                    "company_id": self.company_id,
                    "support_email": self.support_email,
                    "message": _message(parsed),
                },
            )

        if status >= 400:
            raise CarrierRequestError(
                f"Carrier request failed ({status}): {_message(parsed)}",
                status_code=status,
                payload=parsed,
            )

        return parsed

    # --------------------------------------------------
    # port
    # --------------------------------------------------
    def authenticate(self) -> str:
        if not self.email or not self.password:
            raise CarrierAuthError("Carrier credentials are not configured")

        try:
            status, parsed = self._send(
                "POST",
                "/auth/login",
                body={"email": self.email, "password": self.password},
                token=None,
            )
        except CarrierRequestError as exc:
            raise CarrierAuthError(f"Carrier authentication failed: {exc}") from exc

        token = str(parsed.get("token") or "").strip()
        if status >= 400 or not token:
            raise CarrierAuthError(
                f"Carrier authentication failed ({status}): {_message(parsed) or 'no token'}"
            )
        return token

    def check_serviceability(
        self, *, pickup_pincode: str, delivery_pincode: str, weight: Decimal
    ) -> list[CourierOption]:
        query = urlencode(
            {
                "pickup_postcode": pickup_pincode,
                "delivery_postcode": delivery_pincode,
                "weight": str(weight),
                "cod": 0,
            }
        )
        parsed = self._call("GET", f"/courier/serviceability/?{query}")

        data = parsed.get("data") or {}
        companies = data.get("available_courier_companies") or []
        if not companies:
            raise CarrierServiceabilityError(
                f"No courier serves {pickup_pincode} -> {delivery_pincode}"
            )

        return [
            CourierOption(
                courier_company_id=str(c.get("courier_company_id") or ""),
                courier_name=str(c.get("courier_name") or ""),
                rate=_decimal(c.get("rate") or c.get("freight_charge")),
                estimated_delivery_days=str(c.get("estimated_delivery_days") or ""),
                etd=str(c.get("etd") or ""),
            )
            for c in companies
        ]

    def create_shipment(self, payload: dict) -> ShipmentBooking:
        parsed = self._call("POST", "/orders/create/adhoc", body=payload)

        shipment_id = str(parsed.get("shipment_id") or "").strip()
        if parsed.get("status_code") != 1 and not shipment_id:
            raise CarrierRequestError(
                f"Carrier order creation failed: {_message(parsed) or parsed}",
                status_code=200,
                payload=parsed,
            )

        return ShipmentBooking(
            shipment_id=shipment_id,
            carrier_order_id=str(parsed.get("order_id") or "").strip(),
        )

    def assign_tracking(self, shipment_id: str) -> TrackingAssignment:
        parsed = self._call("POST", "/courier/assign/awb", body={"shipment_id": shipment_id})

        if parsed.get("awb_assign_status") != 1:
            if parsed.get("status_code") == STATUS_INSUFFICIENT_WALLET:
                raise CarrierTrackingError(
                    "Insufficient carrier wallet balance; recharge the wallet and retry",
                    details=parsed,
                )
            raise CarrierTrackingError(
                f"AWB generation failed: {_message(parsed) or parsed}", details=parsed
            )

        data = (parsed.get("response") or {}).get("data") or {}
        awb = str(data.get("awb_code") or "").strip()
        if not awb:
            raise CarrierTrackingError("AWB generation returned no awb_code", details=parsed)

        return TrackingAssignment(
            tracking_code=awb,
            courier_name=str(data.get("courier_name") or ""),
            freight_charge=_decimal(data.get("freight_charges")),
            courier_company_id=str(data.get("courier_company_id") or ""),
            expected_delivery_date=_parse_date(data.get("estimated_delivery_date")),
        )

    def cancel_shipment(self, carrier_order_id: str) -> bool:
        self._call("POST", "/orders/cancel", body={"ids": [carrier_order_id]})
        return True

    def track(self, tracking_code: str) -> TrackingStatus:
        parsed = self._call("GET", f"/courier/track/awb/{tracking_code}")
        data = parsed.get("tracking_data") or {}

        track_rows = data.get("shipment_track") or []
        current = str((track_rows[0] if track_rows else {}).get("current_status") or "").strip()

        events = [
            TrackingEvent(
                status=str(a.get("sr-status-label") or a.get("status") or ""),
                occurred_at=str(a.get("date") or ""),
                location=str(a.get("location") or ""),
                detail=str(a.get("activity") or ""),
            )
            for a in (data.get("shipment_track_activities") or [])
        ]

        delivered = (
            current.upper() == "DELIVERED"
            or data.get("shipment_status") == DELIVERED_SHIPMENT_STATUS
        )
        return TrackingStatus(
            tracking_code=tracking_code,
            current_status=current,
            delivered=delivered,
            events=events,
        )

    def create_return_shipment(self, payload: dict) -> CarrierLeg:
        parsed = self._call("POST", "/orders/create/return", body=payload)
        carrier_order_id = str(parsed.get("order_id") or "").strip()
        if not carrier_order_id:
            raise CarrierRequestError(
                f"Return order creation failed: {_message(parsed) or parsed}",
                status_code=200,
                payload=parsed,
            )
        return CarrierLeg(
            carrier_order_id=carrier_order_id,
            shipment_id=str(parsed.get("shipment_id") or "").strip(),
            tracking_code=str(parsed.get("awb_code") or "").strip(),
            label_url=str(parsed.get("label_url") or "").strip(),
        )

    def create_exchange_shipment(self, payload: dict) -> ExchangeBooking:
        parsed = self._call("POST", "/orders/create/exchange", body=payload)
        if not parsed.get("success"):
            raise CarrierRequestError(
                f"Exchange order creation failed: {_message(parsed) or parsed}",
                status_code=200,
                payload=parsed,
            )

        data = parsed.get("data") or {}

        def _leg(raw: dict, fallback_id: str) -> CarrierLeg:
            raw = raw or {}
            return CarrierLeg(
                carrier_order_id=str(raw.get("order_id") or fallback_id),
                shipment_id=str(raw.get("shipment_id") or "").strip(),
                tracking_code=str(raw.get("awb_code") or "").strip(),
                label_url=str(raw.get("label_url") or "").strip(),
            )

        return ExchangeBooking(
            return_leg=_leg(data.get("return_orders"), str(payload.get("return_order_id") or "")),
            forward_leg=_leg(data.get("forward_orders"), str(payload.get("exchange_order_id") or "")),
        )
