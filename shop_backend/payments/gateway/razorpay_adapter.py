# payments/gateway/razorpay_adapter.py
from __future__ import annotations

import base64
import json
import logging
from decimal import Decimal
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from django.conf import settings

from payments.gateway.port import (
    GatewayError,
    GatewayIntent,
    GatewayIntentError,
    GatewayRefundError,
    PaymentGateway,
    RefundResult,
    signature_matches,
    to_minor_units,
)

logger = logging.getLogger(__name__)

RAZORPAY_BASE = "https://api.razorpay.com/v1"


def _razorpay_cfg() -> dict:
    payments = getattr(settings, "PAYMENTS", {}) or {}
    cfg = payments.get("RAZORPAY") if isinstance(payments, dict) else None
    return cfg if isinstance(cfg, dict) else {}


def _safe_preview(text: str, limit: int = 800) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + " ...(truncated)"


def _parse_json(raw: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(raw or "")
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


class RazorpayGateway(PaymentGateway):
    """
    Razorpay-style REST adapter (urllib, HTTP basic auth).

    - POST /orders                      -> gateway intent (amount in paise)
    - POST /payments/<id>/refund        -> refund
    - signature = HMAC-SHA256(key_secret, "<order_id>|<payment_id>")
    """

    name = "razorpay"

    def __init__(self, *, key_id: str = "", key_secret: str = "", base_url: str = "", timeout: int = 0):
        cfg = _razorpay_cfg()
        self.key_id = (key_id or cfg.get("KEY_ID") or "").strip()
        self.key_secret = (key_secret or cfg.get("KEY_SECRET") or "").strip()
        self.base_url = (base_url or cfg.get("BASE_URL") or RAZORPAY_BASE).rstrip("/")
        self.timeout = int(timeout or cfg.get("TIMEOUT_SECONDS") or 20)

    # --------------------------------------------------
    # transport
    # --------------------------------------------------
    def _auth_header(self) -> str:
        if not self.key_id or not self.key_secret:
            raise GatewayError(
                "Razorpay credentials are not configured. "
                "Expected settings.PAYMENTS['RAZORPAY']['KEY_ID'/'KEY_SECRET']."
            )
        token = base64.b64encode(f"{self.key_id}:{self.key_secret}".encode("utf-8"))
        return f"Basic {token.decode('ascii')}"

    def _request_json(self, method: str, path: str, *, body: dict | None = None) -> dict[str, Any]:
        data = None
        if body is not None:
            data = json.dumps(body, ensure_ascii=False).encode("utf-8")

        req = Request(
            f"{self.base_url}{path}",
            data=data,
            headers={
                "Authorization": self._auth_header(),
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            method=method,
        )

        try:
            with urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except HTTPError as e:
            raw = e.read().decode("utf-8", errors="replace") if e.fp else ""
            parsed = _parse_json(raw) or {}
            err = parsed.get("error") if isinstance(parsed.get("error"), dict) else {}
            msg = err.get("description") or _safe_preview(raw) or "Razorpay rejected request"
            raise GatewayError(f"Razorpay HTTPError: {e.code} {msg}") from e
        except URLError as e:
            raise GatewayError(f"Razorpay URLError: {e.reason}") from e

        parsed = _parse_json(raw)
        if parsed is None:
            raise GatewayError(f"Razorpay returned non-JSON: {_safe_preview(raw)}")
        return parsed

    # --------------------------------------------------
    # port
    # --------------------------------------------------
    def create_intent(self, *, amount: Decimal, currency: str, receipt: str) -> GatewayIntent:
        payload = {
            "amount": to_minor_units(amount),
            "currency": str(currency).strip().upper(),
            "receipt": str(receipt)[:40],
        }
        try:
            parsed = self._request_json("POST", "/orders", body=payload)
        except GatewayError as exc:
            raise GatewayIntentError(str(exc)) from exc

        gateway_order_id = str(parsed.get("id") or "").strip()
        if not gateway_order_id:
            raise GatewayIntentError("Razorpay order response missing id")

        logger.info(
            "Gateway intent created",
            extra={"gateway_order_id": gateway_order_id, "receipt": payload["receipt"]},
        )
        return GatewayIntent(
            gateway_order_id=gateway_order_id,
            amount=Decimal(str(amount)),
            currency=payload["currency"],
            receipt=payload["receipt"],
        )

    def verify_signature(self, *, order_id: str, payment_id: str, signature: str) -> bool:
        return signature_matches(
            secret=self.key_secret,
            order_id=order_id,
            payment_id=payment_id,
            signature=signature,
        )

    def refund(self, *, payment_id: str, amount: Decimal) -> RefundResult:
        pid = str(payment_id or "").strip()
        if not pid:
            raise GatewayRefundError("payment_id is required for a refund")

        try:
            parsed = self._request_json(
                "POST",
                f"/payments/{pid}/refund",
                body={"amount": to_minor_units(amount), "speed": "optimum"},
            )
        except GatewayError as exc:
            raise GatewayRefundError(str(exc)) from exc

        refund_id = str(parsed.get("id") or "").strip()
        if not refund_id:
            raise GatewayRefundError(f"Refund rejected: {_safe_preview(json.dumps(parsed))}")

        logger.info("Gateway refund initiated", extra={"payment_id": pid, "refund_id": refund_id})
        return RefundResult(
            refund_id=refund_id,
            amount=Decimal(str(amount)),
            status=str(parsed.get("status") or "initiated"),
        )
