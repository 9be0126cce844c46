# payments/gateway/port.py

"""
Payment gateway port (abstract interface).

Every adapter (RazorpayGateway in production, FakeGateway in dev/test)
implements the same three operations, so order services never know which
provider they talk to.
"""

from __future__ import annotations

import hashlib
import hmac
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation


# ============================================================
# DOMAIN ERRORS
# ============================================================

class GatewayError(Exception):
    """Gateway unreachable or rejected the request."""


class GatewayIntentError(GatewayError):
    pass


class GatewayRefundError(GatewayError):
    pass


# ============================================================
# RESULTS
# ============================================================

@dataclass(frozen=True)
class GatewayIntent:
    gateway_order_id: str
    amount: Decimal
    currency: str
    receipt: str


@dataclass(frozen=True)
class RefundResult:
    refund_id: str
    amount: Decimal
    status: str


def to_minor_units(amount) -> int:
    """Decimal major units -> integer minor units (paise/cents), half-up."""
    try:
        major = Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ValueError("amount must be a valid Decimal") from exc
    minor = (major * Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(minor)


def compute_signature(*, secret: str, order_id: str, payment_id: str) -> str:
    """HMAC-SHA256 hex digest over "<order_id>|<payment_id>"."""
    body = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(str(secret).encode("utf-8"), body, hashlib.sha256).hexdigest()


def signature_matches(*, secret: str, order_id: str, payment_id: str, signature) -> bool:
    if not secret or not signature:
        return False
    expected = compute_signature(secret=secret, order_id=order_id, payment_id=payment_id)
    return hmac.compare_digest(expected, str(signature).strip())


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name = "abstract"

    @abstractmethod
    def create_intent(self, *, amount: Decimal, currency: str, receipt: str) -> GatewayIntent:
        """Open a gateway order the customer completes client-side."""

    @abstractmethod
    def verify_signature(self, *, order_id: str, payment_id: str, signature: str) -> bool:
        """Check the callback signature for (order_id, payment_id)."""

    @abstractmethod
    def refund(self, *, payment_id: str, amount: Decimal) -> RefundResult:
        """Refund `amount` of a captured payment. Raises GatewayRefundError."""
