"""Payment gateway factory.

get_gateway() builds the adapter named by settings.PAYMENTS["GATEWAY"]
("razorpay" or "fake") once per process; set_gateway() / reset_gateway()
let tests swap it.
"""

from __future__ import annotations

from django.conf import settings

from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import (
    GatewayError,
    GatewayIntent,
    GatewayIntentError,
    GatewayRefundError,
    PaymentGateway,
    RefundResult,
)
from payments.gateway.razorpay_adapter import RazorpayGateway

_current_gateway: PaymentGateway | None = None

_ADAPTERS = {
    "razorpay": RazorpayGateway,
    "fake": FakeGateway,
}


def get_gateway() -> PaymentGateway:
    global _current_gateway
    if _current_gateway is None:
        name = str(settings.PAYMENTS.get("GATEWAY") or "razorpay").lower()
        try:
            adapter_cls = _ADAPTERS[name]
        except KeyError as exc:
            raise GatewayError(f"Unknown payment gateway adapter: {name}") from exc
        _current_gateway = adapter_cls()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None


__all__ = [
    "FakeGateway",
    "GatewayError",
    "GatewayIntent",
    "GatewayIntentError",
    "GatewayRefundError",
    "PaymentGateway",
    "RazorpayGateway",
    "RefundResult",
    "get_gateway",
    "reset_gateway",
    "set_gateway",
]
