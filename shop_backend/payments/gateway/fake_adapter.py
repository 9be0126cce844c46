# payments/gateway/fake_adapter.py

"""
Configurable in-memory payment gateway for development and tests.

- create_intent returns "order_fake_<hex>" ids
- verify_signature uses the same HMAC rule as the real adapter, keyed with
  settings.PAYMENTS["RAZORPAY"]["KEY_SECRET"], so tests sign with
  payments.gateway.port.compute_signature
- refund can be configured to fail (GatewayRefundError)
- every call is recorded in `calls`
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

from django.conf import settings

from payments.gateway.port import (
    GatewayIntent,
    GatewayIntentError,
    GatewayRefundError,
    PaymentGateway,
    RefundResult,
    signature_matches,
)


class FakeGateway(PaymentGateway):
    name = "fake"

    def __init__(self, *, key_secret: str | None = None) -> None:
        if key_secret is None:
            key_secret = settings.PAYMENTS.get("RAZORPAY", {}).get("KEY_SECRET", "")
        self.key_secret = key_secret
        self.intent_should_succeed = True
        self.refund_should_succeed = True
        self.failure_reason = "Gateway declined"
        self.calls: list[dict] = []

    def configure(
        self,
        *,
        intent_should_succeed: bool = True,
        refund_should_succeed: bool = True,
        failure_reason: str = "Gateway declined",
    ) -> None:
        self.intent_should_succeed = intent_should_succeed
        self.refund_should_succeed = refund_should_succeed
        self.failure_reason = failure_reason

    def calls_for(self, method: str) -> list[dict]:
        return [c for c in self.calls if c["method"] == method]

    def create_intent(self, *, amount: Decimal, currency: str, receipt: str) -> GatewayIntent:
        self.calls.append(
            {"method": "create_intent", "amount": amount, "currency": currency, "receipt": receipt}
        )
        if not self.intent_should_succeed:
            raise GatewayIntentError(self.failure_reason)
        return GatewayIntent(
            gateway_order_id=f"order_fake_{uuid4().hex[:14]}",
            amount=Decimal(str(amount)),
            currency=currency,
            receipt=receipt,
        )

    def verify_signature(self, *, order_id: str, payment_id: str, signature: str) -> bool:
        self.calls.append(
            {"method": "verify_signature", "order_id": order_id, "payment_id": payment_id}
        )
        return signature_matches(
            secret=self.key_secret,
            order_id=order_id,
            payment_id=payment_id,
            signature=signature,
        )

    def refund(self, *, payment_id: str, amount: Decimal) -> RefundResult:
        self.calls.append({"method": "refund", "payment_id": payment_id, "amount": amount})
        if not self.refund_should_succeed:
            raise GatewayRefundError(self.failure_reason)
        return RefundResult(
            refund_id=f"rfnd_fake_{uuid4().hex[:12]}",
            amount=Decimal(str(amount)),
            status="processed",
        )
