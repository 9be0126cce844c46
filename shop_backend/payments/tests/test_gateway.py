# payments/tests/test_gateway.py

import io
import json
from decimal import Decimal
from unittest.mock import patch
from urllib.error import HTTPError

from django.test import SimpleTestCase, override_settings

from payments.gateway import (
    FakeGateway,
    GatewayError,
    GatewayIntentError,
    GatewayRefundError,
    RazorpayGateway,
    get_gateway,
    reset_gateway,
    set_gateway,
)
from payments.gateway.port import compute_signature, signature_matches, to_minor_units


class _FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


def _json_response(payload: dict) -> _FakeResponse:
    return _FakeResponse(json.dumps(payload).encode("utf-8"))


class SignatureTests(SimpleTestCase):
    """
    GUARANTEES:
    - signature is HMAC-SHA256 over "order_id|payment_id"
    - any change to either id or the secret invalidates it
    """

    def test_round_trip(self):
        sig = compute_signature(secret="s3cret", order_id="order_1", payment_id="pay_1")
        self.assertTrue(signature_matches(secret="s3cret", order_id="order_1", payment_id="pay_1", signature=sig))

    def test_tampered_inputs_rejected(self):
        sig = compute_signature(secret="s3cret", order_id="order_1", payment_id="pay_1")

        self.assertFalse(signature_matches(secret="s3cret", order_id="order_2", payment_id="pay_1", signature=sig))
        self.assertFalse(signature_matches(secret="other", order_id="order_1", payment_id="pay_1", signature=sig))
        self.assertFalse(signature_matches(secret="s3cret", order_id="order_1", payment_id="pay_1", signature=""))

    def test_known_vector(self):
        # hmac.new(b"key", b"a|b", sha256).hexdigest()
        import hashlib
        import hmac

        expected = hmac.new(b"key", b"a|b", hashlib.sha256).hexdigest()
        self.assertEqual(compute_signature(secret="key", order_id="a", payment_id="b"), expected)

    def test_minor_units_round_half_up(self):
        self.assertEqual(to_minor_units(Decimal("10.005")), 1001)
        self.assertEqual(to_minor_units("900"), 90000)


class GatewayRegistryTests(SimpleTestCase):
    def tearDown(self):
        reset_gateway()

    def test_test_settings_select_fake_gateway(self):
        reset_gateway()
        self.assertIsInstance(get_gateway(), FakeGateway)

    @override_settings(PAYMENTS={"GATEWAY": "nope", "RAZORPAY": {}})
    def test_unknown_adapter_rejected(self):
        reset_gateway()
        with self.assertRaises(GatewayError):
            get_gateway()

    def test_set_gateway_overrides(self):
        fake = FakeGateway(key_secret="x")
        set_gateway(fake)
        self.assertIs(get_gateway(), fake)


class FakeGatewayTests(SimpleTestCase):
    def test_scripted_failures(self):
        gateway = FakeGateway(key_secret="x")
        gateway.configure(intent_should_succeed=False, refund_should_succeed=False)

        with self.assertRaises(GatewayIntentError):
            gateway.create_intent(amount=Decimal("10"), currency="INR", receipt="r")
        with self.assertRaises(GatewayRefundError):
            gateway.refund(payment_id="pay_1", amount=Decimal("10"))

        self.assertEqual(len(gateway.calls_for("refund")), 1)


class RazorpayGatewayTests(SimpleTestCase):
    """HTTP adapter: paise conversion, basic auth, error mapping."""

    def setUp(self):
        self.gateway = RazorpayGateway(
            key_id="rzp_key",
            key_secret="rzp_secret",
            base_url="https://razorpay.test/v1",
            timeout=5,
        )

    @patch("payments.gateway.razorpay_adapter.urlopen")
    def test_create_intent_posts_minor_units(self, mock_urlopen):
        mock_urlopen.return_value = _json_response({"id": "order_ABC", "amount": 90000})

        intent = self.gateway.create_intent(amount=Decimal("900.00"), currency="inr", receipt="ORD-1")

        self.assertEqual(intent.gateway_order_id, "order_ABC")
        self.assertEqual(intent.currency, "INR")

        request = mock_urlopen.call_args[0][0]
        self.assertEqual(request.full_url, "https://razorpay.test/v1/orders")
        self.assertEqual(json.loads(request.data)["amount"], 90000)
        self.assertTrue(request.get_header("Authorization").startswith("Basic "))

    @patch("payments.gateway.razorpay_adapter.urlopen")
    def test_http_error_becomes_intent_error(self, mock_urlopen):
        body = io.BytesIO(json.dumps({"error": {"description": "Bad amount"}}).encode("utf-8"))
        mock_urlopen.side_effect = HTTPError("https://razorpay.test/v1/orders", 400, "Bad Request", {}, body)

        with self.assertRaises(GatewayIntentError) as ctx:
            self.gateway.create_intent(amount=Decimal("1"), currency="INR", receipt="r")
        self.assertIn("Bad amount", str(ctx.exception))

    @patch("payments.gateway.razorpay_adapter.urlopen")
    def test_refund(self, mock_urlopen):
        mock_urlopen.return_value = _json_response({"id": "rfnd_1", "status": "processed"})

        refund = self.gateway.refund(payment_id="pay_1", amount=Decimal("50.50"))

        self.assertEqual(refund.refund_id, "rfnd_1")
        request = mock_urlopen.call_args[0][0]
        self.assertTrue(request.full_url.endswith("/payments/pay_1/refund"))
        self.assertEqual(json.loads(request.data)["amount"], 5050)

    def test_missing_credentials(self):
        gateway = RazorpayGateway(key_id="", key_secret="", base_url="https://razorpay.test/v1")
        gateway.key_id = ""
        gateway.key_secret = ""
        with self.assertRaises(GatewayIntentError):
            gateway.create_intent(amount=Decimal("1"), currency="INR", receipt="r")

    def test_verify_signature_uses_key_secret(self):
        sig = compute_signature(secret="rzp_secret", order_id="order_1", payment_id="pay_1")
        self.assertTrue(self.gateway.verify_signature(order_id="order_1", payment_id="pay_1", signature=sig))
        self.assertFalse(self.gateway.verify_signature(order_id="order_1", payment_id="pay_2", signature=sig))
