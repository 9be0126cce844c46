# shipping/tests/test_shiprocket_adapter.py

from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase, override_settings

from shipping.carrier import (
    CarrierAuthError,
    CarrierPermissionError,
    CarrierRequestError,
    CarrierServiceabilityError,
    CarrierTrackingError,
    CarrierUnavailableError,
    FakeCarrier,
    ShiprocketCarrier,
    get_carrier,
    reset_carrier,
    set_carrier,
    tracking_url_for,
)
from shipping.carrier.http import CarrierNetworkError

CONFIG = {
    "BASE_URL": "https://carrier.test/v1",
    "EMAIL": "ops@example.com",
    "PASSWORD": "pw",
    "COMPANY_ID": "100200",
    "MAX_RETRIES": 2,
    "BACKOFF_SECONDS": 1.0,
}


class ScriptedTransport:
    """
    Replays queued responses per path prefix. A queued exception instance is
    raised instead of returned. Every request is recorded.
    """

    def __init__(self):
        self.script: dict[str, list] = {}
        self.requests: list[dict] = []
        self._logins = 0

    def on(self, path: str, *responses):
        self.script.setdefault(path, []).extend(responses)
        return self

    def __call__(self, method, url, *, body, headers, timeout):
        path = url[len(CONFIG["BASE_URL"]):]
        self.requests.append({"method": method, "path": path, "body": body, "headers": dict(headers)})

        if path == "/auth/login" and "/auth/login" not in self.script:
            self._logins += 1
            return 200, {"token": f"token-{self._logins}"}

        for prefix, queue in self.script.items():
            if path.startswith(prefix) and queue:
                response = queue.pop(0)
                if isinstance(response, Exception):
                    raise response
                return response
        raise AssertionError(f"unscripted request {method} {path}")

    def paths(self, prefix: str) -> list[dict]:
        return [r for r in self.requests if r["path"].startswith(prefix)]


BOOKED = (200, {"status_code": 1, "shipment_id": 9001, "order_id": 7001})


class ShiprocketCallPolicyTests(SimpleTestCase):
    """
    GUARANTEES:
    - 401 -> exactly one token refresh and one replay of the call
    - 403 -> CarrierPermissionError with remediation, never retried
    - network errors and 5xx retried with linear backoff, bounded
    - other 4xx -> CarrierRequestError, not retried
    """

    def setUp(self):
        self.transport = ScriptedTransport()
        self.sleeps = []
        self.carrier = ShiprocketCarrier(config=CONFIG, transport=self.transport, sleep=self.sleeps.append)

    def test_token_fetched_once_and_reused(self):
        self.transport.on("/orders/create/adhoc", BOOKED, BOOKED)

        self.carrier.create_shipment({"order_id": "A"})
        self.carrier.create_shipment({"order_id": "B"})

        self.assertEqual(len(self.transport.paths("/auth/login")), 1)
        self.assertEqual(self.carrier.tokens.refresh_count, 1)

    def test_401_refreshes_once_and_replays(self):
        self.transport.on("/orders/create/adhoc", (401, {"message": "expired"}), BOOKED)

        booking = self.carrier.create_shipment({"order_id": "A"})

        self.assertEqual(booking.shipment_id, "9001")
        self.assertEqual(booking.carrier_order_id, "7001")

        logins = self.transport.paths("/auth/login")
        creates = self.transport.paths("/orders/create/adhoc")
        self.assertEqual(len(logins), 2)
        self.assertEqual(len(creates), 2)
        self.assertEqual(creates[0]["headers"]["Authorization"], "Bearer token-1")
        self.assertEqual(creates[1]["headers"]["Authorization"], "Bearer token-2")
        self.assertEqual(creates[0]["body"], creates[1]["body"])

    def test_second_401_raises_auth_error(self):
        self.transport.on("/orders/create/adhoc", (401, {}), (401, {"message": "still bad"}))

        with self.assertRaises(CarrierAuthError):
            self.carrier.create_shipment({"order_id": "A"})

        self.assertEqual(len(self.transport.paths("/orders/create/adhoc")), 2)
        self.assertEqual(len(self.transport.paths("/auth/login")), 2)

    def test_403_is_permission_error_with_remediation(self):
        self.transport.on("/orders/create/adhoc", (403, {"message": "Unauthorized! You do not have the required permissions"}))

        with self.assertRaises(CarrierPermissionError) as ctx:
            self.carrier.create_shipment({"order_id": "A"})

        exc = ctx.exception
        self.assertIn("ops@example.com", exc.remediation)
        self.assertIn("100200", exc.remediation)
        self.assertEqual(exc.details["error_code"], 403)
        self.assertEqual(exc.details["error_type"], "API_PERMISSION_DENIED")
        self.assertEqual(len(self.transport.paths("/orders/create/adhoc")), 1)
        self.assertEqual(self.sleeps, [])

    def test_5xx_retried_with_linear_backoff(self):
        self.transport.on("/orders/create/adhoc", (502, {}), (503, {}), BOOKED)

        booking = self.carrier.create_shipment({"order_id": "A"})

        self.assertEqual(booking.shipment_id, "9001")
        self.assertEqual(self.sleeps, [1.0, 2.0])
        self.assertEqual(len(self.transport.paths("/orders/create/adhoc")), 3)

    def test_5xx_exhausted_raises_request_error(self):
        self.transport.on("/orders/create/adhoc", (500, {}), (500, {}), (500, {"message": "down"}))

        with self.assertRaises(CarrierRequestError) as ctx:
            self.carrier.create_shipment({"order_id": "A"})

        self.assertEqual(ctx.exception.status_code, 500)
        self.assertTrue(ctx.exception.retryable)
        self.assertEqual(len(self.transport.paths("/orders/create/adhoc")), 3)

    def test_network_errors_exhausted_raise_unavailable(self):
        self.transport.on(
            "/orders/create/adhoc",
            CarrierNetworkError("timed out"),
            CarrierNetworkError("timed out"),
            CarrierNetworkError("timed out"),
        )

        with self.assertRaises(CarrierUnavailableError):
            self.carrier.create_shipment({"order_id": "A"})

        self.assertEqual(self.sleeps, [1.0, 2.0])

    def test_other_4xx_not_retried(self):
        self.transport.on("/orders/create/adhoc", (422, {"message": "pincode invalid"}))

        with self.assertRaises(CarrierRequestError) as ctx:
            self.carrier.create_shipment({"order_id": "A"})

        self.assertEqual(ctx.exception.status_code, 422)
        self.assertFalse(ctx.exception.retryable)
        self.assertEqual(len(self.transport.paths("/orders/create/adhoc")), 1)
        self.assertEqual(self.sleeps, [])

    def test_missing_credentials_raise_auth_error(self):
        carrier = ShiprocketCarrier(
            config={**CONFIG, "EMAIL": "", "PASSWORD": ""},
            transport=self.transport,
            sleep=self.sleeps.append,
        )

        with self.assertRaises(CarrierAuthError):
            carrier.create_shipment({"order_id": "A"})
        self.assertEqual(self.transport.requests, [])


class ShiprocketResponseParsingTests(SimpleTestCase):
    """
    GUARANTEES:
    - AWB success requires awb_assign_status == 1
    - status_code 350 surfaces as an insufficient-wallet tracking error
    - track() reports delivered from current_status or shipment_status 7
    - no courier companies -> CarrierServiceabilityError
    """

    def setUp(self):
        self.transport = ScriptedTransport()
        self.carrier = ShiprocketCarrier(config=CONFIG, transport=self.transport, sleep=lambda _s: None)

    def test_booking_without_shipment_id_is_error(self):
        self.transport.on("/orders/create/adhoc", (200, {"status_code": 0, "message": "Wrong pickup location"}))

        with self.assertRaises(CarrierRequestError):
            self.carrier.create_shipment({"order_id": "A"})

    def test_assign_tracking_parses_assignment(self):
        self.transport.on(
            "/courier/assign/awb",
            (
                200,
                {
                    "awb_assign_status": 1,
                    "response": {
                        "data": {
                            "awb_code": "AWB123",
                            "courier_name": "Delhivery",
                            "courier_company_id": 24,
                            "freight_charges": "61.5",
                            "estimated_delivery_date": "2026-03-14 00:00:00",
                        }
                    },
                },
            ),
        )

        assignment = self.carrier.assign_tracking("9001")

        self.assertEqual(assignment.tracking_code, "AWB123")
        self.assertEqual(assignment.courier_name, "Delhivery")
        self.assertEqual(assignment.courier_company_id, "24")
        self.assertEqual(assignment.freight_charge, Decimal("61.5"))
        self.assertEqual(assignment.expected_delivery_date, date(2026, 3, 14))
        self.assertEqual(self.transport.paths("/courier/assign/awb")[0]["body"], {"shipment_id": "9001"})

    def test_assign_tracking_insufficient_wallet(self):
        self.transport.on("/courier/assign/awb", (200, {"awb_assign_status": 0, "status_code": 350}))

        with self.assertRaises(CarrierTrackingError) as ctx:
            self.carrier.assign_tracking("9001")

        self.assertIn("wallet", str(ctx.exception))
        self.assertEqual(ctx.exception.details["status_code"], 350)

    def test_assign_tracking_failure(self):
        self.transport.on("/courier/assign/awb", (200, {"awb_assign_status": 0, "message": "no courier"}))

        with self.assertRaises(CarrierTrackingError):
            self.carrier.assign_tracking("9001")

    def test_track_delivered(self):
        self.transport.on(
            "/courier/track/awb/AWB123",
            (
                200,
                {
                    "tracking_data": {
                        "shipment_status": 7,
                        "shipment_track": [{"current_status": "Delivered"}],
                        "shipment_track_activities": [
                            {"sr-status-label": "DELIVERED", "date": "2026-03-14 10:00:00", "location": "Pune"}
                        ],
                    }
                },
            ),
        )

        status = self.carrier.track("AWB123")

        self.assertTrue(status.delivered)
        self.assertEqual(status.current_status, "Delivered")
        self.assertEqual(status.events[0].location, "Pune")

    def test_track_in_transit(self):
        self.transport.on(
            "/courier/track/awb/AWB123",
            (200, {"tracking_data": {"shipment_status": 6, "shipment_track": [{"current_status": "In Transit"}]}}),
        )

        status = self.carrier.track("AWB123")

        self.assertFalse(status.delivered)
        self.assertEqual(status.events, [])

    def test_serviceability_options(self):
        self.transport.on(
            "/courier/serviceability/",
            (
                200,
                {
                    "data": {
                        "available_courier_companies": [
                            {"courier_company_id": 10, "courier_name": "Blue Dart", "rate": 88, "etd": "Mar 14, 2026"}
                        ]
                    }
                },
            ),
        )

        options = self.carrier.check_serviceability(
            pickup_pincode="110001", delivery_pincode="411001", weight=Decimal("0.5")
        )

        self.assertEqual(len(options), 1)
        self.assertEqual(options[0].courier_name, "Blue Dart")
        self.assertEqual(options[0].rate, Decimal("88"))
        path = self.transport.paths("/courier/serviceability/")[0]["path"]
        self.assertIn("delivery_postcode=411001", path)

    def test_serviceability_none(self):
        self.transport.on("/courier/serviceability/", (200, {"data": {"available_courier_companies": []}}))

        with self.assertRaises(CarrierServiceabilityError):
            self.carrier.check_serviceability(
                pickup_pincode="110001", delivery_pincode="999999", weight=Decimal("0.5")
            )

    def test_exchange_requires_success_flag(self):
        self.transport.on("/orders/create/exchange", (200, {"success": False, "message": "bad sku"}))

        with self.assertRaises(CarrierRequestError):
            self.carrier.create_exchange_shipment({"return_order_id": "R_1", "exchange_order_id": "EX_1"})

    def test_exchange_legs_fall_back_to_references(self):
        self.transport.on(
            "/orders/create/exchange",
            (
                200,
                {
                    "success": True,
                    "data": {
                        "return_orders": {"shipment_id": 11},
                        "forward_orders": {"order_id": 22, "shipment_id": 12, "awb_code": "FWD1"},
                    },
                },
            ),
        )

        booking = self.carrier.create_exchange_shipment({"return_order_id": "R_1", "exchange_order_id": "EX_1"})

        self.assertEqual(booking.return_leg.carrier_order_id, "R_1")
        self.assertEqual(booking.return_leg.shipment_id, "11")
        self.assertEqual(booking.forward_leg.carrier_order_id, "22")
        self.assertEqual(booking.forward_leg.tracking_code, "FWD1")


class CarrierRegistryTests(SimpleTestCase):
    def tearDown(self):
        reset_carrier()

    def test_settings_select_adapter(self):
        reset_carrier()
        with override_settings(SHIPPING={"CARRIER": "fake", "SHIPROCKET": {}}):
            self.assertIsInstance(get_carrier(), FakeCarrier)
            self.assertIs(get_carrier(), get_carrier())

    def test_set_carrier_overrides(self):
        fake = FakeCarrier()
        set_carrier(fake)
        self.assertIs(get_carrier(), fake)

    def test_tracking_url(self):
        with override_settings(SHIPPING={"SHIPROCKET": {"TRACKING_URL_TEMPLATE": "https://t.example/{awb}"}}):
            self.assertEqual(tracking_url_for("AWB9"), "https://t.example/AWB9")
            self.assertEqual(tracking_url_for(""), "")
