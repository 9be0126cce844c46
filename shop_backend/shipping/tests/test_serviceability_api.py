# shipping/tests/test_serviceability_api.py

from django.test import TestCase
from rest_framework.test import APIClient

from shipping.carrier import CarrierUnavailableError, FakeCarrier, reset_carrier, set_carrier

URL = "/api/shipping/serviceability/"


class ServiceabilityApiTests(TestCase):
    def setUp(self):
        self.carrier = FakeCarrier()
        set_carrier(self.carrier)
        self.addCleanup(reset_carrier)
        self.client = APIClient()

    def test_serviceable_route(self):
        res = self.client.post(URL, {"delivery_pincode": "411001"}, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["serviceable"])
        self.assertEqual(res.data["couriers"][0]["courier_name"], "Fake Express")

        call = self.carrier.calls_for("check_serviceability")[0]
        self.assertEqual(call["delivery_pincode"], "411001")
        self.assertEqual(str(call["weight"]), "0.5")

    def test_unserviceable_route_is_not_an_error(self):
        self.carrier.configure(serviceable=False)

        res = self.client.post(URL, {"delivery_pincode": "999999"}, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertFalse(res.data["serviceable"])
        self.assertEqual(res.data["couriers"], [])

    def test_invalid_pincode(self):
        res = self.client.post(URL, {"delivery_pincode": "41"}, format="json")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "VALIDATION_ERROR")

    def test_carrier_outage(self):
        def boom(**kwargs):
            raise CarrierUnavailableError("timed out")

        self.carrier.check_serviceability = boom

        res = self.client.post(URL, {"delivery_pincode": "411001"}, format="json")

        self.assertEqual(res.status_code, 502)
        self.assertEqual(res.data["error"]["code"], "CARRIER_ERROR")
