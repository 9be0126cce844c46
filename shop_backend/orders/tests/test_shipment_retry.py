# orders/tests/test_shipment_retry.py

from orders.models import Order, ShipmentJob
from orders.services.shipment_orchestrator import process_shipment
from orders.services.shipment_retry import ShipmentRetryNotAllowedError, retry_shipping
from orders.tests.factories import FulfillmentTestCase, line, place_order
from shipping.carrier import CarrierPermissionError, CarrierRequestError, CarrierTrackingError


class RetryShippingTests(FulfillmentTestCase):
    """
    GUARANTEES:
    - accepted from pending / failed / awb_failed only
    - retrying / processing are returned unchanged
    - shipped, delivered, cancelled, permission_denied are rejected unchanged
    - a kept shipment id is reused on the next run
    """

    def setUp(self):
        super().setUp()
        self.order = self.paid_order()

    def _set_status(self, status, **fields):
        Order.objects.filter(id=self.order.id).update(shipping_status=status, **fields)

    def test_failed_order_is_requeued(self):
        self.carrier.configure(create_error=CarrierRequestError("bad pincode", status_code=422))
        process_shipment(self.order.id)
        ShipmentJob.objects.filter(order=self.order).update(attempts=4, status=ShipmentJob.STATUS_DONE)

        result = retry_shipping(order_id=self.order.id)

        self.assertTrue(result.scheduled)
        self.assertEqual(result.order.shipping_status, Order.SHIPPING_RETRYING)
        self.assertEqual(result.order.shipping_error, "")

        job = ShipmentJob.objects.get(order=self.order)
        self.assertEqual(job.status, ShipmentJob.STATUS_QUEUED)
        self.assertEqual(job.attempts, 0)

    def test_awb_failed_retry_resumes_at_tracking(self):
        self.carrier.configure(assign_error=CarrierTrackingError("wallet empty"))
        process_shipment(self.order.id)
        self.order.refresh_from_db()
        shipment_id = self.order.shipment_id

        self.carrier.configure()
        with self.captureOnCommitCallbacks(execute=True):
            retry_shipping(order_id=self.order.id)

        self.order.refresh_from_db()
        self.assertEqual(self.order.shipping_status, Order.SHIPPING_SHIPPED)
        self.assertEqual(self.order.shipment_id, shipment_id)
        self.assertEqual(len(self.carrier.calls_for("create_shipment")), 1)
        self.assertEqual(len(self.carrier.calls_for("assign_tracking")), 2)

    def test_pending_order_can_be_kicked(self):
        result = retry_shipping(order_id=self.order.id)
        self.assertTrue(result.scheduled)

    def test_in_flight_is_noop(self):
        for status in (Order.SHIPPING_RETRYING, Order.SHIPPING_PROCESSING):
            self._set_status(status, shipping_error="")
            result = retry_shipping(order_id=self.order.id)
            self.assertFalse(result.scheduled)
            self.assertEqual(result.order.shipping_status, status)

    def test_rejected_states_leave_order_unchanged(self):
        for status in (
            Order.SHIPPING_SHIPPED,
            Order.SHIPPING_DELIVERED,
            Order.SHIPPING_CANCELLED,
            Order.SHIPPING_PERMISSION_DENIED,
        ):
            self._set_status(status, shipping_error="kept")

            with self.assertRaises(ShipmentRetryNotAllowedError):
                retry_shipping(order_id=self.order.id)

            self.order.refresh_from_db()
            self.assertEqual(self.order.shipping_status, status)
            self.assertEqual(self.order.shipping_error, "kept")

    def test_permission_denied_stays_put(self):
        self.carrier.configure(create_error=CarrierPermissionError("forbidden", remediation="call support"))
        process_shipment(self.order.id)

        with self.assertRaises(ShipmentRetryNotAllowedError):
            retry_shipping(order_id=self.order.id)

    def test_unpaid_order_rejected(self):
        unpaid = place_order(self.customer, [line(self.item, sku="SHIRT-L", size="L")])

        with self.assertRaises(ShipmentRetryNotAllowedError):
            retry_shipping(order_id=unpaid.id)
