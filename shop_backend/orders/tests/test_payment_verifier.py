# orders/tests/test_payment_verifier.py

from decimal import Decimal

from catalog.models import SizeVariant, StockCommit
from catalog.services.inventory import InsufficientStockError
from orders.models import Order, ShipmentJob
from orders.services.cancellation import cancel_order
from orders.services.payment_verifier import (
    OrderNotFoundError,
    OrderNotPayableError,
    OrderTotalsMismatchError,
    SignatureMismatchError,
    verify_payment,
)
from orders.tests.factories import FulfillmentTestCase, line, make_item, make_promo, pay, place_order, sign
from promotions.models import PromoCode


def _stock(sku):
    return SizeVariant.objects.get(sku=sku).stock


class VerifyPaymentTests(FulfillmentTestCase):
    """
    GUARANTEES:
    - valid signature -> paid / confirmed, stock committed, job queued
    - duplicate callback -> success, stock decremented exactly once
    - bad signature -> no state change at all
    """

    def setUp(self):
        super().setUp()
        self.order = place_order(self.customer, [line(self.item, sku="SHIRT-M", size="M", quantity=2)])

    def test_marks_paid_and_commits_stock(self):
        result = pay(self.order, payment_id="pay_A")

        order = result.order
        self.assertFalse(result.already_paid)
        self.assertEqual(order.payment_status, Order.PAYMENT_PAID)
        self.assertEqual(order.order_status, Order.ORDER_CONFIRMED)
        self.assertEqual(order.shipping_status, Order.SHIPPING_PENDING)
        self.assertEqual(order.gateway_payment_id, "pay_A")
        self.assertIsNotNone(order.paid_at)

        self.assertEqual(_stock("SHIRT-M"), 8)
        self.assertTrue(StockCommit.objects.filter(idempotency_key=f"{order.id}:pay_A").exists())
        self.assertEqual(ShipmentJob.objects.get(order=order).status, ShipmentJob.STATUS_QUEUED)

    def test_duplicate_callback_decrements_once(self):
        pay(self.order, payment_id="pay_A")
        second = pay(self.order, payment_id="pay_A")

        self.assertTrue(second.already_paid)
        self.assertEqual(_stock("SHIRT-M"), 8)
        self.assertEqual(StockCommit.objects.count(), 1)

    def test_signature_mismatch_changes_nothing(self):
        with self.assertRaises(SignatureMismatchError):
            verify_payment(
                gateway_order_id=self.order.gateway_order_id,
                gateway_payment_id="pay_A",
                signature=sign(self.order, "pay_A", secret="wrong"),
            )

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_AWAITING)
        self.assertEqual(self.order.gateway_payment_id, "")
        self.assertEqual(_stock("SHIRT-M"), 10)
        self.assertFalse(ShipmentJob.objects.exists())

    def test_unknown_gateway_order(self):
        self.order.gateway_order_id = "order_missing"

        with self.assertRaises(OrderNotFoundError):
            pay(self.order)

    def test_tampered_totals_rejected(self):
        Order.objects.filter(id=self.order.id).update(total_amount=Decimal("1.00"))

        with self.assertRaises(OrderTotalsMismatchError):
            pay(self.order)

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_AWAITING)
        self.assertEqual(_stock("SHIRT-M"), 10)

    def test_promo_use_counted_on_payment(self):
        promo = make_promo("SAVE10")
        order = place_order(self.customer, [line(self.item, sku="SHIRT-L", size="L")], promo_code="SAVE10")

        pay(order, payment_id="pay_promo")

        promo.refresh_from_db()
        self.assertEqual(promo.current_uses, 1)

    def test_promo_oversold_still_honoured(self):
        promo = make_promo("LAST", PromoCode.TYPE_FIXED, "50", max_uses=1)
        first = place_order(self.customer, [line(self.item, sku="SHIRT-L", size="L")], promo_code="LAST")
        second = place_order(self.customer, [line(self.item, sku="SHIRT-L", size="L")], promo_code="LAST")

        pay(first, payment_id="pay_1")
        result = pay(second, payment_id="pay_2")

        self.assertEqual(result.order.payment_status, Order.PAYMENT_PAID)
        promo.refresh_from_db()
        self.assertEqual(promo.current_uses, 1)
        self.assertFalse(result.order.promo_use_counted)
        first.refresh_from_db()
        self.assertTrue(first.promo_use_counted)

    def test_eager_job_ships_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            pay(self.order, payment_id="pay_A")

        self.order.refresh_from_db()
        self.assertEqual(self.order.shipping_status, Order.SHIPPING_SHIPPED)
        self.assertTrue(self.order.tracking_code.startswith("AWB"))
        self.assertEqual(ShipmentJob.objects.get(order=self.order).status, ShipmentJob.STATUS_DONE)


class StockFailureAtPaymentTests(FulfillmentTestCase):
    """
    GUARANTEES:
    - one short line -> no line is decremented
    - order cancelled, payment failed, full refund issued
    - InsufficientStockError surfaces to the caller
    """

    def setUp(self):
        super().setUp()
        self.hat = make_item("Hat", sizes=[("F", "HAT-F", "400", "0", 3)])
        self.order = place_order(
            self.customer,
            [
                line(self.item, sku="SHIRT-M", size="M", quantity=2),
                line(self.hat, sku="HAT-F", size="F", quantity=2),
            ],
        )
        # sold elsewhere between intent and payment
        SizeVariant.objects.filter(sku="HAT-F").update(stock=1)

    def test_full_rollback_and_refund(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            pay(self.order, payment_id="pay_short")

        self.assertEqual(ctx.exception.sku, "HAT-F")

        self.assertEqual(_stock("SHIRT-M"), 10)
        self.assertEqual(_stock("HAT-F"), 1)
        self.assertFalse(StockCommit.objects.exists())

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_FAILED)
        self.assertEqual(self.order.order_status, Order.ORDER_CANCELLED)
        self.assertEqual(self.order.shipping_status, Order.SHIPPING_CANCELLED)
        self.assertEqual(self.order.refund_status, Order.REFUND_INITIATED)
        self.assertEqual(self.order.refund_amount, self.order.total_amount)
        self.assertFalse(ShipmentJob.objects.exists())

        refunds = self.gateway.calls_for("refund")
        self.assertEqual(len(refunds), 1)
        self.assertEqual(refunds[0]["payment_id"], "pay_short")

    def test_refund_failure_is_recorded(self):
        self.gateway.configure(refund_should_succeed=False)

        with self.assertRaises(InsufficientStockError):
            pay(self.order, payment_id="pay_short")

        self.order.refresh_from_db()
        self.assertEqual(self.order.refund_status, Order.REFUND_FAILED)
        self.assertEqual(self.order.order_status, Order.ORDER_CANCELLED)

    def test_later_callback_for_failed_order_rejected(self):
        with self.assertRaises(InsufficientStockError):
            pay(self.order, payment_id="pay_short")

        with self.assertRaises(OrderNotPayableError):
            pay(self.order, payment_id="pay_short")
        self.assertEqual(len(self.gateway.calls_for("refund")), 1)


class CancelledBeforePaymentTests(FulfillmentTestCase):
    def test_payment_for_cancelled_order_is_refunded_once(self):
        order = place_order(self.customer, [line(self.item, sku="SHIRT-M", size="M")])
        cancel_order(order_id=order.id, reason="changed my mind")

        with self.assertRaises(OrderNotPayableError):
            pay(order, payment_id="pay_late")

        order.refresh_from_db()
        self.assertEqual(order.refund_status, Order.REFUND_INITIATED)
        self.assertEqual(order.gateway_payment_id, "pay_late")
        self.assertEqual(_stock("SHIRT-M"), 10)

        # replayed callback: no second refund
        with self.assertRaises(OrderNotPayableError):
            pay(order, payment_id="pay_late")
        self.assertEqual(len(self.gateway.calls_for("refund")), 1)
