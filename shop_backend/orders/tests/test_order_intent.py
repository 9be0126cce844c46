# orders/tests/test_order_intent.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import override_settings

from catalog.models import CatalogItem
from catalog.services.inventory import InsufficientStockError
from catalog.services.pricing import NoValidPriceError
from orders.models import Order, OrderLineItem
from orders.services.order_intent import (
    EmptyCartError,
    LineItemUnavailableError,
    NonPositiveTotalError,
    resolve_variant,
)
from orders.tests.factories import FulfillmentTestCase, line, make_item, make_promo, place_order
from payments.gateway import GatewayIntentError
from promotions.models import PromoCode
from promotions.services.promo_evaluator import PromoInvalidError

D = Decimal


class VariantResolutionTests(FulfillmentTestCase):
    """
    GUARANTEES:
    - SKU+size match first, then SKU alone, then size alone
    - nothing matching -> LineItemUnavailableError listing what exists
    - non-live items are never purchasable
    """

    def test_exact_match(self):
        variant = resolve_variant(item_id=self.item.id, sku="SHIRT-L", size="L")
        self.assertEqual(variant.sku, "SHIRT-L")

    def test_sku_wins_when_size_is_stale(self):
        variant = resolve_variant(item_id=self.item.id, sku="SHIRT-L", size="XXL")
        self.assertEqual(variant.size, "L")

    def test_size_used_when_sku_unknown(self):
        variant = resolve_variant(item_id=self.item.id, sku="OLD-SKU", size=" m ")
        self.assertEqual(variant.sku, "SHIRT-M")

    def test_unavailable_lists_alternatives(self):
        with self.assertRaises(LineItemUnavailableError) as ctx:
            resolve_variant(item_id=self.item.id, sku="NOPE", size="XS")

        details = ctx.exception.details
        self.assertEqual(details["requested_size"], "XS")
        self.assertEqual(sorted(details["available_sizes"]), ["L", "M"])
        self.assertEqual(sorted(details["available_skus"]), ["SHIRT-L", "SHIRT-M"])

    def test_draft_item_rejected(self):
        draft = make_item("Draft Tee", sizes=[("S", "DRAFT-S", "500", "0", 5)], status=CatalogItem.STATUS_DRAFT)

        with self.assertRaises(LineItemUnavailableError):
            resolve_variant(item_id=draft.id, sku="DRAFT-S", size="S")


class CreateOrderIntentTests(FulfillmentTestCase):
    """
    GUARANTEES:
    - server price wins over the client price
    - order persisted awaiting payment with frozen line snapshots
    - any failure persists nothing
    """

    def test_creates_pending_order_with_snapshot(self):
        order = place_order(self.customer, [line(self.item, sku="SHIRT-M", size="M", quantity=1, price=D("1"))])

        self.assertEqual(order.payment_status, Order.PAYMENT_AWAITING)
        self.assertEqual(order.order_status, Order.ORDER_PENDING)
        self.assertEqual(order.shipping_status, Order.SHIPPING_PENDING)
        self.assertTrue(order.order_no.startswith("ORD"))
        self.assertEqual(order.customer, self.customer)

        self.assertEqual(order.subtotal_amount, D("800.00"))
        self.assertEqual(order.savings_amount, D("200.00"))
        self.assertEqual(order.shipping_amount, D("0.00"))
        self.assertEqual(order.total_amount, D("800.00"))

        item = order.items.get()
        self.assertEqual(item.unit_price, D("800.00"))
        self.assertEqual(item.regular_price, D("1000.00"))
        self.assertEqual(item.price_type, OrderLineItem.PRICE_TYPE_SALE)
        self.assertEqual(item.discount_percentage, 20)
        self.assertEqual(item.line_total, D("800.00"))

        intent_calls = self.gateway.calls_for("create_intent")
        self.assertEqual(len(intent_calls), 1)
        self.assertEqual(intent_calls[0]["amount"], D("800.00"))
        self.assertEqual(intent_calls[0]["receipt"], order.order_no)
        self.assertTrue(order.gateway_order_id.startswith("order_fake_"))

    def test_flat_shipping_fee_below_threshold(self):
        cheap = make_item("Socks", sizes=[("F", "SOCK-F", "300", "0", 5)])

        order = place_order(self.customer, [line(cheap, sku="SOCK-F", size="F")])

        self.assertEqual(order.shipping_amount, D("50.00"))
        self.assertEqual(order.total_amount, D("350.00"))
        self.assertEqual(order.items.get().price_type, OrderLineItem.PRICE_TYPE_REGULAR)

    def test_line_snapshot_is_frozen(self):
        order = place_order(self.customer, [line(self.item, sku="SHIRT-M", size="M")])
        item = order.items.get()

        item.unit_price = D("1.00")
        with self.assertRaises(ValueError):
            item.save()

    def test_empty_cart(self):
        with self.assertRaises(EmptyCartError):
            place_order(self.customer, [])

    def test_missing_address_fields(self):
        with self.assertRaises(ValidationError):
            place_order(self.customer, [line(self.item, sku="SHIRT-M", size="M")], address={"name": "X"})
        self.assertFalse(Order.objects.exists())

    def test_no_valid_price(self):
        unpriced = make_item("Sample", sizes=[("M", "SAMPLE-M", "0", "0", 5)])

        with self.assertRaises(NoValidPriceError):
            place_order(self.customer, [line(unpriced, sku="SAMPLE-M", size="M")])

    def test_stock_precheck(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            place_order(self.customer, [line(self.item, sku="SHIRT-M", size="M", quantity=11)])

        self.assertEqual(ctx.exception.available, 10)
        self.assertFalse(Order.objects.exists())
        self.assertEqual(self.gateway.calls_for("create_intent"), [])

    def test_gateway_failure_persists_nothing(self):
        self.gateway.configure(intent_should_succeed=False)

        with self.assertRaises(GatewayIntentError):
            place_order(self.customer, [line(self.item, sku="SHIRT-M", size="M")])

        self.assertFalse(Order.objects.exists())
        self.assertFalse(OrderLineItem.objects.exists())


class PromoAtIntentTests(FulfillmentTestCase):
    def test_percentage_promo(self):
        make_promo("SAVE10", PromoCode.TYPE_PERCENTAGE, "10")

        order = place_order(self.customer, [line(self.item, sku="SHIRT-M", size="M")], promo_code=" save10 ")

        self.assertEqual(order.promo_code, "SAVE10")
        self.assertEqual(order.promo_discount_type, PromoCode.TYPE_PERCENTAGE)
        self.assertEqual(order.discount_amount, D("80.00"))
        self.assertEqual(order.total_amount, D("720.00"))

    def test_invalid_promo_persists_nothing(self):
        with self.assertRaises(PromoInvalidError) as ctx:
            place_order(self.customer, [line(self.item, sku="SHIRT-M", size="M")], promo_code="GHOST")

        self.assertEqual(ctx.exception.reason, "not_found")
        self.assertFalse(Order.objects.exists())

    def test_per_user_limit_counts_paid_orders(self):
        make_promo("ONCE", PromoCode.TYPE_FIXED, "50", per_user_limit=1)
        self.paid_order(promo_code="ONCE")

        with self.assertRaises(PromoInvalidError) as ctx:
            place_order(self.customer, [line(self.item, sku="SHIRT-M", size="M")], promo_code="ONCE")
        self.assertEqual(ctx.exception.reason, "per_user_limit_reached")

    def test_bogo_adds_discounted_bonus_line(self):
        make_promo("BOGO", PromoCode.TYPE_BOGO, "0")
        tee = make_item("Tee", sizes=[("M", "TEE-M", "300", "0", 5)])
        cap = make_item("Cap", sizes=[("F", "CAP-F", "200", "0", 5)])

        order = place_order(
            self.customer,
            [line(tee, sku="TEE-M", size="M"), line(cap, sku="CAP-F", size="F")],
            promo_code="BOGO",
        )

        bonus = order.items.get(is_promo_bonus=True)
        self.assertEqual(bonus.sku, "CAP-F")
        self.assertEqual(bonus.quantity, 1)

        # pre-bonus subtotal 500 is not above the threshold -> flat fee
        self.assertEqual(order.subtotal_amount, D("700.00"))
        self.assertEqual(order.shipping_amount, D("50.00"))
        self.assertEqual(order.discount_amount, D("200.00"))
        self.assertEqual(order.total_amount, D("550.00"))

    @override_settings(FULFILLMENT={"TAX_RATE_PERCENT": "18"})
    def test_bogo_bonus_line_is_not_taxed(self):
        make_promo("BOGO", PromoCode.TYPE_BOGO, "0")

        plain = place_order(self.customer, [line(self.item, sku="SHIRT-M", size="M")])
        bogo = place_order(self.customer, [line(self.item, sku="SHIRT-M", size="M")], promo_code="BOGO")

        self.assertEqual(plain.total_amount, D("944.00"))
        self.assertEqual(bogo.subtotal_amount, D("1600.00"))
        self.assertEqual(bogo.tax_amount, D("144.00"))
        self.assertEqual(bogo.discount_amount, D("800.00"))
        self.assertEqual(bogo.total_amount, plain.total_amount)

    def test_discount_covering_everything_is_rejected(self):
        make_promo("HUGE", PromoCode.TYPE_FIXED, "5000")

        with self.assertRaises(NonPositiveTotalError):
            place_order(self.customer, [line(self.item, sku="SHIRT-M", size="M")], promo_code="HUGE")
        self.assertFalse(Order.objects.exists())
