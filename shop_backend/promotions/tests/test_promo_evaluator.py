# promotions/tests/test_promo_evaluator.py

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from promotions.models import PromoCode
from promotions.services.promo_evaluator import (
    PromoInvalidError,
    PromoLine,
    apply_promo,
    decrement_uses,
    increment_uses,
)


def _promo(code, discount_type, value, **overrides):
    now = timezone.now()
    data = {
        "code": code,
        "discount_type": discount_type,
        "discount_value": Decimal(str(value)),
        "min_order_value": Decimal("0"),
        "start_date": now - timedelta(days=1),
        "end_date": now + timedelta(days=1),
        "per_user_limit": 0,
    }
    data.update(overrides)
    return PromoCode.objects.create(**data)


LINES = [
    PromoLine(sku="A", unit_price=Decimal("600.00"), quantity=1),
    PromoLine(sku="B", unit_price=Decimal("200.00"), quantity=2),
]


class PromoEvaluationTests(TestCase):
    """
    GUARANTEES:
    - SAVE10 (10%, min 500) on 1000 -> discount 100
    - validation failures carry a stable reason code
    - BOGO duplicates the cheapest line and credits its value
    """

    def test_percentage_discount(self):
        _promo("SAVE10", PromoCode.TYPE_PERCENTAGE, 10, min_order_value=Decimal("500"))

        result = apply_promo(code="SAVE10", subtotal=Decimal("1000"), shipping_fee=Decimal("0"), lines=LINES)

        self.assertEqual(result.discount_amount, Decimal("100.00"))
        self.assertEqual(result.discount_type, PromoCode.TYPE_PERCENTAGE)
        self.assertIsNone(result.bonus_line)

    def test_percentage_respects_cap(self):
        _promo("BIG50", PromoCode.TYPE_PERCENTAGE, 50, max_discount_amount=Decimal("150"))

        result = apply_promo(code="BIG50", subtotal=Decimal("1000"), shipping_fee=Decimal("0"), lines=LINES)
        self.assertEqual(result.discount_amount, Decimal("150.00"))

    def test_code_lookup_is_case_insensitive(self):
        _promo("FLAT75", PromoCode.TYPE_FIXED, 75)

        result = apply_promo(code="  flat75 ", subtotal=Decimal("300"), shipping_fee=Decimal("50"), lines=LINES)

        self.assertEqual(result.code, "FLAT75")
        self.assertEqual(result.discount_amount, Decimal("75.00"))

    def test_free_shipping_discounts_shipping_fee(self):
        _promo("SHIPFREE", PromoCode.TYPE_FREE_SHIPPING, 0)

        result = apply_promo(code="SHIPFREE", subtotal=Decimal("300"), shipping_fee=Decimal("50"), lines=LINES)
        self.assertEqual(result.discount_amount, Decimal("50.00"))

    def test_bogo_adds_cheapest_line(self):
        _promo("BOGO", PromoCode.TYPE_BOGO, 0)

        result = apply_promo(code="BOGO", subtotal=Decimal("1000"), shipping_fee=Decimal("0"), lines=LINES)

        self.assertEqual(result.bonus_line.sku, "B")
        self.assertEqual(result.bonus_line.quantity, 2)
        self.assertEqual(result.discount_amount, Decimal("400.00"))

    def test_unknown_code(self):
        with self.assertRaises(PromoInvalidError) as ctx:
            apply_promo(code="NOPE", subtotal=Decimal("100"), shipping_fee=Decimal("0"), lines=LINES)
        self.assertEqual(ctx.exception.reason, "not_found")

    def test_inactive_code(self):
        _promo("OFF", PromoCode.TYPE_FIXED, 10, is_active=False)
        with self.assertRaises(PromoInvalidError) as ctx:
            apply_promo(code="OFF", subtotal=Decimal("100"), shipping_fee=Decimal("0"), lines=LINES)
        self.assertEqual(ctx.exception.reason, "inactive")

    def test_outside_date_window(self):
        now = timezone.now()
        _promo("LATER", PromoCode.TYPE_FIXED, 10, start_date=now + timedelta(days=1), end_date=now + timedelta(days=2))
        _promo("OLD", PromoCode.TYPE_FIXED, 10, start_date=now - timedelta(days=3), end_date=now - timedelta(days=2))

        with self.assertRaises(PromoInvalidError) as ctx:
            apply_promo(code="LATER", subtotal=Decimal("100"), shipping_fee=Decimal("0"), lines=LINES)
        self.assertEqual(ctx.exception.reason, "not_started")

        with self.assertRaises(PromoInvalidError) as ctx:
            apply_promo(code="OLD", subtotal=Decimal("100"), shipping_fee=Decimal("0"), lines=LINES)
        self.assertEqual(ctx.exception.reason, "expired")

    def test_usage_cap_reached(self):
        _promo("CAPPED", PromoCode.TYPE_FIXED, 10, max_uses=2, current_uses=2)
        with self.assertRaises(PromoInvalidError) as ctx:
            apply_promo(code="CAPPED", subtotal=Decimal("100"), shipping_fee=Decimal("0"), lines=LINES)
        self.assertEqual(ctx.exception.reason, "usage_limit_reached")

    def test_per_user_limit(self):
        _promo("ONCE", PromoCode.TYPE_FIXED, 10, per_user_limit=1)
        with self.assertRaises(PromoInvalidError) as ctx:
            apply_promo(
                code="ONCE",
                subtotal=Decimal("100"),
                shipping_fee=Decimal("0"),
                lines=LINES,
                customer_uses=1,
            )
        self.assertEqual(ctx.exception.reason, "per_user_limit_reached")

    def test_min_order_value(self):
        _promo("SAVE10", PromoCode.TYPE_PERCENTAGE, 10, min_order_value=Decimal("500"))
        with self.assertRaises(PromoInvalidError) as ctx:
            apply_promo(code="SAVE10", subtotal=Decimal("499.99"), shipping_fee=Decimal("0"), lines=LINES)
        self.assertEqual(ctx.exception.reason, "min_order_value_not_met")


class PromoUsageCounterTests(TestCase):
    """Usage counter never passes max_uses and never drops below zero."""

    def test_increment_stops_at_cap(self):
        promo = _promo("CAP1", PromoCode.TYPE_FIXED, 10, max_uses=1)

        self.assertTrue(increment_uses("cap1"))
        self.assertFalse(increment_uses("CAP1"))

        promo.refresh_from_db()
        self.assertEqual(promo.current_uses, 1)

    def test_unlimited_code_keeps_counting(self):
        promo = _promo("OPEN", PromoCode.TYPE_FIXED, 10, max_uses=0)
        for _ in range(3):
            self.assertTrue(increment_uses("OPEN"))
        promo.refresh_from_db()
        self.assertEqual(promo.current_uses, 3)

    def test_decrement_floors_at_zero(self):
        promo = _promo("DOWN", PromoCode.TYPE_FIXED, 10, current_uses=1)

        self.assertTrue(decrement_uses("DOWN"))
        self.assertFalse(decrement_uses("DOWN"))

        promo.refresh_from_db()
        self.assertEqual(promo.current_uses, 0)
