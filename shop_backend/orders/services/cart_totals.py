# orders/services/cart_totals.py

"""
======================================================
PATH: orders/services/cart_totals.py
======================================================
CART TOTAL CALCULATOR

Pure: no database access, no settings writes, no side effects.
The same function prices a live cart (order intent) and re-prices the frozen
line items of a persisted order (payment verification), so the two results
can be compared to detect tampering.

    total = subtotal + tax + shipping - discount      (never below zero)

Tax applies to the merchandise subtotal; promo bonus lines are not taxed.

Shipping fee rule: free when the merchandise subtotal is strictly greater
than FULFILLMENT["FREE_SHIPPING_THRESHOLD"], otherwise the flat fee.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _setting(name: str, default) -> Decimal:
    return Decimal(str(settings.FULFILLMENT.get(name, default)))


@dataclass(frozen=True)
class CartLine:
    sku: str
    unit_price: Decimal
    quantity: int
    savings_per_unit: Decimal = ZERO
    is_promo_bonus: bool = False

    @property
    def line_total(self) -> Decimal:
        return _money(_money(self.unit_price) * int(self.quantity))


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    savings: Decimal
    tax: Decimal
    shipping: Decimal
    discount: Decimal
    total: Decimal


# ============================================================
# RULES
# ============================================================

def shipping_fee_for(subtotal, *, threshold=None, flat_fee=None) -> Decimal:
    threshold = _money(threshold if threshold is not None else _setting("FREE_SHIPPING_THRESHOLD", "500"))
    flat_fee = _money(flat_fee if flat_fee is not None else _setting("FLAT_SHIPPING_FEE", "50"))
    return ZERO if _money(subtotal) > threshold else flat_fee


def merchandise_subtotal(lines) -> Decimal:
    """Subtotal of the lines the customer chose (promo bonus lines excluded)."""
    return _money(sum((ln.line_total for ln in lines if not ln.is_promo_bonus), ZERO))


def compute_cart_totals(
    lines,
    *,
    discount=ZERO,
    shipping_fee=None,
    tax_rate_percent=None,
) -> CartTotals:
    """
    Price a list of CartLine.

    shipping_fee=None applies the shipping rule to the merchandise subtotal.
    The discount is clamped so the payable total never goes negative.
    """
    lines = list(lines)

    subtotal = _money(sum((ln.line_total for ln in lines), ZERO))
    savings = _money(
        sum((_money(ln.savings_per_unit) * int(ln.quantity) for ln in lines if not ln.is_promo_bonus), ZERO)
    )

    if tax_rate_percent is None:
        tax_rate_percent = _setting("TAX_RATE_PERCENT", "0")
    # promo bonus lines are free: not taxed
    tax = _money(merchandise_subtotal(lines) * Decimal(str(tax_rate_percent)) / Decimal("100"))

    if shipping_fee is None:
        shipping_fee = shipping_fee_for(merchandise_subtotal(lines))
    shipping = _money(shipping_fee)

    gross = subtotal + tax + shipping
    discount = min(max(_money(discount), ZERO), gross)

    return CartTotals(
        subtotal=subtotal,
        savings=savings,
        tax=tax,
        shipping=shipping,
        discount=_money(discount),
        total=_money(gross - discount),
    )


def lines_from_order_items(items) -> list[CartLine]:
    """Rebuild CartLine values from frozen OrderLineItem rows (no catalog lookup)."""
    return [
        CartLine(
            sku=item.sku,
            unit_price=_money(item.unit_price),
            quantity=int(item.quantity),
            savings_per_unit=max(ZERO, _money(_money(item.regular_price) - _money(item.unit_price)))
            if item.price_type == "sale"
            else ZERO,
            is_promo_bonus=bool(item.is_promo_bonus),
        )
        for item in items
    ]


def recompute_order_totals(order) -> CartTotals:
    """
    Re-price a persisted order from its frozen snapshot.

    Uses the stored shipping fee, discount and tax rate, so the result is
    identical to the totals computed at order-intent time.
    """
    return compute_cart_totals(
        lines_from_order_items(order.items.all()),
        discount=order.discount_amount,
        shipping_fee=order.shipping_amount,
        tax_rate_percent=order.tax_rate_percent,
    )
