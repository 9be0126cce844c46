# promotions/services/promo_evaluator.py

"""
======================================================
PATH: promotions/services/promo_evaluator.py
======================================================
PROMO EVALUATOR

Purpose:
- Validate a promo code against a priced cart and compute its discount.
- Maintain the global usage counter (increment on payment, decrement on
  cancellation / return).

Validation order (first failure wins):
1) not found
2) inactive
3) outside [start_date, end_date]
4) global cap reached (current_uses >= max_uses, when max_uses > 0)
5) per-customer cap reached (when per_user_limit > 0)
6) cart subtotal < min_order_value

Discount types:
- percentage: subtotal * value / 100, capped by max_discount_amount when set
- fixed: flat discount_value
- free_shipping: the current shipping fee
- bogo: duplicate the cheapest line (same quantity) as a bonus line and
  credit its full value, so the addition costs the customer nothing

Pure except for the PromoCode lookup. Counter updates use F() expressions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.db.models import F, Q
from django.utils import timezone

from promotions.models import PromoCode

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


# ============================================================
# DOMAIN ERRORS
# ============================================================

class PromoError(Exception):
    pass


class PromoInvalidError(PromoError):
    """
    Raised when a code cannot be applied. `reason` is a stable machine code:
    not_found / inactive / not_started / expired / usage_limit_reached /
    per_user_limit_reached / min_order_value_not_met / empty_cart
    """

    def __init__(self, reason: str, message: str):
        self.reason = reason
        super().__init__(message)


# ============================================================
# INPUT / OUTPUT
# ============================================================

@dataclass(frozen=True)
class PromoLine:
    sku: str
    unit_price: Decimal
    quantity: int


@dataclass(frozen=True)
class PromoApplication:
    code: str
    discount_type: str
    discount_amount: Decimal
    bonus_line: PromoLine | None = None


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def normalize_code(code) -> str:
    return str(code or "").strip().upper()


def _cheapest_line(lines) -> PromoLine | None:
    eligible = [ln for ln in lines if int(ln.quantity or 0) > 0]
    if not eligible:
        return None
    # stable: first cheapest wins on ties
    return min(eligible, key=lambda ln: _money(ln.unit_price))


# ============================================================
# EVALUATION
# ============================================================

def apply_promo(
    *,
    code,
    subtotal,
    shipping_fee,
    lines,
    now=None,
    customer_uses: int = 0,
) -> PromoApplication:
    """
    Validate `code` and compute the discount for a priced cart.

    `customer_uses` is the number of earlier PAID orders of the same customer
    with this code (computed by the caller; promotions does not read orders).
    """
    normalized = normalize_code(code)
    now = now or timezone.now()
    subtotal = _money(subtotal)
    shipping_fee = _money(shipping_fee)

    promo = PromoCode.objects.filter(code=normalized).first()
    if not promo:
        raise PromoInvalidError("not_found", "Invalid promo code")

    if not promo.is_active:
        raise PromoInvalidError("inactive", "Promo code is not active")

    if now < promo.start_date:
        raise PromoInvalidError("not_started", "Promo code is not active yet")

    if now > promo.end_date:
        raise PromoInvalidError("expired", "Promo code has expired")

    if promo.max_uses > 0 and promo.current_uses >= promo.max_uses:
        raise PromoInvalidError("usage_limit_reached", "Promo code usage limit reached")

    if promo.per_user_limit > 0 and int(customer_uses or 0) >= promo.per_user_limit:
        raise PromoInvalidError(
            "per_user_limit_reached",
            "You have already used this promo code the maximum number of times",
        )

    if subtotal < _money(promo.min_order_value):
        raise PromoInvalidError(
            "min_order_value_not_met",
            f"Cart total must be at least {_money(promo.min_order_value)}",
        )

    bonus_line = None
    value = _money(promo.discount_value)

    if promo.discount_type == PromoCode.TYPE_PERCENTAGE:
        discount = _money(subtotal * value / Decimal("100"))
        if promo.max_discount_amount is not None:
            discount = min(discount, _money(promo.max_discount_amount))

    elif promo.discount_type == PromoCode.TYPE_FIXED:
        discount = value

    elif promo.discount_type == PromoCode.TYPE_FREE_SHIPPING:
        discount = shipping_fee

    elif promo.discount_type == PromoCode.TYPE_BOGO:
        cheapest = _cheapest_line(lines)
        if cheapest is None:
            raise PromoInvalidError("empty_cart", "Promo code needs at least one item")
        bonus_line = PromoLine(
            sku=cheapest.sku,
            unit_price=_money(cheapest.unit_price),
            quantity=int(cheapest.quantity),
        )
        discount = _money(bonus_line.unit_price * bonus_line.quantity)

    else:
        raise PromoInvalidError("not_found", "Unsupported promo code type")

    logger.info(
        "Promo code applied",
        extra={
            "code": normalized,
            "discount_type": promo.discount_type,
            "discount_amount": str(discount),
        },
    )

    return PromoApplication(
        code=normalized,
        discount_type=promo.discount_type,
        discount_amount=_money(discount),
        bonus_line=bonus_line,
    )


# ============================================================
# USAGE COUNTER
# ============================================================

def increment_uses(code) -> bool:
    """
    Count one use of `code`. Refuses to pass max_uses (conditional update).

    Returns False when the code is unknown or the cap was hit concurrently.
    """
    normalized = normalize_code(code)
    if not normalized:
        return False

    updated = (
        PromoCode.objects.filter(code=normalized)
        .filter(Q(max_uses=0) | Q(current_uses__lt=F("max_uses")))
        .update(current_uses=F("current_uses") + 1)
    )
    if not updated:
        logger.warning("Promo usage increment refused", extra={"code": normalized})
    return bool(updated)


def decrement_uses(code) -> bool:
    """
    Release one use of `code`. Never goes below zero.
    """
    normalized = normalize_code(code)
    if not normalized:
        return False

    updated = PromoCode.objects.filter(code=normalized, current_uses__gt=0).update(
        current_uses=F("current_uses") - 1
    )
    return bool(updated)
