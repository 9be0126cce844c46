# catalog/services/pricing.py

"""
======================================================
PATH: catalog/services/pricing.py
======================================================
PRICE RECONCILIATION ENGINE

Purpose:
- Derive ONE authoritative unit price per size variant.
- Compare a client-submitted price against the derived price (advisory only).

Rules:
- sale_price > 0  -> effective = sale_price, price_type = "sale"
- regular_price > 0 -> effective = regular_price, price_type = "regular"
- neither -> NoValidPriceError
- discount_percentage = round(savings / regular_price * 100), half-up
- The server-derived price ALWAYS wins. A client price never reaches billing.

Pure: no I/O, no model writes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
DEFAULT_TOLERANCE = Decimal("0.01")

PRICE_TYPE_SALE = "sale"
PRICE_TYPE_REGULAR = "regular"


# ============================================================
# DOMAIN ERRORS
# ============================================================

class PricingError(Exception):
    pass


class NoValidPriceError(PricingError):
    def __init__(self, *, sku: str = "", message: str | None = None):
        self.sku = sku
        super().__init__(message or f"No valid price configured for SKU {sku or '?'}")


# ============================================================
# RESULTS
# ============================================================

@dataclass(frozen=True)
class EffectivePrice:
    unit_price: Decimal
    price_type: str
    regular_price: Decimal
    sale_price: Decimal
    savings: Decimal
    discount_percentage: int


@dataclass(frozen=True)
class ClientPriceCheck:
    mismatch: bool
    client_price: Decimal | None
    server_price: Decimal
    difference: Decimal


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    try:
        return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0.00")


# ============================================================
# PUBLIC API
# ============================================================

def derive_effective_price(variant) -> EffectivePrice:
    """
    Derive the effective unit price for a size variant.

    Accepts anything exposing regular_price / sale_price / sku
    (SizeVariant instances in practice).
    """
    regular = _money(getattr(variant, "regular_price", None))
    sale = _money(getattr(variant, "sale_price", None))
    sku = str(getattr(variant, "sku", "") or "")

    if sale > 0:
        savings = max(Decimal("0.00"), regular - sale)
        if regular > 0:
            pct = (savings / regular * Decimal("100")).quantize(
                Decimal("1"), rounding=ROUND_HALF_UP
            )
        else:
            pct = Decimal("0")
        return EffectivePrice(
            unit_price=sale,
            price_type=PRICE_TYPE_SALE,
            regular_price=regular,
            sale_price=sale,
            savings=_money(savings),
            discount_percentage=int(pct),
        )

    if regular > 0:
        return EffectivePrice(
            unit_price=regular,
            price_type=PRICE_TYPE_REGULAR,
            regular_price=regular,
            sale_price=Decimal("0.00"),
            savings=Decimal("0.00"),
            discount_percentage=0,
        )

    raise NoValidPriceError(sku=sku)


def validate_client_price(
    client_price,
    derived: EffectivePrice,
    *,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> ClientPriceCheck:
    """
    Compare a client-submitted unit price with the derived one.

    Never raises for a mismatch: the flag is for logging only.
    A missing client price is not a mismatch.
    """
    server = derived.unit_price

    if client_price is None or client_price == "":
        return ClientPriceCheck(
            mismatch=False,
            client_price=None,
            server_price=server,
            difference=Decimal("0.00"),
        )

    try:
        client = Decimal(str(client_price))
    except (InvalidOperation, ValueError, TypeError):
        logger.warning("Unparseable client price", extra={"client_price": client_price})
        return ClientPriceCheck(
            mismatch=True,
            client_price=None,
            server_price=server,
            difference=server,
        )

    difference = abs(client - server)
    return ClientPriceCheck(
        mismatch=difference > Decimal(str(tolerance)),
        client_price=client,
        server_price=server,
        difference=_money(difference),
    )
