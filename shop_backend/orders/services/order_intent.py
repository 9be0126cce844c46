# orders/services/order_intent.py

"""
======================================================
PATH: orders/services/order_intent.py
======================================================
ORDER INTENT CREATOR

Turns a client cart into a persisted Order awaiting payment.

Flow:
1) resolve every cart line to a SizeVariant (SKU+size -> SKU -> size)
2) derive the effective unit price per line (server price always wins;
   client prices are compared and logged only)
3) apply the promo code (if any); BOGO adds a bonus line
4) advisory stock pre-check (NOT a reservation)
5) compute totals with the Cart Total Calculator
6) open a gateway intent for the computed total
7) persist Order + frozen OrderLineItems in ONE transaction

GUARANTEES:
- Order is created in awaiting_payment / pending
- The caller only ever sees the computed order total
- Nothing is persisted when any step fails
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction

from catalog.models import CatalogItem, SizeVariant
from catalog.services.inventory import InsufficientStockError, available_stock
from catalog.services.pricing import EffectivePrice, derive_effective_price, validate_client_price
from orders.models import Order, OrderLineItem
from orders.models.order import generate_order_no
from orders.services.cart_totals import CartLine, compute_cart_totals, merchandise_subtotal, shipping_fee_for
from payments.gateway import get_gateway
from promotions.services.promo_evaluator import PromoLine, apply_promo, normalize_code

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")

REQUIRED_ADDRESS_FIELDS = ("name", "phone", "address_line1", "city", "state", "pincode")


# ============================================================
# DOMAIN ERRORS
# ============================================================

class OrderIntentError(Exception):
    pass


class EmptyCartError(OrderIntentError):
    pass


class LineItemUnavailableError(OrderIntentError):
    """
    The requested item / SKU / size cannot be sold.
    Carries what was asked for and what the catalog actually offers.
    """

    def __init__(
        self,
        message: str,
        *,
        item_id="",
        requested_sku: str = "",
        requested_size: str = "",
        available_sizes=None,
        available_skus=None,
    ):
        self.item_id = str(item_id or "")
        self.requested_sku = requested_sku
        self.requested_size = requested_size
        self.available_sizes = list(available_sizes or [])
        self.available_skus = list(available_skus or [])
        super().__init__(message)

    @property
    def details(self) -> dict:
        return {
            "item_id": self.item_id,
            "requested_sku": self.requested_sku,
            "requested_size": self.requested_size,
            "available_sizes": self.available_sizes,
            "available_skus": self.available_skus,
        }


class NonPositiveTotalError(OrderIntentError):
    pass


# ============================================================
# INPUT / OUTPUT
# ============================================================

@dataclass(frozen=True)
class CartLineInput:
    item_id: str
    sku: str = ""
    size: str = ""
    quantity: int = 1
    client_price: Decimal | None = None


@dataclass(frozen=True)
class OrderIntentResult:
    order: Order
    gateway_order_id: str
    amount: Decimal
    currency: str


@dataclass(frozen=True)
class _PricedLine:
    variant: SizeVariant
    quantity: int
    price: EffectivePrice
    is_promo_bonus: bool = False

    def as_cart_line(self) -> CartLine:
        return CartLine(
            sku=self.variant.sku,
            unit_price=self.price.unit_price,
            quantity=self.quantity,
            savings_per_unit=self.price.savings,
            is_promo_bonus=self.is_promo_bonus,
        )


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _normalize_size(size) -> str:
    return str(size or "").strip().upper()


# ============================================================
# LINE RESOLUTION
# ============================================================

def resolve_variant(*, item_id, sku: str = "", size: str = "") -> SizeVariant:
    """
    Match a cart line to a size variant of the given catalog item.

    Tries SKU+size, then SKU alone, then size alone.
    """
    sku = str(sku or "").strip()
    size_key = _normalize_size(size)

    item = CatalogItem.objects.filter(id=item_id).prefetch_related("size_variants").first()
    if item is None:
        raise LineItemUnavailableError(
            "Catalog item not found",
            item_id=item_id,
            requested_sku=sku,
            requested_size=size,
        )

    variants = list(item.size_variants.all())
    available_sizes = [v.size for v in variants]
    available_skus = [v.sku for v in variants]

    if not item.is_purchasable:
        raise LineItemUnavailableError(
            f"'{item.name}' is not available for purchase",
            item_id=item_id,
            requested_sku=sku,
            requested_size=size,
            available_sizes=available_sizes,
            available_skus=available_skus,
        )

    match = None
    if sku and size_key:
        match = next((v for v in variants if v.sku == sku and _normalize_size(v.size) == size_key), None)
    if match is None and sku:
        match = next((v for v in variants if v.sku == sku), None)
    if match is None and size_key:
        match = next((v for v in variants if _normalize_size(v.size) == size_key), None)

    if match is None:
        raise LineItemUnavailableError(
            f"Size {size or '?'} (SKU {sku or '?'}) is not available for '{item.name}'",
            item_id=item_id,
            requested_sku=sku,
            requested_size=size,
            available_sizes=available_sizes,
            available_skus=available_skus,
        )

    # item is already loaded; avoid a lazy fetch per line later
    match.item = item
    return match


def validate_delivery_address(address) -> dict:
    if not isinstance(address, dict):
        raise ValidationError({"delivery_address": "Delivery address is required."})

    cleaned = {k: str(v).strip() for k, v in address.items() if v is not None}
    missing = [f for f in REQUIRED_ADDRESS_FIELDS if not cleaned.get(f)]
    if missing:
        raise ValidationError(
            {"delivery_address": f"Missing required fields: {', '.join(missing)}"}
        )

    cleaned.setdefault("country", "India")
    return cleaned


def _precheck_stock(priced_lines) -> None:
    requested: dict[str, int] = {}
    for line in priced_lines:
        requested[line.variant.sku] = requested.get(line.variant.sku, 0) + line.quantity

    for sku, qty in requested.items():
        available = available_stock(sku=sku)
        if available < qty:
            raise InsufficientStockError(sku=sku, requested=qty, available=available)


def _customer_promo_uses(customer, code: str) -> int:
    if customer is None or not getattr(customer, "is_authenticated", False):
        return 0
    return Order.objects.filter(
        customer=customer,
        promo_code=code,
        payment_status=Order.PAYMENT_PAID,
    ).count()


def _check_client_total(client_total, server_total: Decimal, *, receipt: str) -> None:
    if client_total is None or client_total == "":
        return
    tolerance = Decimal(str(settings.FULFILLMENT.get("PRICE_TOLERANCE", "0.01")))
    difference = abs(_money(client_total) - server_total)
    if difference > tolerance:
        logger.warning(
            "Client total differs from server total; using server total",
            extra={
                "receipt": receipt,
                "client_total": str(client_total),
                "server_total": str(server_total),
            },
        )


# ============================================================
# PUBLIC API
# ============================================================

def create_order_intent(
    *,
    customer,
    lines,
    delivery_address,
    promo_code: str | None = None,
    client_total=None,
    now=None,
) -> OrderIntentResult:
    lines = list(lines or [])
    if not lines:
        raise EmptyCartError("Cart is empty")

    address = validate_delivery_address(delivery_address)
    order_no = generate_order_no()

    # 1-2) resolve + price
    priced: list[_PricedLine] = []
    for line in lines:
        quantity = int(line.quantity or 0)
        if quantity <= 0:
            raise ValidationError({"quantity": f"Quantity must be >= 1 (SKU {line.sku or '?'})."})

        variant = resolve_variant(item_id=line.item_id, sku=line.sku, size=line.size)
        price = derive_effective_price(variant)

        check = validate_client_price(line.client_price, price)
        if check.mismatch:
            logger.warning(
                "Client price mismatch; server price wins",
                extra={
                    "receipt": order_no,
                    "sku": variant.sku,
                    "client_price": str(check.client_price),
                    "server_price": str(check.server_price),
                },
            )

        priced.append(_PricedLine(variant=variant, quantity=quantity, price=price))

    cart_lines = [p.as_cart_line() for p in priced]
    base_subtotal = merchandise_subtotal(cart_lines)
    shipping_fee = shipping_fee_for(base_subtotal)

    # 3) promo
    discount = Decimal("0.00")
    normalized_code = ""
    discount_type = ""
    if promo_code and str(promo_code).strip():
        normalized_code = normalize_code(promo_code)
        application = apply_promo(
            code=normalized_code,
            subtotal=base_subtotal,
            shipping_fee=shipping_fee,
            lines=[PromoLine(sku=c.sku, unit_price=c.unit_price, quantity=c.quantity) for c in cart_lines],
            now=now,
            customer_uses=_customer_promo_uses(customer, normalized_code),
        )
        discount = application.discount_amount
        discount_type = application.discount_type

        if application.bonus_line is not None:
            source = next(p for p in priced if p.variant.sku == application.bonus_line.sku)
            priced.append(
                _PricedLine(
                    variant=source.variant,
                    quantity=application.bonus_line.quantity,
                    price=source.price,
                    is_promo_bonus=True,
                )
            )

    # 4) advisory stock
    _precheck_stock(priced)

    # 5) totals
    tax_rate = Decimal(str(settings.FULFILLMENT.get("TAX_RATE_PERCENT", "0")))
    totals = compute_cart_totals(
        [p.as_cart_line() for p in priced],
        discount=discount,
        shipping_fee=shipping_fee,
        tax_rate_percent=tax_rate,
    )
    if totals.total <= 0:
        raise NonPositiveTotalError("Order total must be greater than zero")

    _check_client_total(client_total, totals.total, receipt=order_no)

    # 6) gateway intent (network I/O outside the transaction)
    currency = str(settings.PAYMENTS.get("CURRENCY") or "INR")
    gateway = get_gateway()
    intent = gateway.create_intent(amount=totals.total, currency=currency, receipt=order_no)

    # 7) persist
    with transaction.atomic():
        order = Order.objects.create(
            order_no=order_no,
            customer=customer if getattr(customer, "is_authenticated", False) else None,
            subtotal_amount=totals.subtotal,
            savings_amount=totals.savings,
            tax_rate_percent=tax_rate,
            tax_amount=totals.tax,
            shipping_amount=totals.shipping,
            discount_amount=totals.discount,
            total_amount=totals.total,
            currency=currency,
            promo_code=normalized_code,
            promo_discount_type=discount_type,
            gateway=getattr(gateway, "name", ""),
            gateway_order_id=intent.gateway_order_id,
            delivery_address=address,
        )

        for p in priced:
            item = p.variant.item
            OrderLineItem.objects.create(
                order=order,
                catalog_item=item,
                size_variant=p.variant,
                item_name=item.name,
                sku=p.variant.sku,
                size=p.variant.size,
                quantity=p.quantity,
                unit_price=p.price.unit_price,
                regular_price=p.price.regular_price,
                price_type=p.price.price_type,
                discount_percentage=p.price.discount_percentage,
                savings_amount=_money(p.price.savings * p.quantity),
                line_total=_money(p.price.unit_price * p.quantity),
                is_promo_bonus=p.is_promo_bonus,
                weight_kg=item.weight_kg,
                length_cm=item.length_cm,
                breadth_cm=item.breadth_cm,
                height_cm=item.height_cm,
            )

    logger.info(
        "Order intent created",
        extra={
            "order_id": str(order.id),
            "order_no": order.order_no,
            "gateway_order_id": intent.gateway_order_id,
            "total": str(totals.total),
            "promo_code": normalized_code,
        },
    )

    return OrderIntentResult(
        order=order,
        gateway_order_id=intent.gateway_order_id,
        amount=totals.total,
        currency=currency,
    )
