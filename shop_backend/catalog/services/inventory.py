# catalog/services/inventory.py

"""
======================================================
PATH: catalog/services/inventory.py
======================================================
INVENTORY COMMIT SERVICE

Purpose:
- Advisory availability lookups (order-intent pre-check; NOT a reservation).
- Commit an order's stock decrement after payment is verified.

Rules:
- Each SKU is decremented with a conditional update (stock >= qty guard),
  so stock can never go below zero even under concurrent commits.
- All lines of one order are committed inside ONE transaction:
  if any line fails, every earlier decrement of that order is rolled back.
- Exactly once per (order_id, payment_id): StockCommit.idempotency_key is unique.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from catalog.models import SizeVariant, StockCommit

logger = logging.getLogger(__name__)


# ============================================================
# DOMAIN ERRORS
# ============================================================

class InventoryError(Exception):
    pass


class InsufficientStockError(InventoryError):
    def __init__(self, *, sku: str, requested: int, available: int):
        self.sku = sku
        self.requested = int(requested)
        self.available = int(available)
        super().__init__(
            f"Insufficient stock for SKU {sku}. "
            f"Requested: {self.requested}, Available: {self.available}"
        )


@dataclass(frozen=True)
class StockCommitResult:
    commit: StockCommit
    created: bool


def build_idempotency_key(*, order_id, payment_id) -> str:
    return f"{order_id}:{str(payment_id or '').strip()}"


def _merge_lines(lines) -> list[tuple[str, int]]:
    """
    Collapse duplicate SKUs (keeps first-seen order for deterministic errors).
    """
    merged: dict[str, int] = {}
    for sku, qty in lines:
        sku = str(sku or "").strip()
        qty = int(qty or 0)
        if not sku:
            raise InventoryError("sku is required for every committed line")
        if qty <= 0:
            raise InventoryError(f"quantity must be >= 1 for SKU {sku}")
        merged[sku] = merged.get(sku, 0) + qty
    return list(merged.items())


def available_stock(*, sku: str) -> int:
    stock = SizeVariant.objects.filter(sku=sku).values_list("stock", flat=True).first()
    return int(stock or 0)


@transaction.atomic
def commit_stock(*, order_id, payment_id, lines) -> StockCommitResult:
    """
    Decrement stock for every (sku, quantity) line of a paid order.

    GUARANTEES:
    - Idempotent per (order_id, payment_id)
    - Never decrements below zero
    - All-or-nothing across the order's lines

    Raises InsufficientStockError naming the first SKU that cannot be satisfied.
    """
    key = build_idempotency_key(order_id=order_id, payment_id=payment_id)

    existing = StockCommit.objects.filter(idempotency_key=key).first()
    if existing:
        logger.info(
            "Stock already committed for order",
            extra={"order_id": str(order_id), "idempotency_key": key},
        )
        return StockCommitResult(commit=existing, created=False)

    merged = _merge_lines(lines)
    now = timezone.now()

    for sku, qty in merged:
        updated = SizeVariant.objects.filter(sku=sku, stock__gte=qty).update(
            stock=F("stock") - qty,
            updated_at=now,
        )
        if updated != 1:
            available = available_stock(sku=sku)
            logger.warning(
                "Stock commit failed; rolling back order decrements",
                extra={
                    "order_id": str(order_id),
                    "sku": sku,
                    "requested": qty,
                    "available": available,
                },
            )
            raise InsufficientStockError(sku=sku, requested=qty, available=available)

    commit = StockCommit.objects.create(
        idempotency_key=key,
        order_id=order_id,
        payment_id=str(payment_id or "").strip(),
        lines=[{"sku": sku, "quantity": qty} for sku, qty in merged],
    )

    logger.info(
        "Stock committed for order",
        extra={"order_id": str(order_id), "lines": len(merged)},
    )
    return StockCommitResult(commit=commit, created=True)
