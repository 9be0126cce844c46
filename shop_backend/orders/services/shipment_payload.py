# orders/services/shipment_payload.py

"""
Carrier booking payloads built from an order's frozen snapshot.

Package metrics:
- weight     = max(sum(item weight x qty), 0.5 kg)
- dimensions = max per-item length / breadth / height, each floored at 0.5 cm
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

MIN_WEIGHT_KG = Decimal("0.5")
MIN_DIMENSION_CM = Decimal("0.5")


@dataclass(frozen=True)
class PackageMetrics:
    weight_kg: Decimal
    length_cm: Decimal
    breadth_cm: Decimal
    height_cm: Decimal


def _dec(v, places: str = "0.01") -> Decimal:
    if v is None or v == "":
        return Decimal("0")
    return Decimal(str(v)).quantize(Decimal(places), rounding=ROUND_HALF_UP)


def _shiprocket_config() -> dict:
    return settings.SHIPPING.get("SHIPROCKET", {})


def package_metrics(items) -> PackageMetrics:
    items = list(items)
    weight = sum((_dec(i.weight_kg, "0.001") * int(i.quantity) for i in items), Decimal("0"))
    length = max([_dec(i.length_cm) for i in items] + [MIN_DIMENSION_CM])
    breadth = max([_dec(i.breadth_cm) for i in items] + [MIN_DIMENSION_CM])
    height = max([_dec(i.height_cm) for i in items] + [MIN_DIMENSION_CM])
    return PackageMetrics(
        weight_kg=max(weight, MIN_WEIGHT_KG),
        length_cm=length,
        breadth_cm=breadth,
        height_cm=height,
    )


def _split_name(full_name: str) -> tuple[str, str]:
    parts = str(full_name or "").strip().split(" ", 1)
    first = parts[0] if parts else ""
    last = parts[1].strip() if len(parts) > 1 else ""
    return first, last


def _item_rows(items) -> list[dict]:
    rows = []
    for item in items:
        rows.append(
            {
                "name": item.item_name,
                "sku": item.sku,
                "units": int(item.quantity),
                "selling_price": str(_dec(item.unit_price)),
                # bonus lines ship at full value but are fully discounted
                "discount": str(_dec(item.line_total)) if item.is_promo_bonus else "0",
                "hsn": getattr(item.catalog_item, "hsn_code", "") if item.catalog_item_id else "",
            }
        )
    return rows


def _dimensions(metrics: PackageMetrics) -> dict:
    return {
        "length": str(metrics.length_cm),
        "breadth": str(metrics.breadth_cm),
        "height": str(metrics.height_cm),
        "weight": str(metrics.weight_kg),
    }


# ============================================================
# FORWARD SHIPMENT
# ============================================================

def build_shipment_payload(order) -> dict:
    items = list(order.items.select_related("catalog_item").all())
    address = order.delivery_address or {}
    first, last = _split_name(address.get("name"))
    cfg = _shiprocket_config()

    payload = {
        "order_id": order.order_no,
        "order_date": order.created_at.strftime("%Y-%m-%d %H:%M"),
        "pickup_location": cfg.get("PICKUP_LOCATION", "Primary"),
        "billing_customer_name": first,
        "billing_last_name": last,
        "billing_address": address.get("address_line1", ""),
        "billing_address_2": address.get("address_line2", ""),
        "billing_city": address.get("city", ""),
        "billing_pincode": address.get("pincode", ""),
        "billing_state": address.get("state", ""),
        "billing_country": address.get("country", "India"),
        "billing_email": address.get("email", ""),
        "billing_phone": address.get("phone", ""),
        "shipping_is_billing": True,
        "order_items": _item_rows(items),
        "payment_method": "Prepaid",
        "shipping_charges": str(_dec(order.shipping_amount)),
        "total_discount": str(_dec(order.discount_amount)),
        "sub_total": str(_dec(order.total_amount)),
    }
    if cfg.get("CHANNEL_ID"):
        payload["channel_id"] = cfg["CHANNEL_ID"]

    payload.update(_dimensions(package_metrics(items)))
    return payload


# ============================================================
# REVERSE / EXCHANGE
# ============================================================

def _pickup_from_customer(address: dict) -> dict:
    first, last = _split_name(address.get("name"))
    return {
        "pickup_customer_name": first,
        "pickup_last_name": last,
        "pickup_address": address.get("address_line1", ""),
        "pickup_address_2": address.get("address_line2", ""),
        "pickup_city": address.get("city", ""),
        "pickup_state": address.get("state", ""),
        "pickup_country": address.get("country", "India"),
        "pickup_pincode": address.get("pincode", ""),
        "pickup_email": address.get("email", ""),
        "pickup_phone": address.get("phone", ""),
    }


def build_return_payload(order, *, rma_number: str, reason: str) -> dict:
    items = [i for i in order.items.select_related("catalog_item").all() if not i.is_promo_bonus]
    address = order.delivery_address or {}
    cfg = _shiprocket_config()

    payload = {
        "order_id": rma_number,
        "order_date": order.created_at.strftime("%Y-%m-%d"),
        "channel_id": cfg.get("CHANNEL_ID", ""),
        **_pickup_from_customer(address),
        "shipping_customer_name": cfg.get("PICKUP_LOCATION", "Primary"),
        "shipping_pincode": cfg.get("PICKUP_PINCODE", ""),
        "shipping_country": "India",
        "order_items": _item_rows(items),
        "payment_method": "Prepaid",
        "sub_total": str(_dec(order.total_amount)),
        "return_reason": reason,
    }
    payload.update(_dimensions(package_metrics(items)))
    return payload


def build_exchange_payload(order, *, rma_number: str, forward_reference: str, new_size: str, reason: str) -> dict:
    items = [i for i in order.items.select_related("catalog_item").all() if not i.is_promo_bonus]
    address = order.delivery_address or {}
    first, last = _split_name(address.get("name"))
    cfg = _shiprocket_config()
    metrics = package_metrics(items)

    exchange_items = []
    for row in _item_rows(items):
        row = dict(row)
        row["exchange_item_name"] = f"{row['name']} ({new_size})"
        row["exchange_item_sku"] = row["sku"]
        exchange_items.append(row)

    return {
        "exchange_order_id": forward_reference,
        "return_order_id": rma_number,
        "order_date": order.created_at.strftime("%Y-%m-%d"),
        "channel_id": cfg.get("CHANNEL_ID", ""),
        "payment_method": "Prepaid",
        "seller_pickup_location_id": cfg.get("PICKUP_LOCATION", "Primary"),
        "seller_shipping_location_id": cfg.get("PICKUP_LOCATION", "Primary"),
        **{f"buyer_{k.removeprefix('pickup_')}": v for k, v in _pickup_from_customer(address).items()},
        "buyer_shipping_first_name": first,
        "buyer_shipping_last_name": last,
        "buyer_shipping_address": address.get("address_line1", ""),
        "buyer_shipping_city": address.get("city", ""),
        "buyer_shipping_state": address.get("state", ""),
        "buyer_shipping_country": address.get("country", "India"),
        "buyer_shipping_pincode": address.get("pincode", ""),
        "buyer_shipping_phone": address.get("phone", ""),
        "buyer_shipping_email": address.get("email", ""),
        "order_items": exchange_items,
        "sub_total": str(_dec(order.total_amount)),
        "return_reason": reason,
        "return_length": str(metrics.length_cm),
        "return_breadth": str(metrics.breadth_cm),
        "return_height": str(metrics.height_cm),
        "return_weight": str(metrics.weight_kg),
        "exchange_length": str(metrics.length_cm),
        "exchange_breadth": str(metrics.breadth_cm),
        "exchange_height": str(metrics.height_cm),
        "exchange_weight": str(metrics.weight_kg),
    }
