"""Carrier adapter factory.

get_carrier() returns the process-wide adapter named by
settings.SHIPPING["CARRIER"] ("shiprocket" or "fake"). The adapter owns the
process-wide TokenProvider, so every shipment worker thread shares one
cached carrier token.
"""

from __future__ import annotations

import threading

from django.conf import settings

from shipping.carrier.fake_adapter import FakeCarrier
from shipping.carrier.port import (
    CarrierAuthError,
    CarrierError,
    CarrierLeg,
    CarrierPermissionError,
    CarrierPort,
    CarrierRequestError,
    CarrierServiceabilityError,
    CarrierTrackingError,
    CarrierUnavailableError,
    CourierOption,
    ExchangeBooking,
    ShipmentBooking,
    TrackingAssignment,
    TrackingStatus,
)
from shipping.carrier.shiprocket_adapter import ShiprocketCarrier

_carrier_instance: CarrierPort | None = None
_carrier_lock = threading.Lock()

_ADAPTERS = {
    "shiprocket": ShiprocketCarrier,
    "fake": FakeCarrier,
}


def get_carrier() -> CarrierPort:
    global _carrier_instance
    if _carrier_instance is None:
        with _carrier_lock:
            if _carrier_instance is None:
                name = str(settings.SHIPPING.get("CARRIER") or "shiprocket").lower()
                try:
                    adapter_cls = _ADAPTERS[name]
                except KeyError as exc:
                    raise CarrierError(f"Unknown carrier adapter: {name}") from exc
                _carrier_instance = adapter_cls()
    return _carrier_instance


def set_carrier(carrier: CarrierPort) -> None:
    global _carrier_instance
    _carrier_instance = carrier


def reset_carrier() -> None:
    global _carrier_instance
    _carrier_instance = None


def tracking_url_for(tracking_code: str) -> str:
    code = str(tracking_code or "").strip()
    if not code:
        return ""
    template = settings.SHIPPING.get("SHIPROCKET", {}).get("TRACKING_URL_TEMPLATE") or (
        "https://shiprocket.co/tracking/{awb}"
    )
    return template.format(awb=code)


__all__ = [
    "CarrierAuthError",
    "CarrierError",
    "CarrierLeg",
    "CarrierPermissionError",
    "CarrierPort",
    "CarrierRequestError",
    "CarrierServiceabilityError",
    "CarrierTrackingError",
    "CarrierUnavailableError",
    "CourierOption",
    "ExchangeBooking",
    "FakeCarrier",
    "ShipmentBooking",
    "ShiprocketCarrier",
    "TrackingAssignment",
    "TrackingStatus",
    "get_carrier",
    "reset_carrier",
    "set_carrier",
    "tracking_url_for",
]
