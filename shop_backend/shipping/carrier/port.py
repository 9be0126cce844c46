# shipping/carrier/port.py

"""
Carrier port: abstract interface for carrier-aggregator integrations.

Order services program against CarrierPort; the concrete adapter
(ShiprocketCarrier in production, FakeCarrier in dev/test) is chosen by
settings.SHIPPING["CARRIER"].

Error taxonomy:
- CarrierError                 base
- CarrierAuthError             login rejected / token refresh did not help
- CarrierPermissionError       403: account-level, NOT retryable; carries remediation
- CarrierServiceabilityError   no courier serves the route
- CarrierTrackingError         tracking number (AWB) could not be assigned
- CarrierRequestError          other non-2xx (status_code, retryable flag)
- CarrierUnavailableError      network failure / timeout after bounded retries
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


# ============================================================
# DOMAIN ERRORS
# ============================================================

class CarrierError(Exception):
    pass


class CarrierAuthError(CarrierError):
    pass


class CarrierPermissionError(CarrierError):
    def __init__(self, message: str, *, remediation: str = "", details: dict | None = None):
        self.remediation = remediation
        self.details = details or {}
        super().__init__(message)


class CarrierServiceabilityError(CarrierError):
    pass


class CarrierTrackingError(CarrierError):
    def __init__(self, message: str, *, details: dict | None = None):
        self.details = details or {}
        super().__init__(message)


class CarrierRequestError(CarrierError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: dict | None = None):
        self.status_code = status_code
        self.payload = payload or {}
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return self.status_code is None or self.status_code >= 500


class CarrierUnavailableError(CarrierRequestError):
    pass


# ============================================================
# RESULTS
# ============================================================

@dataclass(frozen=True)
class CourierOption:
    courier_company_id: str
    courier_name: str
    rate: Decimal
    estimated_delivery_days: str = ""
    etd: str = ""


@dataclass(frozen=True)
class ShipmentBooking:
    shipment_id: str
    carrier_order_id: str


@dataclass(frozen=True)
class TrackingAssignment:
    tracking_code: str
    courier_name: str
    freight_charge: Decimal
    courier_company_id: str = ""
    expected_delivery_date: date | None = None


@dataclass(frozen=True)
class TrackingEvent:
    status: str
    occurred_at: str = ""
    location: str = ""
    detail: str = ""


@dataclass(frozen=True)
class TrackingStatus:
    tracking_code: str
    current_status: str
    delivered: bool
    events: list[TrackingEvent] = field(default_factory=list)


@dataclass(frozen=True)
class CarrierLeg:
    """One booked leg of a reverse / exchange request."""

    carrier_order_id: str
    shipment_id: str
    tracking_code: str = ""
    label_url: str = ""


@dataclass(frozen=True)
class ExchangeBooking:
    return_leg: CarrierLeg
    forward_leg: CarrierLeg


class CarrierPort(ABC):
    """Abstract interface for carrier adapters."""

    name = "abstract"

    @abstractmethod
    def authenticate(self) -> str:
        """Log in and return a fresh bearer token (bypasses the cache)."""

    @abstractmethod
    def check_serviceability(
        self, *, pickup_pincode: str, delivery_pincode: str, weight: Decimal
    ) -> list[CourierOption]:
        """Couriers serving the route. Raises CarrierServiceabilityError when none."""

    @abstractmethod
    def create_shipment(self, payload: dict) -> ShipmentBooking:
        """Book a forward shipment."""

    @abstractmethod
    def assign_tracking(self, shipment_id: str) -> TrackingAssignment:
        """Assign a tracking number (AWB) to a booked shipment."""

    @abstractmethod
    def cancel_shipment(self, carrier_order_id: str) -> bool:
        """Cancel a booked shipment."""

    @abstractmethod
    def track(self, tracking_code: str) -> TrackingStatus:
        """Current status + events for a tracking code."""

    @abstractmethod
    def create_return_shipment(self, payload: dict) -> CarrierLeg:
        """Book a reverse pickup from the customer."""

    @abstractmethod
    def create_exchange_shipment(self, payload: dict) -> ExchangeBooking:
        """Book a reverse pickup plus a forward replacement shipment."""
