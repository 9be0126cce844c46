# shipping/carrier/fake_adapter.py

"""
Configurable in-memory carrier for development and tests.

No network. Outcomes are scripted with configure():
- create_error / assign_error / cancel_error: exception instances raised
  by the matching call (e.g. CarrierPermissionError(...))
- delivered: what track() reports
Every call is recorded in `calls`.
"""

from __future__ import annotations

import itertools
from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from shipping.carrier.port import (
    CarrierLeg,
    CarrierPort,
    CarrierServiceabilityError,
    CourierOption,
    ExchangeBooking,
    ShipmentBooking,
    TrackingAssignment,
    TrackingEvent,
    TrackingStatus,
)


class FakeCarrier(CarrierPort):
    name = "fake"

    def __init__(self) -> None:
        self._ids = itertools.count(1001)
        self.calls: list[dict] = []
        self.configure()

    def configure(
        self,
        *,
        create_error: Exception | None = None,
        assign_error: Exception | None = None,
        cancel_error: Exception | None = None,
        return_error: Exception | None = None,
        serviceable: bool = True,
        delivered: bool = False,
        courier_name: str = "Fake Express",
        freight_charge: Decimal = Decimal("42.50"),
    ) -> None:
        self.create_error = create_error
        self.assign_error = assign_error
        self.cancel_error = cancel_error
        self.return_error = return_error
        self.serviceable = serviceable
        self.delivered = delivered
        self.courier_name = courier_name
        self.freight_charge = freight_charge

    def calls_for(self, method: str) -> list[dict]:
        return [c for c in self.calls if c["method"] == method]

    def _next_id(self) -> str:
        return str(next(self._ids))

    def authenticate(self) -> str:
        self.calls.append({"method": "authenticate"})
        return "fake-token"

    def check_serviceability(self, *, pickup_pincode, delivery_pincode, weight):
        self.calls.append(
            {
                "method": "check_serviceability",
                "pickup_pincode": pickup_pincode,
                "delivery_pincode": delivery_pincode,
                "weight": weight,
            }
        )
        if not self.serviceable:
            raise CarrierServiceabilityError(
                f"No courier serves {pickup_pincode} -> {delivery_pincode}"
            )
        return [
            CourierOption(
                courier_company_id="1",
                courier_name=self.courier_name,
                rate=self.freight_charge,
                estimated_delivery_days="3",
            )
        ]

    def create_shipment(self, payload: dict) -> ShipmentBooking:
        self.calls.append({"method": "create_shipment", "payload": payload})
        if self.create_error is not None:
            raise self.create_error
        return ShipmentBooking(shipment_id=f"SHP{self._next_id()}", carrier_order_id=f"CO{self._next_id()}")

    def assign_tracking(self, shipment_id: str) -> TrackingAssignment:
        self.calls.append({"method": "assign_tracking", "shipment_id": shipment_id})
        if self.assign_error is not None:
            raise self.assign_error
        return TrackingAssignment(
            tracking_code=f"AWB{self._next_id()}",
            courier_name=self.courier_name,
            freight_charge=self.freight_charge,
            courier_company_id="1",
            expected_delivery_date=(timezone.now() + timedelta(days=3)).date(),
        )

    def cancel_shipment(self, carrier_order_id: str) -> bool:
        self.calls.append({"method": "cancel_shipment", "carrier_order_id": carrier_order_id})
        if self.cancel_error is not None:
            raise self.cancel_error
        return True

    def track(self, tracking_code: str) -> TrackingStatus:
        self.calls.append({"method": "track", "tracking_code": tracking_code})
        status = "DELIVERED" if self.delivered else "IN TRANSIT"
        return TrackingStatus(
            tracking_code=tracking_code,
            current_status=status,
            delivered=self.delivered,
            events=[TrackingEvent(status=status, location="Hub")],
        )

    def create_return_shipment(self, payload: dict) -> CarrierLeg:
        self.calls.append({"method": "create_return_shipment", "payload": payload})
        if self.return_error is not None:
            raise self.return_error
        return CarrierLeg(
            carrier_order_id=f"RCO{self._next_id()}",
            shipment_id=f"RSHP{self._next_id()}",
            label_url="https://labels.example.com/return.pdf",
        )

    def create_exchange_shipment(self, payload: dict) -> ExchangeBooking:
        self.calls.append({"method": "create_exchange_shipment", "payload": payload})
        if self.return_error is not None:
            raise self.return_error
        return ExchangeBooking(
            return_leg=CarrierLeg(
                carrier_order_id=f"RCO{self._next_id()}",
                shipment_id=f"RSHP{self._next_id()}",
            ),
            forward_leg=CarrierLeg(
                carrier_order_id=f"FCO{self._next_id()}",
                shipment_id=f"FSHP{self._next_id()}",
            ),
        )
