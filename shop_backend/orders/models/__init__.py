"""
PATH: orders/models/__init__.py

Orders models export surface.
"""

from .order import Order
from .order_line_item import OrderLineItem
from .reversal_request import ReversalRequest
from .shipment_job import ShipmentJob

__all__ = [
    "Order",
    "OrderLineItem",
    "ReversalRequest",
    "ShipmentJob",
]
