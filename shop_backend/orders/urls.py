# orders/urls.py
"""
ORDERS API URLS

Base path (mounted in backend/urls.py):
    /api/orders/

- POST intent/
- POST verify-payment/
- GET  <order_id>/shipping-status/
- POST <order_id>/retry-shipping/
- POST <order_id>/cancel/
- POST <order_id>/sync-tracking/
- POST returns/
- POST exchanges/
- GET  shipments/
"""

from __future__ import annotations

from django.urls import path

from orders.views.cancel import CancelOrderView
from orders.views.checkout import OrderIntentView, VerifyPaymentView
from orders.views.reversal import ExchangeRequestView, ReturnRequestView
from orders.views.shipping import (
    RetryShippingView,
    ShipmentListView,
    ShippingStatusView,
    SyncTrackingView,
)

app_name = "orders"

urlpatterns = [
    path("intent/", OrderIntentView.as_view(), name="order-intent"),
    path("verify-payment/", VerifyPaymentView.as_view(), name="verify-payment"),
    path("shipments/", ShipmentListView.as_view(), name="shipment-list"),
    path("returns/", ReturnRequestView.as_view(), name="return-create"),
    path("exchanges/", ExchangeRequestView.as_view(), name="exchange-create"),
    path("<uuid:order_id>/shipping-status/", ShippingStatusView.as_view(), name="shipping-status"),
    path("<uuid:order_id>/retry-shipping/", RetryShippingView.as_view(), name="retry-shipping"),
    path("<uuid:order_id>/cancel/", CancelOrderView.as_view(), name="cancel-order"),
    path("<uuid:order_id>/sync-tracking/", SyncTrackingView.as_view(), name="sync-tracking"),
]
