# orders/views/shipping.py

"""
SHIPPING SURFACE

- GET  /api/orders/<order_id>/shipping-status/   polling (public by order UUID)
- POST /api/orders/<order_id>/retry-shipping/    staff
- POST /api/orders/<order_id>/sync-tracking/     staff
- GET  /api/orders/shipments/                    staff triage list
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from orders.filters import OrderShipmentFilter
from orders.models import Order
from orders.serializers import OrderSerializer, ShippingStatusSerializer
from orders.services.shipment_retry import retry_shipping
from orders.services.tracking import shipping_status_payload, sync_tracking
from orders.views.common import (
    DOMAIN_ERRORS,
    PublicPollThrottle,
    order_not_found_response,
    service_error_response,
)


class ShippingStatusView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = [PublicPollThrottle]

    @extend_schema(
        tags=["Shipping"],
        responses={
            200: ShippingStatusSerializer,
            404: OpenApiResponse(description="Order not found"),
        },
    )
    def get(self, request, order_id, *args, **kwargs):
        order = Order.objects.filter(id=order_id).first()
        if order is None:
            return order_not_found_response()
        return Response(ShippingStatusSerializer(shipping_status_payload(order)).data)


class RetryShippingView(APIView):
    permission_classes = [IsAdminUser]

    @extend_schema(
        tags=["Shipping"],
        request=None,
        responses={
            202: ShippingStatusSerializer,
            200: ShippingStatusSerializer,
            404: OpenApiResponse(description="Order not found"),
            409: OpenApiResponse(description="Not retryable from the current state"),
        },
    )
    def post(self, request, order_id, *args, **kwargs):
        if not Order.objects.filter(id=order_id).exists():
            return order_not_found_response()

        try:
            result = retry_shipping(order_id=order_id)
        except DOMAIN_ERRORS as exc:
            return service_error_response(exc)

        order = Order.objects.get(id=order_id)
        return Response(
            ShippingStatusSerializer(shipping_status_payload(order)).data,
            status=status.HTTP_202_ACCEPTED if result.scheduled else status.HTTP_200_OK,
        )


class SyncTrackingView(APIView):
    permission_classes = [IsAdminUser]

    @extend_schema(
        tags=["Shipping"],
        request=None,
        responses={
            200: ShippingStatusSerializer,
            404: OpenApiResponse(description="Order not found"),
            409: OpenApiResponse(description="Order has not shipped"),
            502: OpenApiResponse(description="Carrier error"),
        },
    )
    def post(self, request, order_id, *args, **kwargs):
        if not Order.objects.filter(id=order_id).exists():
            return order_not_found_response()

        try:
            result = sync_tracking(order_id=order_id)
        except DOMAIN_ERRORS as exc:
            return service_error_response(exc)

        body = ShippingStatusSerializer(shipping_status_payload(result.order)).data
        body["carrier_status"] = result.status.current_status
        return Response(body)


class ShipmentListView(generics.ListAPIView):
    permission_classes = [IsAdminUser]
    serializer_class = OrderSerializer
    filterset_class = OrderShipmentFilter
    queryset = Order.objects.prefetch_related("items").order_by("-created_at")

    @extend_schema(tags=["Shipping"])
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)
