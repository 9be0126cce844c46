# orders/views/cancel.py

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from orders.serializers import CancelOrderRequestSerializer, OrderSerializer
from orders.services.cancellation import cancel_order
from orders.views.common import (
    DOMAIN_ERRORS,
    order_for_user,
    order_not_found_response,
    service_error_response,
    validation_error_response,
)


class CancelOrderView(APIView):
    """
    POST /api/orders/<order_id>/cancel/

    Owner or staff. Rejected with 409 once delivered.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["Orders"],
        request=CancelOrderRequestSerializer,
        responses={
            200: OrderSerializer,
            404: OpenApiResponse(description="Order not found"),
            409: OpenApiResponse(description="Order already delivered"),
            502: OpenApiResponse(description="Carrier cancellation failed"),
        },
    )
    def post(self, request, order_id, *args, **kwargs):
        if order_for_user(request.user, order_id) is None:
            return order_not_found_response()

        s = CancelOrderRequestSerializer(data=request.data)
        if not s.is_valid():
            return validation_error_response(s.errors)

        try:
            result = cancel_order(order_id=order_id, reason=s.validated_data.get("reason", ""))
        except DOMAIN_ERRORS as exc:
            return service_error_response(exc)

        body = OrderSerializer(result.order).data
        body["already_cancelled"] = result.already_cancelled
        return Response(body, status=status.HTTP_200_OK)
