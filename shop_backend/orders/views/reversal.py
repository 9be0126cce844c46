# orders/views/reversal.py

"""
RETURNS & EXCHANGES

- POST /api/orders/returns/
- POST /api/orders/exchanges/

Owner (or staff). 201 when a request is created, 200 when the same kind
of request already exists for the order.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from orders.serializers import (
    ExchangeRequestSerializer,
    ReturnRequestSerializer,
    ReversalRequestSerializer,
)
from orders.services.reversal import create_exchange, create_return
from orders.views.common import (
    DOMAIN_ERRORS,
    PublicWriteThrottle,
    order_for_user,
    order_not_found_response,
    service_error_response,
    validation_error_response,
)

_REVERSAL_RESPONSES = {
    201: ReversalRequestSerializer,
    200: ReversalRequestSerializer,
    400: OpenApiResponse(description="Validation error"),
    404: OpenApiResponse(description="Order not found"),
    409: OpenApiResponse(description="Not delivered / window closed / other reversal exists"),
    502: OpenApiResponse(description="Carrier error"),
}


def _reversal_response(result):
    return Response(
        ReversalRequestSerializer(result.reversal).data,
        status=status.HTTP_201_CREATED if result.created else status.HTTP_200_OK,
    )


class ReturnRequestView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [PublicWriteThrottle]

    @extend_schema(tags=["Returns"], request=ReturnRequestSerializer, responses=_REVERSAL_RESPONSES)
    def post(self, request, *args, **kwargs):
        s = ReturnRequestSerializer(data=request.data)
        if not s.is_valid():
            return validation_error_response(s.errors)
        data = s.validated_data

        if order_for_user(request.user, data["order_id"]) is None:
            return order_not_found_response()

        try:
            result = create_return(
                order_id=data["order_id"],
                reason=data["reason"],
                images=data.get("images"),
            )
        except DOMAIN_ERRORS as exc:
            return service_error_response(exc)

        return _reversal_response(result)


class ExchangeRequestView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [PublicWriteThrottle]

    @extend_schema(tags=["Returns"], request=ExchangeRequestSerializer, responses=_REVERSAL_RESPONSES)
    def post(self, request, *args, **kwargs):
        s = ExchangeRequestSerializer(data=request.data)
        if not s.is_valid():
            return validation_error_response(s.errors)
        data = s.validated_data

        if order_for_user(request.user, data["order_id"]) is None:
            return order_not_found_response()

        try:
            result = create_exchange(
                order_id=data["order_id"],
                new_size=data["new_size"],
                reason=data["reason"],
                images=data.get("images"),
            )
        except DOMAIN_ERRORS as exc:
            return service_error_response(exc)

        return _reversal_response(result)
