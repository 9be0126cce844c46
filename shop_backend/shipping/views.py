# shipping/views.py

"""
POST /api/shipping/serviceability/

Which couriers can deliver from the configured pickup pincode to the
customer's pincode. Used by the storefront before checkout.
"""

from __future__ import annotations

import logging

from django.conf import settings
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from shipping.carrier import CarrierError, CarrierServiceabilityError, get_carrier
from shipping.serializers import ServiceabilityRequestSerializer, ServiceabilityResponseSerializer

logger = logging.getLogger(__name__)


class ServiceabilityThrottle(AnonRateThrottle):
    scope = "public_poll"


def error_response(*, code: str, message: str, http_status: int, details: dict | None = None):
    return Response(
        {"error": {"code": code, "message": message, "details": details or {}}},
        status=http_status,
    )


class ServiceabilityView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = [ServiceabilityThrottle]

    @extend_schema(
        tags=["Shipping"],
        request=ServiceabilityRequestSerializer,
        responses={
            200: ServiceabilityResponseSerializer,
            400: OpenApiResponse(description="Validation error"),
            502: OpenApiResponse(description="Carrier error"),
        },
    )
    def post(self, request, *args, **kwargs):
        s = ServiceabilityRequestSerializer(data=request.data)
        if not s.is_valid():
            return error_response(
                code="VALIDATION_ERROR",
                message="Invalid request.",
                http_status=status.HTTP_400_BAD_REQUEST,
                details=s.errors,
            )

        pickup = str(settings.SHIPPING.get("SHIPROCKET", {}).get("PICKUP_PINCODE") or "")
        delivery = s.validated_data["delivery_pincode"]

        try:
            couriers = get_carrier().check_serviceability(
                pickup_pincode=pickup,
                delivery_pincode=delivery,
                weight=s.validated_data["weight"],
            )
        except CarrierServiceabilityError:
            couriers = []
        except CarrierError as exc:
            logger.error("Serviceability check failed", extra={"delivery_pincode": delivery, "error": str(exc)})
            return error_response(
                code="CARRIER_ERROR",
                message=str(exc),
                http_status=status.HTTP_502_BAD_GATEWAY,
            )

        body = ServiceabilityResponseSerializer(
            {
                "pickup_pincode": pickup,
                "delivery_pincode": delivery,
                "serviceable": bool(couriers),
                "couriers": couriers,
            }
        ).data
        return Response(body)
