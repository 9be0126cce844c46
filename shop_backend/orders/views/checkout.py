# orders/views/checkout.py

"""
CHECKOUT (ORDER INTENT + PAYMENT VERIFICATION)

- POST /api/orders/intent/          authenticated customer
- POST /api/orders/verify-payment/  gateway callback (signature-checked)

Both views are thin: validation of shape here, business rules in
orders/services.
"""

from __future__ import annotations

from django.conf import settings
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.parsers import JSONParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from orders.serializers import (
    OrderIntentRequestSerializer,
    OrderIntentResponseSerializer,
    OrderSerializer,
    VerifyPaymentRequestSerializer,
)
from orders.services.order_intent import CartLineInput, create_order_intent
from orders.services.payment_verifier import verify_payment
from orders.views.common import (
    DOMAIN_ERRORS,
    PublicWriteThrottle,
    WebhookThrottle,
    service_error_response,
    validation_error_response,
)


class OrderIntentView(APIView):
    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser]
    throttle_classes = [PublicWriteThrottle]

    @extend_schema(
        tags=["Orders"],
        request=OrderIntentRequestSerializer,
        responses={
            201: OrderIntentResponseSerializer,
            400: OpenApiResponse(description="Validation / unavailable item / promo error"),
            409: OpenApiResponse(description="Insufficient stock"),
            429: OpenApiResponse(description="Rate limited"),
            502: OpenApiResponse(description="Payment provider error"),
        },
        description="Price the cart server-side, open a gateway intent and persist the order (awaiting payment).",
    )
    def post(self, request, *args, **kwargs):
        s = OrderIntentRequestSerializer(data=request.data)
        if not s.is_valid():
            return validation_error_response(s.errors)
        data = s.validated_data

        lines = [
            CartLineInput(
                item_id=str(line["item_id"]),
                sku=line.get("sku") or "",
                size=line.get("size") or "",
                quantity=line["quantity"],
                client_price=line.get("price"),
            )
            for line in data["items"]
        ]

        try:
            result = create_order_intent(
                customer=request.user,
                lines=lines,
                delivery_address=dict(data["delivery_address"]),
                promo_code=data.get("promo_code"),
                client_total=data.get("amount"),
            )
        except DOMAIN_ERRORS as exc:
            return service_error_response(exc)

        payload = OrderIntentResponseSerializer(
            {
                "order_id": result.order.id,
                "order_no": result.order.order_no,
                "gateway_order_id": result.gateway_order_id,
                "amount": result.amount,
                "currency": result.currency,
                "key_id": settings.PAYMENTS.get("RAZORPAY", {}).get("KEY_ID", ""),
            }
        ).data
        return Response(payload, status=status.HTTP_201_CREATED)


class VerifyPaymentView(APIView):
    permission_classes = [AllowAny]
    parser_classes = [JSONParser]
    throttle_classes = [WebhookThrottle]

    @extend_schema(
        tags=["Orders"],
        request=VerifyPaymentRequestSerializer,
        responses={
            200: OrderSerializer,
            400: OpenApiResponse(description="Signature mismatch / validation error"),
            404: OpenApiResponse(description="Unknown gateway order"),
            409: OpenApiResponse(description="Insufficient stock (payment refunded) / order not payable"),
        },
        description="Verify the gateway signature, mark the order paid, commit stock and queue shipment booking.",
    )
    def post(self, request, *args, **kwargs):
        s = VerifyPaymentRequestSerializer(data=request.data)
        if not s.is_valid():
            return validation_error_response(s.errors)
        data = s.validated_data

        try:
            result = verify_payment(
                gateway_order_id=data["razorpay_order_id"],
                gateway_payment_id=data["razorpay_payment_id"],
                signature=data["razorpay_signature"],
            )
        except DOMAIN_ERRORS as exc:
            return service_error_response(exc)

        body = OrderSerializer(result.order).data
        body["already_paid"] = result.already_paid
        return Response(body, status=status.HTTP_200_OK)
