# PATH: orders/serializers.py

"""
ORDERS SERIALIZERS

Transport layer only: request/response shapes for orders/views.
Business rules live in orders/services.
"""

from __future__ import annotations

from django.conf import settings
from rest_framework import serializers

from orders.models import Order, OrderLineItem, ReversalRequest


# ============================================================
# REQUESTS
# ============================================================

class CartLineSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    sku = serializers.CharField(required=False, allow_blank=True, default="")
    size = serializers.CharField(required=False, allow_blank=True, default="")
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True, default=None
    )


class DeliveryAddressSerializer(serializers.Serializer):
    name = serializers.CharField()
    phone = serializers.CharField()
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    address_line1 = serializers.CharField()
    address_line2 = serializers.CharField(required=False, allow_blank=True, default="")
    city = serializers.CharField()
    state = serializers.CharField()
    pincode = serializers.RegexField(r"^\d{6}$")
    country = serializers.CharField(required=False, default="India")


class OrderIntentRequestSerializer(serializers.Serializer):
    items = CartLineSerializer(many=True, allow_empty=False)
    delivery_address = DeliveryAddressSerializer()
    promo_code = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        required=False,
        allow_null=True,
        help_text="Client-side expected total (advisory; the server total always wins).",
    )


class VerifyPaymentRequestSerializer(serializers.Serializer):
    razorpay_order_id = serializers.CharField()
    razorpay_payment_id = serializers.CharField()
    razorpay_signature = serializers.CharField()


class CancelOrderRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class ReturnRequestSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    reason = serializers.CharField()
    images = serializers.ListField(
        child=serializers.URLField(),
        required=False,
        default=list,
    )

    def validate_images(self, value):
        max_images = int(settings.FULFILLMENT.get("MAX_REVERSAL_IMAGES", 3))
        if len(value) > max_images:
            raise serializers.ValidationError(f"At most {max_images} images are allowed.")
        return value


class ExchangeRequestSerializer(ReturnRequestSerializer):
    new_size = serializers.CharField()


# ============================================================
# RESPONSES
# ============================================================

class OrderIntentResponseSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    order_no = serializers.CharField()
    gateway_order_id = serializers.CharField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    currency = serializers.CharField()
    key_id = serializers.CharField()


class ShippingStatusSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    order_no = serializers.CharField()
    payment_status = serializers.CharField()
    order_status = serializers.CharField()
    shipping_status = serializers.CharField()
    shipping_error = serializers.CharField(allow_blank=True)
    tracking_code = serializers.CharField(allow_blank=True)
    tracking_url = serializers.CharField(allow_blank=True)
    courier_name = serializers.CharField(allow_blank=True)
    carrier_order_id = serializers.CharField(allow_blank=True)
    expected_delivery_date = serializers.DateField(allow_null=True)
    created_at = serializers.DateTimeField()
    shipping_started_at = serializers.DateTimeField(allow_null=True)
    shipping_completed_at = serializers.DateTimeField(allow_null=True)
    shipping_failed_at = serializers.DateTimeField(allow_null=True)
    delivered_at = serializers.DateTimeField(allow_null=True)


class OrderLineItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderLineItem
        fields = [
            "id",
            "item_name",
            "sku",
            "size",
            "quantity",
            "unit_price",
            "regular_price",
            "price_type",
            "discount_percentage",
            "savings_amount",
            "line_total",
            "is_promo_bonus",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderLineItemSerializer(many=True, read_only=True)
    tracking_url = serializers.CharField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_no",
            "subtotal_amount",
            "savings_amount",
            "tax_amount",
            "shipping_amount",
            "discount_amount",
            "total_amount",
            "currency",
            "promo_code",
            "payment_status",
            "order_status",
            "shipping_status",
            "shipping_error",
            "refund_status",
            "refund_id",
            "refund_amount",
            "carrier_order_id",
            "shipment_id",
            "tracking_code",
            "tracking_url",
            "courier_name",
            "freight_charge",
            "expected_delivery_date",
            "created_at",
            "paid_at",
            "shipping_started_at",
            "shipping_completed_at",
            "shipping_failed_at",
            "delivered_at",
            "cancelled_at",
            "items",
        ]
        read_only_fields = fields


class ReversalRequestSerializer(serializers.ModelSerializer):
    order_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = ReversalRequest
        fields = [
            "id",
            "order_id",
            "kind",
            "status",
            "rma_number",
            "reason",
            "images",
            "desired_size",
            "return_carrier_order_id",
            "return_shipment_id",
            "return_tracking_code",
            "return_label_url",
            "forward_reference",
            "forward_carrier_order_id",
            "forward_shipment_id",
            "forward_tracking_code",
            "refund_id",
            "refund_amount",
            "refund_status",
            "created_at",
        ]
        read_only_fields = fields
