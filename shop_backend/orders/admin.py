# orders/admin.py

from django.contrib import admin

from orders.models import Order, OrderLineItem, ReversalRequest, ShipmentJob


# ======================================================
# ORDER ADMIN (read-mostly; state changes go through services)
# ======================================================


class OrderLineItemInline(admin.TabularInline):
    model = OrderLineItem
    extra = 0
    can_delete = False
    fields = ("sku", "size", "quantity", "unit_price", "price_type", "line_total", "is_promo_bonus")
    readonly_fields = fields


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "order_no",
        "customer",
        "total_amount",
        "payment_status",
        "shipping_status",
        "tracking_code",
        "created_at",
    )
    list_filter = ("payment_status", "order_status", "shipping_status")
    search_fields = ("order_no", "gateway_order_id", "gateway_payment_id", "tracking_code")
    readonly_fields = (
        "order_no",
        "gateway_order_id",
        "gateway_payment_id",
        "subtotal_amount",
        "discount_amount",
        "shipping_amount",
        "total_amount",
        "carrier_error_details",
    )
    inlines = [OrderLineItemInline]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ShipmentJob)
class ShipmentJobAdmin(admin.ModelAdmin):
    list_display = ("order", "status", "attempts", "available_at", "locked_by", "updated_at")
    list_filter = ("status",)
    search_fields = ("order__order_no",)


@admin.register(ReversalRequest)
class ReversalRequestAdmin(admin.ModelAdmin):
    list_display = ("rma_number", "kind", "order", "refund_status", "created_at")
    list_filter = ("kind", "refund_status")
    search_fields = ("rma_number", "order__order_no")
