# catalog/admin.py

from django.contrib import admin

from catalog.models import CatalogItem, SizeVariant, StockCommit


# ======================================================
# CATALOG ITEM ADMIN
# ======================================================


class SizeVariantInline(admin.TabularInline):
    model = SizeVariant
    extra = 0
    fields = ("size", "sku", "regular_price", "sale_price", "stock")


@admin.register(CatalogItem)
class CatalogItemAdmin(admin.ModelAdmin):
    list_display = ("name", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("name", "size_variants__sku")
    inlines = [SizeVariantInline]


# ======================================================
# INVENTORY ADMIN
# ======================================================


@admin.register(SizeVariant)
class SizeVariantAdmin(admin.ModelAdmin):
    list_display = ("sku", "item", "size", "regular_price", "sale_price", "stock")
    search_fields = ("sku", "item__name")


@admin.register(StockCommit)
class StockCommitAdmin(admin.ModelAdmin):
    list_display = ("idempotency_key", "order_id", "payment_id", "created_at")
    readonly_fields = ("idempotency_key", "order_id", "payment_id", "lines", "created_at")
    search_fields = ("idempotency_key",)
