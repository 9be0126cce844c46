# promotions/admin.py

from django.contrib import admin

from promotions.models import PromoCode


@admin.register(PromoCode)
class PromoCodeAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "discount_type",
        "discount_value",
        "current_uses",
        "max_uses",
        "is_active",
        "start_date",
        "end_date",
    )
    list_filter = ("discount_type", "is_active")
    search_fields = ("code", "title")
    readonly_fields = ("current_uses",)
