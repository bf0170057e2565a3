from django.contrib import admin

from .models import Check, Payment


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    can_delete = False
    fields = ("method", "amount", "tip_amount", "card_brand", "card_last4", "processed_by", "created_at")
    readonly_fields = fields


@admin.register(Check)
class CheckAdmin(admin.ModelAdmin):
    list_display = ("name", "order", "subtotal", "tax_amount", "total", "is_paid")
    list_filter = ("is_paid",)
    search_fields = ("name", "order__order_number")
    readonly_fields = ("subtotal", "tax_amount", "total", "is_paid", "created_at")
    inlines = [PaymentInline]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "guest_check", "method", "amount", "tip_amount", "created_at")
    list_filter = ("method", "created_at")
    search_fields = ("order__order_number", "transaction_id", "card_last4")
    readonly_fields = ("created_at",)
    raw_id_fields = ("order", "guest_check", "processed_by")
