from django.contrib import admin

from .models import (
    Order,
    OrderComp,
    OrderDiscount,
    OrderItem,
    OrderItemModifier,
    OrderVoid,
)


class ReadOnlyInline(admin.TabularInline):
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


class OrderItemModifierInline(ReadOnlyInline):
    model = OrderItemModifier
    fields = ("name", "price_adjustment")
    readonly_fields = fields


class OrderItemInline(ReadOnlyInline):
    model = OrderItem
    fields = ("menu_item", "quantity", "seat", "course", "status", "unit_price", "modifier_total", "line_total")
    readonly_fields = fields
    show_change_link = True


class OrderVoidInline(ReadOnlyInline):
    model = OrderVoid
    fields = ("order_item", "amount", "reason", "approved_by", "created_at")
    readonly_fields = fields


class OrderCompInline(ReadOnlyInline):
    model = OrderComp
    fields = ("order_item", "amount", "reason", "approved_by", "created_at")
    readonly_fields = fields


class OrderDiscountInline(ReadOnlyInline):
    model = OrderDiscount
    fields = ("name", "discount_type", "value", "amount", "reason", "approved_by", "created_at")
    readonly_fields = fields


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Orders are inspected here, never edited: status and money fields are
    owned by OrderService.
    """

    list_display = (
        "order_number",
        "business_date",
        "location",
        "order_type",
        "status",
        "table",
        "server",
        "total",
        "opened_at",
    )
    list_filter = ("status", "order_type", "location", "business_date")
    search_fields = ("order_number", "tab_name", "guest_name", "guest_phone")
    readonly_fields = (
        "status",
        "subtotal",
        "discount_amount",
        "comp_amount",
        "tax_amount",
        "tip_amount",
        "total",
        "opened_at",
        "closed_at",
        "updated_at",
    )
    inlines = [OrderItemInline, OrderDiscountInline, OrderCompInline, OrderVoidInline]
    date_hierarchy = "opened_at"


@admin.register(OrderItem)
class OrderItemAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "menu_item", "quantity", "seat", "course", "status", "line_total")
    list_filter = ("status", "station")
    readonly_fields = ("status", "unit_price", "modifier_total", "line_total")
    inlines = [OrderItemModifierInline]
