from django.contrib import admin

from .models import Location, Table


class TableInline(admin.TabularInline):
    model = Table
    extra = 0


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ("name", "tax_rate", "currency", "timezone", "is_active")
    inlines = [TableInline]
