from django.contrib import admin

from .models import MenuItem, Modifier, ModifierGroup, Station


class ModifierInline(admin.TabularInline):
    model = Modifier
    extra = 0


@admin.register(ModifierGroup)
class ModifierGroupAdmin(admin.ModelAdmin):
    list_display = ("name", "selection_type", "required", "min_selections", "max_selections")
    inlines = [ModifierInline]


@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    list_display = ("name", "location", "price", "station", "is_86d", "is_active")
    list_filter = ("location", "station", "is_86d", "is_active")
    search_fields = ("name", "kitchen_name")
    filter_horizontal = ("modifier_groups",)


admin.site.register(Station)
