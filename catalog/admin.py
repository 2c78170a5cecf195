"""Admin registration for catalog models.

Variant stock counters are read-only: they change through ledger movements.
"""

from django.contrib import admin

from .models import Product, ProductVariant


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0
    fields = ("size", "color", "stock", "reserved_stock", "min_stock", "price", "is_active")
    readonly_fields = ("stock", "reserved_stock")


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("title", "slug", "price", "stock", "is_active")
    search_fields = ("title", "slug")
    list_filter = ("is_active",)
    prepopulated_fields = {"slug": ("title",)}
    inlines = [ProductVariantInline]


@admin.register(ProductVariant)
class ProductVariantAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "size", "color", "stock", "reserved_stock", "min_stock", "is_active")
    list_filter = ("is_active",)
    search_fields = ("product__title", "size", "color")
    readonly_fields = ("stock", "reserved_stock")
