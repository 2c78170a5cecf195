from django.contrib import admin

from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ("product", "variant", "size", "color", "quantity", "unit_price")


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "number", "status", "user", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("number", "user__username", "user__email")
    date_hierarchy = "created_at"
    # Status changes go through the API so stock stays in sync.
    readonly_fields = ("status",)
    inlines = [OrderItemInline]


@admin.register(OrderItem)
class OrderItemAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "product", "variant", "quantity", "unit_price")
    list_filter = ("order",)
    search_fields = ("product__title", "order__number")
