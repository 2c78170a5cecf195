"""Admin registrations for inventory app.

Movements are append-only, so the admin is read-only for them.
"""

from django.contrib import admin

from .models import StockMovement, StockReservation


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("id", "variant", "movement_type", "quantity", "order", "reason", "user", "created_at")
    list_filter = ("movement_type",)
    search_fields = ("variant__product__title", "reason", "order__number")
    readonly_fields = [f.name for f in StockMovement._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StockReservation)
class StockReservationAdmin(admin.ModelAdmin):
    list_display = ("id", "variant", "order", "quantity", "state", "expires_at", "created_at")
    list_filter = ("state",)
    search_fields = ("variant__product__title", "order__number")
    readonly_fields = ("variant", "order", "quantity", "state", "expires_at", "created_at", "updated_at")


# EOF
