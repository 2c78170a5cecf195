from django.urls import path

from .views import (
    AdjustStockView,
    ConfirmSaleView,
    LowStockView,
    MovementListView,
    ReleaseStockView,
    ReservationListView,
    ReserveStockView,
    StockStatsView,
    VariantDetailView,
    VariantsByProductView,
)

urlpatterns = [
    # Reads
    path("variants/product/<int:product_id>/", VariantsByProductView.as_view(), name="variants-by-product"),
    path("variants/<int:variant_id>/", VariantDetailView.as_view(), name="variant-detail"),
    path("movements/", MovementListView.as_view(), name="movement-list"),
    path("reservations/", ReservationListView.as_view(), name="reservation-list"),
    path("low-stock/", LowStockView.as_view(), name="low-stock"),
    path("stats/", StockStatsView.as_view(), name="stock-stats"),
    # Admin stock operations
    path("reserve/", ReserveStockView.as_view(), name="stock-reserve"),
    path("release/", ReleaseStockView.as_view(), name="stock-release"),
    path("confirm-sale/", ConfirmSaleView.as_view(), name="stock-confirm-sale"),
    path("adjust/", AdjustStockView.as_view(), name="stock-adjust"),
]

# EOF
