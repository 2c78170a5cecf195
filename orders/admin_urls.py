"""Staff-only order routes (v1)."""

from django.urls import path

from .views import AdminOrderStatusView

app_name = "orders_admin"

urlpatterns = [
    path("<int:order_id>/status/", AdminOrderStatusView.as_view(), name="order-status"),
]
