"""Django app configuration for inventory."""

from django.apps import AppConfig


class InventoryConfig(AppConfig):
    """Stock ledger, reservations and the jobs that reconcile them."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "inventory"
