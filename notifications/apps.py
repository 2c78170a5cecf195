"""Django app configuration for notifications."""

from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    """In-app notifications for customers and staff."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "notifications"
