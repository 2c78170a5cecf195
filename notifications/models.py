from common.choices import NotificationType
from django.conf import settings
from django.db import models


class Notification(models.Model):
    """In-app message for a user (customers and staff alike)."""

    TYPE_ORDER = NotificationType.ORDER
    TYPE_STOCK = NotificationType.STOCK
    TYPE_SYSTEM = NotificationType.SYSTEM
    TYPE_CHOICES = NotificationType.choices

    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="notifications", on_delete=models.CASCADE)
    type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    title = models.CharField(max_length=200)
    message = models.TextField()
    data = models.JSONField(null=True, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["user", "is_read", "created_at"], name="notification_inbox_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Notification#{self.id} user={self.user_id} type={self.type}"
