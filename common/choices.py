"""Shared enumerations and choices used across apps."""

from django.db import models


class MovementType(models.TextChoices):
    """Kinds of stock ledger entries."""

    SALE = "sale", "Sale"
    PURCHASE = "purchase", "Purchase"
    ADJUSTMENT = "adjustment", "Adjustment"
    RESERVE = "reserve", "Reserve"
    RELEASE = "release", "Release"
    RETURN = "return", "Return"


class ReservationState(models.TextChoices):
    ACTIVE = "active", "Active"
    RELEASED = "released", "Released"
    CONVERTED = "converted", "Converted"


class OrderStatus(models.TextChoices):
    """Lifecycle statuses for orders."""

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


class NotificationType(models.TextChoices):
    ORDER = "order", "Order"
    STOCK = "stock", "Stock"
    SYSTEM = "system", "System"
