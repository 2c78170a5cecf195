"""Inventory models: the stock ledger and reservations.

Every change to a variant's ``stock``/``reserved_stock`` is paired with
exactly one ``StockMovement``; movements are append-only and replaying them
reconstructs the variant counters.
"""

from common.choices import MovementType, ReservationState
from django.conf import settings
from django.db import models

# Effect of each movement type on (stock, reserved_stock), applied to |quantity|.
# Adjustments are the only signed movement and are handled by the ledger directly.
MOVEMENT_EFFECTS = {
    MovementType.SALE: (-1, 0),
    MovementType.PURCHASE: (1, 0),
    MovementType.RETURN: (1, 0),
    MovementType.RESERVE: (0, 1),
    MovementType.RELEASE: (0, -1),
}


class StockMovement(models.Model):
    TYPE_SALE = MovementType.SALE
    TYPE_PURCHASE = MovementType.PURCHASE
    TYPE_ADJUSTMENT = MovementType.ADJUSTMENT
    TYPE_RESERVE = MovementType.RESERVE
    TYPE_RELEASE = MovementType.RELEASE
    TYPE_RETURN = MovementType.RETURN
    TYPE_CHOICES = MovementType.choices

    variant = models.ForeignKey("catalog.ProductVariant", on_delete=models.PROTECT, related_name="movements")
    movement_type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    quantity = models.IntegerField()  # signed: sales are negative, adjustments carry their own sign
    order = models.ForeignKey(
        "orders.Order", null=True, blank=True, on_delete=models.PROTECT, related_name="stock_movements"
    )
    reason = models.CharField(max_length=200, blank=True)
    description = models.TextField(blank=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(name="movement_non_zero", condition=~models.Q(quantity=0)),
        ]
        indexes = [
            models.Index(fields=["variant", "created_at"], name="movement_variant_created_idx"),
            models.Index(fields=["order", "movement_type"], name="movement_order_type_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.movement_type} {self.quantity} for variant {self.variant_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Stock movements are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Stock movements are append-only")

    @property
    def effect(self) -> tuple[int, int]:
        """(stock delta, reserved delta) this movement applied to its variant."""
        if self.movement_type == MovementType.ADJUSTMENT:
            return int(self.quantity), 0
        stock_sign, reserved_sign = MOVEMENT_EFFECTS[MovementType(self.movement_type)]
        qty = abs(int(self.quantity))
        return stock_sign * qty, reserved_sign * qty


class StockReservation(models.Model):
    """Units of a variant held for an order until confirmed, released or expired."""

    STATE_ACTIVE = ReservationState.ACTIVE
    STATE_RELEASED = ReservationState.RELEASED
    STATE_CONVERTED = ReservationState.CONVERTED
    STATE_CHOICES = ReservationState.choices

    variant = models.ForeignKey("catalog.ProductVariant", on_delete=models.PROTECT, related_name="reservations")
    order = models.ForeignKey("orders.Order", on_delete=models.PROTECT, related_name="reservations")
    quantity = models.IntegerField()
    state = models.CharField(max_length=16, choices=STATE_CHOICES, default=STATE_ACTIVE)
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "id"]
        constraints = [
            models.CheckConstraint(name="reservation_positive_qty", condition=models.Q(quantity__gt=0)),
        ]
        indexes = [
            models.Index(fields=["variant", "order", "state"], name="reservation_lookup_idx"),
            models.Index(fields=["state", "expires_at"], name="reservation_expiry_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Reservation<{self.variant_id}> order={self.order_id} qty={self.quantity} state={self.state}"
