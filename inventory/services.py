"""Reservation engine: checkout-facing stock operations built on the ledger.

A reservation for a (variant, order) pair moves ``none -> active`` on
``reserve_stock`` and leaves ``active`` exactly once, either through
``release_stock`` (units return to availability) or ``confirm_sale``
(reservation cleared and ``stock`` permanently decremented).

Every operation locks the variant row first, so reservation records of a
variant are only ever read and written under that lock.
"""

import logging
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .alerts import notify_if_low_stock
from .exceptions import InsufficientStock, InvalidReservation
from .ledger import apply_movement, lock_variant
from .models import StockMovement, StockReservation
from .selectors import reserved_quantity

logger = logging.getLogger("tinythreads.inventory")


def default_timeout_minutes() -> int:
    return int(getattr(settings, "STOCK_RESERVATION_TIMEOUT_MINUTES", 15))


def update_stock(
    *,
    variant_id: int,
    movement_type: str,
    quantity: int,
    order_id: Optional[int] = None,
    reason: str = "",
    description: str = "",
    user_id: Optional[int] = None,
):
    """Apply a ledger movement, then raise the low-stock signal."""
    variant, movement = apply_movement(
        variant_id=variant_id,
        movement_type=movement_type,
        quantity=quantity,
        order_id=order_id,
        reason=reason,
        description=description,
        user_id=user_id,
    )
    notify_if_low_stock(variant)
    return variant, movement


def adjust_stock(*, variant_id: int, quantity: int, reason: str = "", description: str = "", user=None):
    """Manual signed correction of physical stock by staff."""
    return update_stock(
        variant_id=variant_id,
        movement_type=StockMovement.TYPE_ADJUSTMENT,
        quantity=quantity,
        reason=reason or "Manual adjustment",
        description=description or "Adjustment made by staff",
        user_id=getattr(user, "id", None),
    )


def reserve_stock(
    variant_id: int, quantity: int, order_id: int, timeout_minutes: Optional[int] = None
) -> StockReservation:
    """Hold ``quantity`` units of a variant for an order.

    ``stock`` is unchanged; ``reserved_stock`` grows so ``available`` shrinks.
    The timeout only sets ``expires_at`` on the reservation record.
    """
    quantity = int(quantity)
    if quantity <= 0:
        raise ValueError("Reservation quantity must be positive")
    timeout = default_timeout_minutes() if timeout_minutes is None else int(timeout_minutes)

    with transaction.atomic():
        variant = lock_variant(variant_id)
        if variant.available < quantity:
            logger.info(
                "stock.reserve_rejected",
                extra={
                    "event": "stock.reserve_rejected",
                    "variant_id": variant.id,
                    "order_id": order_id,
                    "available": variant.available,
                    "requested": quantity,
                },
            )
            raise InsufficientStock(available=variant.available, requested=quantity)
        variant, _ = apply_movement(
            variant_id=variant.id,
            movement_type=StockMovement.TYPE_RESERVE,
            quantity=quantity,
            order_id=order_id,
            reason="Checkout reservation",
            description=f"Stock reserved for {timeout} minutes",
        )
        reservation = StockReservation.objects.create(
            variant_id=variant.id,
            order_id=order_id,
            quantity=quantity,
            state=StockReservation.STATE_ACTIVE,
            expires_at=timezone.now() + timedelta(minutes=timeout),
        )

    logger.info(
        "stock.reserved",
        extra={
            "event": "stock.reserved",
            "variant_id": variant.id,
            "order_id": order_id,
            "reservation_id": reservation.id,
            "quantity": quantity,
        },
    )
    notify_if_low_stock(variant)
    return reservation


def release_stock(variant_id: int, quantity: int, order_id: Optional[int] = None) -> Optional[StockMovement]:
    """Return reserved units of a variant to availability.

    Safe to call repeatedly: admin cancellation, the expiry sweep and
    checkout rollback may all try to release the same order. When nothing
    is outstanding the call is logged and returns ``None``; when less is
    outstanding than requested only the outstanding part is released.
    Without ``order_id`` the oldest active reservations of the variant go first.
    """
    quantity = int(quantity)
    if quantity <= 0:
        raise ValueError("Release quantity must be positive")

    with transaction.atomic():
        variant = lock_variant(variant_id)
        released = min(quantity, reserved_quantity(variant_id=variant.id, order_id=order_id))
        if released < quantity:
            logger.log(
                logging.ERROR if released else logging.WARNING,
                "stock.release_clamped" if released else "stock.release_skipped",
                extra={
                    "event": "stock.release_clamped" if released else "stock.release_skipped",
                    "variant_id": variant.id,
                    "order_id": order_id,
                    "requested": quantity,
                    "outstanding": released,
                },
            )
        movable = min(released, int(variant.reserved_stock))
        if movable < released:
            logger.error(
                "stock.reserved_counter_drift",
                extra={
                    "event": "stock.reserved_counter_drift",
                    "variant_id": variant.id,
                    "order_id": order_id,
                    "reserved_stock": variant.reserved_stock,
                    "reservations": released,
                },
            )
        if movable == 0:
            return None
        _consume_reservations(variant.id, movable, order_id, StockReservation.STATE_RELEASED)
        variant, movement = apply_movement(
            variant_id=variant.id,
            movement_type=StockMovement.TYPE_RELEASE,
            quantity=movable,
            order_id=order_id,
            reason="Reservation released",
            description="Reserved stock returned to availability",
        )

    logger.info(
        "stock.released",
        extra={"event": "stock.released", "variant_id": variant.id, "order_id": order_id, "quantity": movable},
    )
    notify_if_low_stock(variant)
    return movement


def confirm_sale(variant_id: int, quantity: int, order_id: int) -> StockMovement:
    """Convert an order's reservation into a sale.

    Writes a ``release`` followed by a ``sale`` movement in one transaction:
    ``reserved_stock`` returns to its pre-reserve value and ``stock`` drops
    by ``quantity``. This is the only path that reduces physical stock.
    """
    quantity = int(quantity)
    if quantity <= 0:
        raise ValueError("Sale quantity must be positive")

    with transaction.atomic():
        variant = lock_variant(variant_id)
        outstanding = reserved_quantity(variant_id=variant.id, order_id=order_id)
        if outstanding < quantity:
            logger.error(
                "stock.confirm_invalid",
                extra={
                    "event": "stock.confirm_invalid",
                    "variant_id": variant.id,
                    "order_id": order_id,
                    "requested": quantity,
                    "outstanding": outstanding,
                },
            )
            raise InvalidReservation(
                f"Order {order_id} holds {outstanding} reserved units of variant {variant.id}; cannot sell {quantity}"
            )
        _consume_reservations(variant.id, quantity, order_id, StockReservation.STATE_CONVERTED)
        apply_movement(
            variant_id=variant.id,
            movement_type=StockMovement.TYPE_RELEASE,
            quantity=quantity,
            order_id=order_id,
            reason="Reservation converted to sale",
            description="Reservation cleared before sale",
        )
        variant, sale = apply_movement(
            variant_id=variant.id,
            movement_type=StockMovement.TYPE_SALE,
            quantity=-quantity,
            order_id=order_id,
            reason="Sale confirmed",
            description="Sold units removed from stock",
        )

    logger.info(
        "stock.sale_confirmed",
        extra={"event": "stock.sale_confirmed", "variant_id": variant.id, "order_id": order_id, "quantity": quantity},
    )
    notify_if_low_stock(variant)
    return sale


def release_reservation(*, reservation_id: int) -> Optional[StockMovement]:
    """Release one reservation record; a no-op when it is no longer active."""
    try:
        res = StockReservation.objects.get(id=reservation_id)
    except StockReservation.DoesNotExist:
        return None
    if res.state != StockReservation.STATE_ACTIVE:
        return None
    return release_stock(res.variant_id, res.quantity, res.order_id)


def _consume_reservations(variant_id: int, quantity: int, order_id: Optional[int], final_state: str) -> int:
    """Move up to ``quantity`` units of active reservations into ``final_state``.

    A partially consumed reservation keeps its remainder active and the
    consumed part is recorded as a separate row. Returns units consumed.
    """
    qs = StockReservation.objects.select_for_update().filter(variant_id=variant_id, state=StockReservation.STATE_ACTIVE)
    if order_id is not None:
        qs = qs.filter(order_id=order_id)
    remaining = quantity
    for res in qs.order_by("created_at", "id"):
        if remaining <= 0:
            break
        take = min(remaining, int(res.quantity))
        if take == res.quantity:
            res.state = final_state
            res.save(update_fields=["state", "updated_at"])
        else:
            res.quantity = int(res.quantity) - take
            res.save(update_fields=["quantity", "updated_at"])
            StockReservation.objects.create(
                variant_id=variant_id,
                order_id=res.order_id,
                quantity=take,
                state=final_state,
                expires_at=res.expires_at,
            )
        remaining -= take
    return quantity - remaining
