"""Expiry reconciliation sweep.

Periodic cleanup for abandoned checkouts: pending orders past the expiry
age are cancelled and their stock released, and reservations whose own
``expires_at`` has passed are released once their order is cancelled.
Every item is processed on its own; one failure is logged and the batch
continues. Re-running a sweep is safe.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone
from orders.models import Order
from orders.services import confirm_order_stock, expire_order

from .selectors import list_active_reservations
from .services import release_reservation

logger = logging.getLogger("tinythreads.inventory")


@dataclass
class SweepResult:
    scanned: int = 0
    cancelled: int = 0
    released: int = 0
    failures: int = 0


def pending_order_expiry_minutes() -> int:
    return int(getattr(settings, "STOCK_PENDING_ORDER_EXPIRY_MINUTES", 60))


def release_expired_orders(*, now: Optional[datetime] = None, max_age_minutes: Optional[int] = None) -> SweepResult:
    """Cancel pending orders older than ``max_age_minutes`` and release their stock."""
    now = now or timezone.now()
    max_age = pending_order_expiry_minutes() if max_age_minutes is None else int(max_age_minutes)
    cutoff = now - timedelta(minutes=max_age)

    result = SweepResult()
    expired = Order.objects.filter(status=Order.STATUS_PENDING, created_at__lt=cutoff).order_by("created_at", "id")
    for order in expired.iterator():
        result.scanned += 1
        try:
            outcome = expire_order(order)
        except Exception:
            result.failures += 1
            logger.exception(
                "stock.sweep_order_failed",
                extra={"event": "stock.sweep_order_failed", "order_id": order.id},
            )
            continue
        if outcome is None:
            continue
        result.cancelled += 1
        result.released += outcome.released_lines + outcome.restored_lines
        result.failures += outcome.failures

    logger.info(
        "stock.sweep_orders_done",
        extra={
            "event": "stock.sweep_orders_done",
            "cutoff": cutoff.isoformat(),
            "scanned": result.scanned,
            "cancelled": result.cancelled,
            "released": result.released,
            "failures": result.failures,
        },
    )
    return result


def release_expired_reservations(*, now: Optional[datetime] = None) -> int:
    """Release active reservations of cancelled orders past their ``expires_at``.

    Pending orders are left to the order sweep. Reservations still active on
    an order in fulfilment mean its sale was never confirmed; the sale is
    retried instead, since releasing would hand sold units back to checkout.
    Returns the number of reservations released.
    """
    now = now or timezone.now()
    expired = list_active_reservations(expires_before=now)

    unsold = expired.filter(order__status__in=Order.FULFILMENT_STATUSES).values_list("order_id", flat=True)
    for order_id in sorted(set(unsold)):
        _retry_sale(order_id)

    released = 0
    cancelled = expired.filter(order__status=Order.STATUS_CANCELLED)
    for reservation_id in list(cancelled.values_list("id", flat=True)):
        try:
            if release_reservation(reservation_id=reservation_id) is not None:
                released += 1
        except Exception:
            logger.exception(
                "stock.sweep_reservation_failed",
                extra={"event": "stock.sweep_reservation_failed", "reservation_id": reservation_id},
            )
    if released:
        logger.info(
            "stock.sweep_reservations_done",
            extra={"event": "stock.sweep_reservations_done", "released": released},
        )
    return released


def _retry_sale(order_id: int) -> None:
    try:
        order = Order.objects.get(id=order_id)
        confirmed = confirm_order_stock(order)
    except Exception:
        logger.exception(
            "stock.sweep_sale_retry_failed",
            extra={"event": "stock.sweep_sale_retry_failed", "order_id": order_id},
        )
        return
    logger.warning(
        "stock.sweep_sale_retried",
        extra={"event": "stock.sweep_sale_retried", "order_id": order_id, "confirmed_lines": confirmed},
    )
