"""Order lifecycle and its coupling to the stock engine.

Checkout reserves stock for every line or for none of them. Status
transitions then drive the reservations: moving a pending order into
fulfilment converts them into sales, cancelling releases them. Stock
synchronisation after a transition is best-effort and never blocks the
transition itself.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from catalog.models import Product, ProductVariant
from common.choices import OrderStatus
from django.db import transaction
from django.utils import timezone
from inventory.exceptions import InsufficientStock, OrderNotFound, ProductNotFound
from inventory.selectors import active_reservation_totals
from inventory.services import confirm_sale, release_stock
from inventory.targets import FlatStock, StockTarget, resolve_target
from notifications.services import notify_new_order, notify_order_expired, notify_order_status_update

from .models import Order, OrderItem

logger = logging.getLogger("tinythreads.orders")


@dataclass(frozen=True)
class CheckoutLine:
    product_id: int
    quantity: int
    size: Optional[str] = None
    color: Optional[str] = None


@dataclass
class ReleaseOutcome:
    released_lines: int = 0
    restored_lines: int = 0
    failures: int = 0


def _coerce_line(line: Union[CheckoutLine, dict]) -> CheckoutLine:
    if isinstance(line, CheckoutLine):
        candidate = line
    else:
        candidate = CheckoutLine(
            product_id=int(line["product_id"]),
            quantity=int(line["quantity"]),
            size=line.get("size") or None,
            color=line.get("color") or None,
        )
    if candidate.quantity <= 0:
        raise ValueError("Line quantity must be positive")
    return candidate


def get_order(order_id: int, *, user=None) -> Order:
    qs = Order.objects.prefetch_related("items", "items__product", "items__variant")
    if user is not None:
        qs = qs.filter(user=user)
    try:
        return qs.get(id=order_id)
    except Order.DoesNotExist:
        raise OrderNotFound(order_id) from None


def place_order(*, user, lines: Iterable[Union[CheckoutLine, dict]], timeout_minutes: Optional[int] = None) -> Order:
    """Create a pending order and reserve stock for all of its lines.

    Raises ``ProductNotFound`` naming every unknown product and one
    aggregated ``InsufficientStock`` naming every short line. If a
    reservation fails after the order exists, the order is deleted and the
    reservation error is re-raised; no reservation of the order survives.
    """
    lines = [_coerce_line(line) for line in lines]
    if not lines:
        raise ValueError("An order needs at least one line")

    product_ids = {line.product_id for line in lines}
    products = Product.objects.in_bulk(product_ids)
    missing = sorted(product_ids - set(products))
    if missing:
        raise ProductNotFound(missing)

    resolved = [(line, resolve_target(line.product_id, line.size, line.color)) for line in lines]
    _check_availability(resolved, products)

    order = _create_order(user, resolved, products)
    try:
        _reserve_all(order, resolved, timeout_minutes)
    except Exception as exc:
        logger.warning(
            "order.reservation_failed",
            extra={"event": "order.reservation_failed", "order_id": order.id, "error": str(exc)},
        )
        order.delete()
        raise

    logger.info(
        "order.placed",
        extra={"event": "order.placed", "order_id": order.id, "user_id": order.user_id, "lines": len(lines)},
    )
    try:
        notify_new_order(order)
    except Exception:
        logger.exception("order.notify_failed", extra={"event": "order.notify_failed", "order_id": order.id})
    return order


def _check_availability(resolved: list[tuple[CheckoutLine, StockTarget]], products: dict) -> None:
    wanted = defaultdict(int)
    first_line = {}
    for line, target in resolved:
        wanted[target] += line.quantity
        first_line.setdefault(target, line)

    shortages = []
    for target, requested in wanted.items():
        available = target.available()
        if available < requested:
            line = first_line[target]
            shortages.append(
                {
                    "product_id": line.product_id,
                    "product": products[line.product_id].title,
                    "size": line.size,
                    "color": line.color,
                    "available": available,
                    "requested": requested,
                }
            )
    if shortages:
        logger.info(
            "order.insufficient_stock",
            extra={"event": "order.insufficient_stock", "shortages": len(shortages)},
        )
        raise InsufficientStock.for_lines(shortages)


def _create_order(user, resolved, products) -> Order:
    variant_ids = [target.variant_id for _, target in resolved if not target.is_flat]
    variants = ProductVariant.objects.select_related("product").in_bulk(variant_ids)
    with transaction.atomic():
        order = Order.objects.create(user=user)
        for line, target in resolved:
            product = products[line.product_id]
            variant = None if target.is_flat else variants[target.variant_id]
            OrderItem.objects.create(
                order=order,
                product=product,
                variant=variant,
                size=line.size,
                color=line.color,
                quantity=line.quantity,
                unit_price=variant.effective_price if variant is not None else product.price,
            )
        order.number = f"ORD-{int(order.id):06d}"
        order.save(update_fields=["number"])
    return order


def _reserve_all(order: Order, resolved, timeout_minutes: Optional[int]) -> None:
    # Variants in ascending id first so concurrent checkouts lock rows in the same order.
    ordered = sorted(
        resolved,
        key=lambda pair: (pair[1].is_flat, getattr(pair[1], "variant_id", 0), getattr(pair[1], "product_id", 0)),
    )
    with transaction.atomic():
        for line, target in ordered:
            target.reserve(line.quantity, order.id, timeout_minutes)


def update_order_status(*, order: Order, status: str, acting_user=None) -> Order:
    """Move an order to ``status`` and synchronise its stock.

    ``pending`` to a fulfilment status confirms the order's reservations as
    sales; any move to ``cancelled`` releases them, and restores flat-stock
    lines when the order was still pending.
    """
    if status not in OrderStatus.values:
        raise ValueError(f"Unknown order status: {status!r}")
    with transaction.atomic():
        try:
            locked = Order.objects.select_for_update().get(id=order.id)
        except Order.DoesNotExist:
            raise OrderNotFound(order.id) from None
        previous = locked.status
        if previous == status:
            return locked
        if previous == Order.STATUS_CANCELLED:
            raise ValueError("Cannot change the status of a cancelled order")
        if status == Order.STATUS_PENDING:
            raise ValueError("Cannot move an order back to pending")
        locked.status = status
        locked.save(update_fields=["status", "updated_at"])

    logger.info(
        "order.status_changed",
        extra={
            "event": "order.status_changed",
            "order_id": locked.id,
            "user_id": locked.user_id,
            "acting_user_id": getattr(acting_user, "id", None),
            "status_from": previous,
            "status_to": status,
        },
    )

    if previous == Order.STATUS_PENDING and status in Order.FULFILMENT_STATUSES:
        confirm_order_stock(locked)
    elif status == Order.STATUS_CANCELLED:
        release_order_stock(locked, restore_flat=previous == Order.STATUS_PENDING)

    try:
        notify_order_status_update(locked, previous, status)
    except Exception:
        logger.exception("order.notify_failed", extra={"event": "order.notify_failed", "order_id": locked.id})
    return locked


def cancel_order(order: Order, *, user=None) -> Order:
    """Customer cancellation; only pending orders qualify."""
    if order.status != Order.STATUS_PENDING:
        raise ValueError("Only pending orders can be cancelled")
    return update_order_status(order=order, status=Order.STATUS_CANCELLED, acting_user=user)


def confirm_order_stock(order: Order) -> int:
    """Convert every active reservation of the order into a sale. Returns lines confirmed."""
    confirmed = 0
    for variant_id, quantity in active_reservation_totals(order.id).items():
        try:
            confirm_sale(variant_id, quantity, order.id)
            confirmed += 1
        except Exception:
            logger.exception(
                "order.stock_sync_failed",
                extra={"event": "order.stock_sync_failed", "order_id": order.id, "variant_id": variant_id},
            )
    return confirmed


def release_order_stock(order: Order, *, restore_flat: bool = True) -> ReleaseOutcome:
    """Release the order's reservations and optionally restore its flat-stock lines.

    Each line is handled on its own; a failure is logged and the rest continue.
    """
    outcome = ReleaseOutcome()
    for variant_id, quantity in active_reservation_totals(order.id).items():
        try:
            if release_stock(variant_id, quantity, order.id) is not None:
                outcome.released_lines += 1
        except Exception:
            outcome.failures += 1
            logger.exception(
                "order.stock_sync_failed",
                extra={"event": "order.stock_sync_failed", "order_id": order.id, "variant_id": variant_id},
            )
    if restore_flat:
        for item in OrderItem.objects.filter(order_id=order.id, variant__isnull=True).order_by("id"):
            try:
                FlatStock(product_id=item.product_id).release(item.quantity, order.id)
                outcome.restored_lines += 1
            except Exception:
                outcome.failures += 1
                logger.exception(
                    "order.stock_sync_failed",
                    extra={"event": "order.stock_sync_failed", "order_id": order.id, "product_id": item.product_id},
                )
    return outcome


def expire_order(order: Order) -> Optional[ReleaseOutcome]:
    """Cancel a pending order that was never paid and release its stock.

    The transition is conditional, so an order another path already moved is
    left alone and ``None`` is returned.
    """
    cancelled = Order.objects.filter(id=order.id, status=Order.STATUS_PENDING).update(
        status=Order.STATUS_CANCELLED, updated_at=timezone.now()
    )
    if not cancelled:
        return None
    order.status = Order.STATUS_CANCELLED
    outcome = release_order_stock(order, restore_flat=True)
    logger.info(
        "order.status_changed",
        extra={
            "event": "order.status_changed",
            "order_id": order.id,
            "user_id": order.user_id,
            "status_from": Order.STATUS_PENDING,
            "status_to": Order.STATUS_CANCELLED,
            "reason": "expired",
        },
    )
    try:
        notify_order_expired(order)
    except Exception:
        logger.exception("order.notify_failed", extra={"event": "order.notify_failed", "order_id": order.id})
    return outcome
