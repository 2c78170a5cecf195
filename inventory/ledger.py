"""Stock ledger store.

The only write path for variant stock counters. Each call locks the variant
row, computes the new ``stock``/``reserved_stock`` from the movement type and
writes the variant together with its ``StockMovement`` in one transaction,
so concurrent writers against the same variant are serialized by the row lock.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from catalog.models import ProductVariant
from common.choices import MovementType
from django.db import DatabaseError, transaction

from .exceptions import InsufficientStock, InvalidReservation, PersistenceFailure, VariantNotFound
from .models import MOVEMENT_EFFECTS, StockMovement

logger = logging.getLogger("tinythreads.inventory")


def movement_effect(movement_type: str, quantity: int) -> tuple[int, int, int]:
    """Return (stock delta, reserved delta, recorded quantity) for a movement."""
    quantity = int(quantity)
    if movement_type == MovementType.ADJUSTMENT:
        return quantity, 0, quantity
    try:
        stock_sign, reserved_sign = MOVEMENT_EFFECTS[MovementType(movement_type)]
    except (KeyError, ValueError):
        raise ValueError(f"Unknown movement type: {movement_type!r}") from None
    qty = abs(quantity)
    recorded = -qty if movement_type == MovementType.SALE else qty
    return stock_sign * qty, reserved_sign * qty, recorded


def lock_variant(variant_id: int) -> ProductVariant:
    """Fetch a variant with a row lock; must run inside a transaction."""
    try:
        return ProductVariant.objects.select_for_update().get(id=variant_id)
    except ProductVariant.DoesNotExist:
        raise VariantNotFound(variant_id) from None


def apply_movement(
    *,
    variant_id: int,
    movement_type: str,
    quantity: int,
    order_id: Optional[int] = None,
    reason: str = "",
    description: str = "",
    user_id: Optional[int] = None,
) -> tuple[ProductVariant, StockMovement]:
    """Apply one ledger movement to a variant and return (variant, movement).

    Raises ``InsufficientStock`` when ``stock`` would drop below zero or
    below ``reserved_stock``, ``InvalidReservation`` when ``reserved_stock``
    would go negative. Nothing is written in either case.
    """
    if int(quantity) == 0:
        raise ValueError("Movement quantity must be non-zero")
    stock_delta, reserved_delta, recorded = movement_effect(movement_type, quantity)

    try:
        with transaction.atomic():
            variant = lock_variant(variant_id)
            new_stock = int(variant.stock) + stock_delta
            new_reserved = int(variant.reserved_stock) + reserved_delta

            if new_reserved < 0:
                logger.error(
                    "stock.invalid_reservation",
                    extra={
                        "event": "stock.invalid_reservation",
                        "variant_id": variant.id,
                        "order_id": order_id,
                        "movement_type": str(movement_type),
                        "reserved_stock": variant.reserved_stock,
                        "quantity": abs(int(quantity)),
                    },
                )
                raise InvalidReservation(
                    f"Cannot release {abs(int(quantity))} units of variant {variant.id}: "
                    f"only {variant.reserved_stock} reserved"
                )
            if new_stock < 0 or new_reserved > new_stock:
                raise InsufficientStock(available=variant.available, requested=abs(int(quantity)))

            variant.stock = new_stock
            variant.reserved_stock = new_reserved
            variant.save(update_fields=["stock", "reserved_stock", "updated_at"])
            movement = StockMovement.objects.create(
                variant=variant,
                movement_type=movement_type,
                quantity=recorded,
                order_id=order_id,
                reason=reason or "",
                description=description or "",
                user_id=user_id,
            )
    except DatabaseError as exc:
        logger.exception(
            "stock.persistence_failed",
            extra={"event": "stock.persistence_failed", "variant_id": variant_id, "movement_type": str(movement_type)},
        )
        raise PersistenceFailure(f"Could not record {movement_type} movement for variant {variant_id}") from exc

    logger.info(
        "stock.movement_applied",
        extra={
            "event": "stock.movement_applied",
            "variant_id": variant.id,
            "movement_id": movement.id,
            "movement_type": str(movement_type),
            "quantity": recorded,
            "order_id": order_id,
            "stock": variant.stock,
            "reserved_stock": variant.reserved_stock,
        },
    )
    return variant, movement


def list_movements(variant_id: Optional[int] = None, limit: int = 50, offset: int = 0) -> list[StockMovement]:
    """Movement history, most recent first."""
    qs = StockMovement.objects.select_related("variant", "variant__product", "order").order_by("-created_at", "-id")
    if variant_id is not None:
        qs = qs.filter(variant_id=variant_id)
    offset = max(0, int(offset))
    limit = max(0, int(limit))
    return list(qs[offset : offset + limit])


def find_variant(product_id: int, size: Optional[str] = None, color: Optional[str] = None) -> Optional[ProductVariant]:
    """Exact match on (product, size, color); absent attributes match NULL only."""
    qs = ProductVariant.objects.filter(product_id=product_id)
    qs = qs.filter(size__isnull=True) if not size else qs.filter(size=size)
    qs = qs.filter(color__isnull=True) if not color else qs.filter(color=color)
    return qs.order_by("id").first()


# Reconciliation


@dataclass(frozen=True)
class LedgerDrift:
    variant_id: int
    cached_stock: int
    cached_reserved: int
    ledger_stock: int
    ledger_reserved: int
    repaired: bool = False


def replay_variant(variant_id: int) -> tuple[int, int]:
    """Recompute (stock, reserved_stock) by folding the variant's movements."""
    stock = reserved = 0
    movements = StockMovement.objects.filter(variant_id=variant_id).order_by("created_at", "id")
    movements = movements.only("movement_type", "quantity")
    for movement in movements.iterator():
        stock_delta, reserved_delta = movement.effect
        stock += stock_delta
        reserved += reserved_delta
    return stock, reserved


def verify_variant(variant_id: int, repair: bool = False) -> Optional[LedgerDrift]:
    """Compare cached counters with the ledger; optionally rewrite the cache.

    The ledger itself is never modified. Returns ``None`` when consistent.
    """
    with transaction.atomic():
        variant = lock_variant(variant_id) if repair else _get_variant(variant_id)
        ledger_stock, ledger_reserved = replay_variant(variant_id)
        if (ledger_stock, ledger_reserved) == (int(variant.stock), int(variant.reserved_stock)):
            return None
        drift = LedgerDrift(
            variant_id=variant.id,
            cached_stock=int(variant.stock),
            cached_reserved=int(variant.reserved_stock),
            ledger_stock=ledger_stock,
            ledger_reserved=ledger_reserved,
            repaired=repair,
        )
        if repair:
            variant.stock = ledger_stock
            variant.reserved_stock = ledger_reserved
            try:
                with transaction.atomic():
                    variant.save(update_fields=["stock", "reserved_stock", "updated_at"])
            except DatabaseError as exc:
                raise PersistenceFailure(f"Could not repair counters of variant {variant_id}") from exc
    logger.warning(
        "stock.ledger_drift",
        extra={
            "event": "stock.ledger_drift",
            "variant_id": drift.variant_id,
            "cached_stock": drift.cached_stock,
            "cached_reserved": drift.cached_reserved,
            "ledger_stock": drift.ledger_stock,
            "ledger_reserved": drift.ledger_reserved,
            "repaired": drift.repaired,
        },
    )
    return drift


def verify_all(repair: bool = False) -> list[LedgerDrift]:
    drifts = []
    for variant_id in ProductVariant.objects.order_by("id").values_list("id", flat=True).iterator():
        drift = verify_variant(variant_id, repair=repair)
        if drift is not None:
            drifts.append(drift)
    return drifts


def _get_variant(variant_id: int) -> ProductVariant:
    try:
        return ProductVariant.objects.get(id=variant_id)
    except ProductVariant.DoesNotExist:
        raise VariantNotFound(variant_id) from None
