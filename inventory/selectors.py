"""Read-side queries for the stock engine."""

from typing import Optional

from catalog.models import ProductVariant
from django.db.models import F, Sum
from django.db.models.functions import Coalesce

from .exceptions import VariantNotFound
from .models import StockMovement, StockReservation


def get_variants_by_product(product_id: int) -> list[ProductVariant]:
    return list(ProductVariant.objects.filter(product_id=product_id).order_by("size", "color", "id"))


def get_variant_detail(variant_id: int, movements: int = 10) -> tuple[ProductVariant, list[StockMovement]]:
    """Variant plus its most recent movements."""
    try:
        variant = ProductVariant.objects.select_related("product").get(id=variant_id)
    except ProductVariant.DoesNotExist:
        raise VariantNotFound(variant_id) from None
    recent = list(StockMovement.objects.filter(variant_id=variant_id).order_by("-created_at", "-id")[:movements])
    return variant, recent


def get_low_stock_variants(min_stock: Optional[int] = None) -> list[ProductVariant]:
    """Active variants at or below their own threshold, or below ``min_stock`` when given."""
    qs = ProductVariant.objects.filter(is_active=True).select_related("product")
    if min_stock is not None:
        qs = qs.filter(stock__lte=int(min_stock))
    else:
        qs = qs.filter(stock__lte=F("min_stock"))
    return list(qs.order_by("stock", "id"))


def get_stock_stats() -> dict:
    active = ProductVariant.objects.filter(is_active=True)
    totals = active.aggregate(
        total_stock=Coalesce(Sum("stock"), 0),
        total_reserved=Coalesce(Sum("reserved_stock"), 0),
    )
    total_variants = active.count()
    variants_with_stock = active.filter(stock__gt=0).count()
    return {
        "total_variants": total_variants,
        "variants_with_stock": variants_with_stock,
        "low_stock_variants": active.filter(stock__lte=F("min_stock")).count(),
        "out_of_stock_variants": total_variants - variants_with_stock,
        "total_stock": int(totals["total_stock"]),
        "total_reserved": int(totals["total_reserved"]),
        "available_stock": int(totals["total_stock"]) - int(totals["total_reserved"]),
    }


def list_active_reservations(*, order_id=None, variant_id=None, expires_before=None):
    qs = StockReservation.objects.filter(state=StockReservation.STATE_ACTIVE)
    if order_id is not None:
        qs = qs.filter(order_id=order_id)
    if variant_id is not None:
        qs = qs.filter(variant_id=variant_id)
    if expires_before is not None:
        qs = qs.filter(expires_at__lt=expires_before)
    return qs.order_by("created_at", "id")


def reserved_quantity(*, variant_id: int, order_id: Optional[int] = None) -> int:
    qs = list_active_reservations(order_id=order_id, variant_id=variant_id)
    return int(qs.aggregate(total=Coalesce(Sum("quantity"), 0))["total"])


def active_reservation_totals(order_id: int) -> dict[int, int]:
    """Outstanding reserved units of an order, keyed by variant id."""
    rows = (
        list_active_reservations(order_id=order_id)
        .order_by()
        .values("variant_id")
        .annotate(total=Sum("quantity"))
        .order_by("variant_id")
    )
    return {row["variant_id"]: int(row["total"]) for row in rows}
