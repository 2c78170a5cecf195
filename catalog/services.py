"""Catalog management: products and variants.

Variant counters start at zero and any initial stock enters through a
``purchase`` movement, so the ledger alone reconstructs every variant.
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional

from common.choices import MovementType
from django.db import transaction
from django.utils.text import slugify
from inventory.ledger import apply_movement

from .models import Product, ProductVariant, default_min_stock

logger = logging.getLogger("tinythreads.catalog")

EDITABLE_VARIANT_FIELDS = ("size", "color", "min_stock", "price", "is_active")


def _unique_slug(title: str) -> str:
    base = slugify(title)[:200] or "product"
    slug, n = base, 2
    while Product.objects.filter(slug=slug).exists():
        slug = f"{base}-{n}"
        n += 1
    return slug


@transaction.atomic
def create_variant(
    *,
    product_id: int,
    size: Optional[str] = None,
    color: Optional[str] = None,
    stock: int = 0,
    min_stock: Optional[int] = None,
    price: Optional[Decimal] = None,
    is_active: bool = True,
) -> ProductVariant:
    if int(stock) < 0:
        raise ValueError("Initial stock must be non-negative")
    variant = ProductVariant.objects.create(
        product_id=product_id,
        size=size or None,
        color=color or None,
        min_stock=default_min_stock() if min_stock is None else int(min_stock),
        price=price,
        is_active=is_active,
    )
    if int(stock) > 0:
        variant, _ = apply_movement(
            variant_id=variant.id,
            movement_type=MovementType.PURCHASE,
            quantity=int(stock),
            reason="Initial stock",
            description="Stock recorded when the variant was created",
        )
    logger.info(
        "catalog.variant_created",
        extra={"event": "catalog.variant_created", "variant_id": variant.id, "product_id": product_id, "stock": stock},
    )
    return variant


@transaction.atomic
def create_product(
    *,
    title: str,
    price: Decimal,
    stock: int = 0,
    variants: Optional[Iterable[dict]] = None,
    description: str = "",
    slug: Optional[str] = None,
    is_active: bool = True,
) -> Product:
    """Create a product with explicit variants, or one default variant holding ``stock``."""
    product = Product.objects.create(
        title=title,
        slug=slug or _unique_slug(title),
        description=description,
        price=price,
        is_active=is_active,
    )
    variants = list(variants or [])
    if not variants:
        variants = [{"stock": stock}]
    for variant_fields in variants:
        create_variant(product_id=product.id, **variant_fields)
    return product


def update_variant(variant_id: int, **fields) -> ProductVariant:
    """Edit catalog attributes of a variant. Stock is only changed through movements."""
    unknown = set(fields) - set(EDITABLE_VARIANT_FIELDS)
    if unknown:
        raise ValueError(f"Cannot edit variant fields: {', '.join(sorted(unknown))}")
    variant = ProductVariant.objects.get(id=variant_id)
    for name, value in fields.items():
        if name in ("size", "color"):
            value = value or None
        setattr(variant, name, value)
    variant.save(update_fields=[*fields.keys(), "updated_at"])
    return variant


def deactivate_variant(variant_id: int) -> ProductVariant:
    return update_variant(variant_id, is_active=False)


def delete_variant(variant_id: int) -> None:
    """Hard delete, refused once the ledger references the variant."""
    variant = ProductVariant.objects.get(id=variant_id)
    if variant.movements.exists():
        raise ValueError("Variant has stock movements; deactivate it instead")
    variant.delete()
