"""Catalog app models.

Products and their sellable variants. A variant is a (size, color)
combination of a product; either attribute may be absent, and a variant
with neither is the product's "default" variant.

Variant ``stock``/``reserved_stock`` are a materialized cache of the
inventory ledger and are only written through ``inventory.ledger``.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models


def default_min_stock() -> int:
    return int(getattr(settings, "STOCK_DEFAULT_MIN_STOCK", 5))


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Product(TimeStampedModel):
    """Core product entity.

    ``stock`` is the legacy flat stock for products that predate variant
    modeling. It bypasses the ledger and is only touched by the flat-stock
    checkout fallback.
    """

    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    stock = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ["title"]
        constraints = [
            models.CheckConstraint(name="product_stock_non_negative", condition=models.Q(stock__gte=0)),
            models.CheckConstraint(name="product_price_non_negative", condition=models.Q(price__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.title


class ProductVariant(TimeStampedModel):
    """Sellable unit of a product at a given size/color."""

    product = models.ForeignKey(Product, related_name="variants", on_delete=models.PROTECT)
    size = models.CharField(max_length=32, null=True, blank=True)
    color = models.CharField(max_length=48, null=True, blank=True)
    stock = models.IntegerField(default=0)
    reserved_stock = models.IntegerField(default=0)
    min_stock = models.IntegerField(default=default_min_stock)
    price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["product_id", "size", "color", "id"]
        constraints = [
            models.CheckConstraint(name="variant_stock_non_negative", condition=models.Q(stock__gte=0)),
            models.CheckConstraint(name="variant_reserved_non_negative", condition=models.Q(reserved_stock__gte=0)),
            models.CheckConstraint(
                name="variant_reserved_le_stock",
                condition=models.Q(reserved_stock__lte=models.F("stock")),
            ),
            models.CheckConstraint(
                name="variant_price_non_negative",
                condition=models.Q(price__gte=0) | models.Q(price__isnull=True),
            ),
        ]
        indexes = [
            models.Index(fields=["product", "size", "color"], name="variant_product_attrs_idx"),
            models.Index(fields=["is_active", "stock"], name="variant_active_stock_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.product.title} [{self.label}]"

    @property
    def label(self) -> str:
        return " / ".join(v for v in (self.size, self.color) if v) or "default"

    @property
    def available(self) -> int:
        return int(self.stock) - int(self.reserved_stock)

    @property
    def is_low_stock(self) -> bool:
        return int(self.stock) <= int(self.min_stock)

    @property
    def effective_price(self) -> Decimal:
        if self.price is not None:
            return self.price
        return self.product.price
