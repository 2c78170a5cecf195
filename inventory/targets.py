"""Stock targets resolved from checkout lines.

A checkout line draws either from a variant (ledger-backed, reservation
protocol) or, for products that predate variants, from the product's flat
``stock`` column. Both arms expose the same reserve/release/confirm calls
so order code never branches on which one it holds.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from catalog.models import Product, ProductVariant
from django.db import transaction
from django.db.models import F

from . import services
from .exceptions import InsufficientStock, ProductNotFound, VariantNotFound
from .ledger import find_variant
from .selectors import reserved_quantity

logger = logging.getLogger("tinythreads.inventory")


@dataclass(frozen=True)
class VariantBacked:
    variant_id: int

    is_flat = False

    def available(self) -> int:
        try:
            return ProductVariant.objects.get(id=self.variant_id).available
        except ProductVariant.DoesNotExist:
            raise VariantNotFound(self.variant_id) from None

    def reserve(self, quantity: int, order_id: int, timeout_minutes: Optional[int] = None):
        return services.reserve_stock(self.variant_id, quantity, order_id, timeout_minutes)

    def release(self, quantity: int, order_id: Optional[int] = None):
        return services.release_stock(self.variant_id, quantity, order_id)

    def confirm(self, quantity: int, order_id: int):
        return services.confirm_sale(self.variant_id, quantity, order_id)

    def outstanding(self, order_id: int) -> int:
        return reserved_quantity(variant_id=self.variant_id, order_id=order_id)

    def describe(self) -> str:
        return f"variant:{self.variant_id}"


@dataclass(frozen=True)
class FlatStock:
    """Legacy whole-product stock; bypasses the ledger.

    ``reserve`` is a final decrement, so ``confirm`` has nothing left to do.
    """

    product_id: int

    is_flat = True

    def available(self) -> int:
        stock = Product.objects.filter(id=self.product_id).values_list("stock", flat=True).first()
        if stock is None:
            raise ProductNotFound([self.product_id])
        return int(stock)

    def reserve(self, quantity: int, order_id: int, timeout_minutes: Optional[int] = None):
        quantity = int(quantity)
        if quantity <= 0:
            raise ValueError("Reservation quantity must be positive")
        with transaction.atomic():
            product = self._lock()
            if int(product.stock) < quantity:
                raise InsufficientStock(available=int(product.stock), requested=quantity)
            Product.objects.filter(id=product.id).update(stock=F("stock") - quantity)
        logger.info(
            "stock.flat_decremented",
            extra={
                "event": "stock.flat_decremented",
                "product_id": self.product_id,
                "order_id": order_id,
                "quantity": quantity,
            },
        )

    def release(self, quantity: int, order_id: Optional[int] = None):
        quantity = int(quantity)
        if quantity <= 0:
            raise ValueError("Release quantity must be positive")
        with transaction.atomic():
            product = self._lock()
            Product.objects.filter(id=product.id).update(stock=F("stock") + quantity)
        logger.info(
            "stock.flat_restored",
            extra={
                "event": "stock.flat_restored",
                "product_id": self.product_id,
                "order_id": order_id,
                "quantity": quantity,
            },
        )

    def confirm(self, quantity: int, order_id: int):
        return None

    def outstanding(self, order_id: int) -> int:
        # Flat stock keeps no per-order record.
        return 0

    def describe(self) -> str:
        return f"product:{self.product_id}"

    def _lock(self) -> Product:
        try:
            return Product.objects.select_for_update().get(id=self.product_id)
        except Product.DoesNotExist:
            raise ProductNotFound([self.product_id]) from None


StockTarget = Union[VariantBacked, FlatStock]


def resolve_target(product_id: int, size: Optional[str] = None, color: Optional[str] = None) -> StockTarget:
    """Variant matching (product, size, color) exactly, else the product's flat stock."""
    variant = find_variant(product_id, size, color)
    if variant is None:
        return FlatStock(product_id=product_id)
    return VariantBacked(variant_id=variant.id)
