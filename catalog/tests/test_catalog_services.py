from decimal import Decimal

import pytest
from catalog.models import ProductVariant
from catalog.services import create_product, create_variant, deactivate_variant, delete_variant, update_variant
from catalog.tests.factories import ProductFactory, ProductVariantFactory
from inventory.ledger import verify_variant
from inventory.models import StockMovement


@pytest.mark.django_db
def test_create_variant_opens_ledger_with_purchase():
    product = ProductFactory()
    variant = create_variant(product_id=product.id, size="0-3M", color="Oat", stock=7, min_stock=2)

    assert (variant.stock, variant.reserved_stock, variant.min_stock) == (7, 0, 2)
    movement = StockMovement.objects.get(variant=variant)
    assert movement.movement_type == StockMovement.TYPE_PURCHASE and movement.quantity == 7
    assert verify_variant(variant.id) is None


@pytest.mark.django_db
def test_create_variant_without_stock_writes_no_movement(settings):
    settings.STOCK_DEFAULT_MIN_STOCK = 3
    variant = create_variant(product_id=ProductFactory().id, size="", color="")

    assert (variant.size, variant.color, variant.min_stock) == (None, None, 3)
    assert not StockMovement.objects.exists()
    with pytest.raises(ValueError):
        create_variant(product_id=variant.product_id, stock=-1)


@pytest.mark.django_db
def test_create_product_with_default_or_explicit_variants():
    plain = create_product(title="Bamboo Bib", price=Decimal("6.00"), stock=4)
    assert [(v.size, v.color, v.stock) for v in plain.variants.all()] == [(None, None, 4)]
    assert plain.slug == "bamboo-bib"
    assert plain.stock == 0

    sized = create_product(
        title="Bamboo Bib",
        price=Decimal("6.00"),
        variants=[{"size": "S", "stock": 2}, {"size": "M", "stock": 0, "price": Decimal("7.00")}],
    )
    assert sized.slug == "bamboo-bib-2"
    assert sorted((v.size, v.stock) for v in sized.variants.all()) == [("M", 0), ("S", 2)]


@pytest.mark.django_db
def test_update_variant_only_touches_catalog_fields():
    variant = create_variant(product_id=ProductFactory().id, size="2T", stock=5)

    updated = update_variant(variant.id, color="Teal", min_stock=1, price=Decimal("11.00"))
    assert (updated.color, updated.min_stock, updated.effective_price) == ("Teal", 1, Decimal("11.00"))

    with pytest.raises(ValueError):
        update_variant(variant.id, stock=50)
    assert ProductVariant.objects.get(id=variant.id).stock == 5


@pytest.mark.django_db
def test_deactivate_and_delete_variant():
    tracked = create_variant(product_id=ProductFactory().id, stock=1)
    untracked = ProductVariantFactory()

    assert deactivate_variant(tracked.id).is_active is False
    with pytest.raises(ValueError):
        delete_variant(tracked.id)

    delete_variant(untracked.id)
    assert not ProductVariant.objects.filter(id=untracked.id).exists()
