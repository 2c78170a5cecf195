import pytest
from catalog.services import create_variant
from catalog.tests.factories import ProductFactory, ProductVariantFactory
from inventory.exceptions import InsufficientStock, InvalidReservation, VariantNotFound
from inventory.ledger import apply_movement, find_variant, list_movements, replay_variant, verify_all, verify_variant
from inventory.models import StockMovement


@pytest.mark.django_db
def test_purchase_sale_and_adjustment_arithmetic():
    variant = create_variant(product_id=ProductFactory().id, size="2T", color="Navy", stock=10)
    assert variant.stock == 10

    variant, sale = apply_movement(variant_id=variant.id, movement_type=StockMovement.TYPE_SALE, quantity=4)
    assert variant.stock == 6
    assert sale.quantity == -4

    variant, _ = apply_movement(variant_id=variant.id, movement_type=StockMovement.TYPE_RETURN, quantity=1)
    assert variant.stock == 7

    variant, adj = apply_movement(variant_id=variant.id, movement_type=StockMovement.TYPE_ADJUSTMENT, quantity=-2)
    assert variant.stock == 5
    assert adj.quantity == -2
    assert variant.reserved_stock == 0

    variant.refresh_from_db()
    assert (variant.stock, variant.reserved_stock) == replay_variant(variant.id)


@pytest.mark.django_db
def test_reserve_and_release_move_only_reserved_counter():
    variant = create_variant(product_id=ProductFactory().id, stock=8)

    variant, _ = apply_movement(variant_id=variant.id, movement_type=StockMovement.TYPE_RESERVE, quantity=3)
    assert (variant.stock, variant.reserved_stock, variant.available) == (8, 3, 5)

    variant, _ = apply_movement(variant_id=variant.id, movement_type=StockMovement.TYPE_RELEASE, quantity=3)
    assert (variant.stock, variant.reserved_stock, variant.available) == (8, 0, 8)


@pytest.mark.django_db
def test_rejected_movements_write_nothing():
    variant = create_variant(product_id=ProductFactory().id, stock=5)
    before = StockMovement.objects.filter(variant=variant).count()

    with pytest.raises(InsufficientStock):
        apply_movement(variant_id=variant.id, movement_type=StockMovement.TYPE_SALE, quantity=6)
    with pytest.raises(InsufficientStock):
        apply_movement(variant_id=variant.id, movement_type=StockMovement.TYPE_ADJUSTMENT, quantity=-6)
    with pytest.raises(InvalidReservation):
        apply_movement(variant_id=variant.id, movement_type=StockMovement.TYPE_RELEASE, quantity=1)

    variant.refresh_from_db()
    assert (variant.stock, variant.reserved_stock) == (5, 0)
    assert StockMovement.objects.filter(variant=variant).count() == before


@pytest.mark.django_db
def test_sale_cannot_cut_into_reserved_units():
    variant = create_variant(product_id=ProductFactory().id, stock=5)
    apply_movement(variant_id=variant.id, movement_type=StockMovement.TYPE_RESERVE, quantity=4)

    with pytest.raises(InsufficientStock) as exc_info:
        apply_movement(variant_id=variant.id, movement_type=StockMovement.TYPE_SALE, quantity=2)
    assert exc_info.value.available == 1
    assert exc_info.value.requested == 2


@pytest.mark.django_db
def test_zero_quantity_and_unknown_inputs():
    variant = create_variant(product_id=ProductFactory().id, stock=1)
    with pytest.raises(ValueError):
        apply_movement(variant_id=variant.id, movement_type=StockMovement.TYPE_PURCHASE, quantity=0)
    with pytest.raises(ValueError) as unknown_type:
        apply_movement(variant_id=variant.id, movement_type="gift", quantity=1)
    with pytest.raises(VariantNotFound) as missing:
        apply_movement(variant_id=999999, movement_type=StockMovement.TYPE_PURCHASE, quantity=1)

    # Lookup errors are not chained onto the domain error
    for exc in (unknown_type.value, missing.value):
        assert exc.__cause__ is None and exc.__suppress_context__


@pytest.mark.django_db
def test_movements_are_append_only():
    variant = create_variant(product_id=ProductFactory().id, stock=3)
    movement = StockMovement.objects.get(variant=variant)

    movement.reason = "rewritten"
    with pytest.raises(ValueError):
        movement.save()
    with pytest.raises(ValueError):
        movement.delete()
    assert StockMovement.objects.filter(id=movement.id, reason="Initial stock").exists()


@pytest.mark.django_db
def test_list_movements_most_recent_first_with_paging():
    variant = create_variant(product_id=ProductFactory().id, stock=10)
    for qty in (1, 2, 3):
        apply_movement(variant_id=variant.id, movement_type=StockMovement.TYPE_SALE, quantity=qty)
    other = create_variant(product_id=ProductFactory().id, stock=4)

    rows = list_movements(variant_id=variant.id, limit=10)
    assert [m.quantity for m in rows] == [-3, -2, -1, 10]

    page = list_movements(variant_id=variant.id, limit=2, offset=1)
    assert [m.quantity for m in page] == [-2, -1]

    everything = list_movements(limit=50)
    assert {m.variant_id for m in everything} == {variant.id, other.id}


@pytest.mark.django_db
def test_find_variant_matches_missing_attributes_as_null():
    product = ProductFactory()
    default = ProductVariantFactory(product=product, size=None, color=None)
    sized = ProductVariantFactory(product=product, size="4T", color=None)
    full = ProductVariantFactory(product=product, size="4T", color="Sage")

    assert find_variant(product.id) == default
    assert find_variant(product.id, size="4T") == sized
    assert find_variant(product.id, size="4T", color="Sage") == full
    assert find_variant(product.id, size="4T", color="Navy") is None
    assert find_variant(product.id, size="", color="") == default


@pytest.mark.django_db
def test_verify_reports_and_repairs_drift():
    variant = create_variant(product_id=ProductFactory().id, stock=6)
    apply_movement(variant_id=variant.id, movement_type=StockMovement.TYPE_RESERVE, quantity=2)
    assert verify_variant(variant.id) is None

    # Counter written behind the ledger's back
    type(variant).objects.filter(id=variant.id).update(stock=9)

    drift = verify_variant(variant.id)
    assert drift is not None and not drift.repaired
    assert (drift.cached_stock, drift.ledger_stock, drift.ledger_reserved) == (9, 6, 2)

    drifts = verify_all(repair=True)
    assert [d.variant_id for d in drifts] == [variant.id]
    variant.refresh_from_db()
    assert (variant.stock, variant.reserved_stock) == (6, 2)
    assert verify_variant(variant.id) is None
