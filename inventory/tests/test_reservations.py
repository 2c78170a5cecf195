import datetime as dt
import threading

import pytest
from catalog.models import ProductVariant
from catalog.services import create_variant
from catalog.tests.factories import ProductFactory, StaffFactory
from django.db import close_old_connections, connection
from django.utils import timezone
from inventory.exceptions import InsufficientStock, InvalidReservation, VariantNotFound
from inventory.models import StockMovement, StockReservation
from inventory.services import (
    adjust_stock,
    confirm_sale,
    release_reservation,
    release_stock,
    reserve_stock,
)
from notifications.models import Notification
from orders.tests.factories import OrderFactory


def _variant(stock=10, min_stock=5):
    return create_variant(product_id=ProductFactory().id, size="4T", color="Navy", stock=stock, min_stock=min_stock)


@pytest.mark.django_db
def test_reserve_holds_units_without_touching_stock():
    variant = _variant(stock=10)
    order = OrderFactory()

    before = timezone.now()
    res = reserve_stock(variant.id, 3, order.id)

    variant.refresh_from_db()
    assert (variant.stock, variant.reserved_stock, variant.available) == (10, 3, 7)
    assert res.state == StockReservation.STATE_ACTIVE
    assert res.quantity == 3 and res.order_id == order.id
    assert before + dt.timedelta(minutes=15) <= res.expires_at <= timezone.now() + dt.timedelta(minutes=15)
    movement = StockMovement.objects.filter(variant=variant).first()
    assert movement.movement_type == StockMovement.TYPE_RESERVE
    assert movement.quantity == 3 and movement.order_id == order.id


@pytest.mark.django_db
def test_reserve_custom_timeout_sets_expiry():
    variant = _variant()
    res = reserve_stock(variant.id, 1, OrderFactory().id, timeout_minutes=90)
    assert res.expires_at > timezone.now() + dt.timedelta(minutes=80)


@pytest.mark.django_db
def test_reserve_rejects_bad_input():
    variant = _variant(stock=2)
    order = OrderFactory()
    with pytest.raises(ValueError):
        reserve_stock(variant.id, 0, order.id)
    with pytest.raises(VariantNotFound):
        reserve_stock(999999, 1, order.id)
    with pytest.raises(InsufficientStock) as exc_info:
        reserve_stock(variant.id, 3, order.id)
    assert (exc_info.value.available, exc_info.value.requested) == (2, 3)
    assert not StockReservation.objects.exists()


@pytest.mark.django_db
def test_reserve_confirm_walkthrough_raises_low_stock():
    staff = StaffFactory()
    variant = _variant(stock=10, min_stock=5)
    first, second = OrderFactory(), OrderFactory()

    reserve_stock(variant.id, 7, first.id)
    variant.refresh_from_db()
    assert variant.available == 3
    assert not Notification.objects.filter(user=staff).exists()

    with pytest.raises(InsufficientStock) as exc_info:
        reserve_stock(variant.id, 5, second.id)
    assert (exc_info.value.available, exc_info.value.requested) == (3, 5)

    sale = confirm_sale(variant.id, 7, first.id)
    variant.refresh_from_db()
    assert (variant.stock, variant.reserved_stock) == (3, 0)
    assert sale.movement_type == StockMovement.TYPE_SALE and sale.quantity == -7

    history = StockMovement.objects.filter(variant=variant, order=first).order_by("id")
    types = list(history.values_list("movement_type", flat=True))
    assert types == [StockMovement.TYPE_RESERVE, StockMovement.TYPE_RELEASE, StockMovement.TYPE_SALE]
    assert StockReservation.objects.get(order=first).state == StockReservation.STATE_CONVERTED

    note = Notification.objects.get(user=staff, type=Notification.TYPE_STOCK)
    assert note.data["variant_id"] == variant.id
    assert note.data["current_stock"] == 3
    assert note.data["min_stock"] == 5


@pytest.mark.django_db
def test_release_is_idempotent():
    variant = _variant(stock=6)
    order = OrderFactory()
    reserve_stock(variant.id, 4, order.id)

    movement = release_stock(variant.id, 4, order.id)
    assert movement is not None and movement.movement_type == StockMovement.TYPE_RELEASE
    assert release_stock(variant.id, 4, order.id) is None

    variant.refresh_from_db()
    assert (variant.stock, variant.reserved_stock) == (6, 0)
    assert StockMovement.objects.filter(variant=variant, movement_type=StockMovement.TYPE_RELEASE).count() == 1
    assert StockReservation.objects.get(order=order).state == StockReservation.STATE_RELEASED


@pytest.mark.django_db
def test_release_more_than_outstanding_releases_what_is_held():
    variant = _variant(stock=6)
    order = OrderFactory()
    reserve_stock(variant.id, 2, order.id)

    movement = release_stock(variant.id, 5, order.id)
    assert movement.quantity == 2
    variant.refresh_from_db()
    assert variant.reserved_stock == 0


@pytest.mark.django_db
def test_release_with_drifted_counter_leaves_reservation_untouched():
    variant = _variant(stock=6)
    order = OrderFactory()
    reserve_stock(variant.id, 2, order.id)
    ProductVariant.objects.filter(id=variant.id).update(reserved_stock=0)

    assert release_stock(variant.id, 2, order.id) is None

    assert StockReservation.objects.get(order=order).state == StockReservation.STATE_ACTIVE
    assert not StockMovement.objects.filter(variant=variant, movement_type=StockMovement.TYPE_RELEASE).exists()


@pytest.mark.django_db
def test_release_scoped_to_order_leaves_other_orders_alone():
    variant = _variant(stock=10)
    mine, theirs = OrderFactory(), OrderFactory()
    reserve_stock(variant.id, 2, mine.id)
    reserve_stock(variant.id, 3, theirs.id)

    release_stock(variant.id, 2, mine.id)

    variant.refresh_from_db()
    assert variant.reserved_stock == 3
    assert StockReservation.objects.get(order=theirs).state == StockReservation.STATE_ACTIVE


@pytest.mark.django_db
def test_release_without_order_consumes_oldest_first():
    variant = _variant(stock=10)
    older, newer = OrderFactory(), OrderFactory()
    reserve_stock(variant.id, 2, older.id)
    reserve_stock(variant.id, 2, newer.id)

    release_stock(variant.id, 3)

    assert StockReservation.objects.get(order=older).state == StockReservation.STATE_RELEASED
    remaining = StockReservation.objects.get(order=newer, state=StockReservation.STATE_ACTIVE)
    assert remaining.quantity == 1
    assert StockReservation.objects.get(order=newer, state=StockReservation.STATE_RELEASED).quantity == 1


@pytest.mark.django_db
def test_partial_confirm_keeps_remainder_reserved():
    variant = _variant(stock=10)
    order = OrderFactory()
    reserve_stock(variant.id, 5, order.id)

    confirm_sale(variant.id, 2, order.id)

    variant.refresh_from_db()
    assert (variant.stock, variant.reserved_stock) == (8, 3)
    states = dict(StockReservation.objects.filter(order=order).values_list("state", "quantity"))
    assert states == {StockReservation.STATE_ACTIVE: 3, StockReservation.STATE_CONVERTED: 2}


@pytest.mark.django_db
def test_confirm_without_reservation_is_rejected():
    variant = _variant(stock=10)
    order = OrderFactory()
    with pytest.raises(InvalidReservation):
        confirm_sale(variant.id, 1, order.id)

    reserve_stock(variant.id, 1, order.id)
    with pytest.raises(InvalidReservation):
        confirm_sale(variant.id, 2, order.id)

    variant.refresh_from_db()
    assert (variant.stock, variant.reserved_stock) == (10, 1)


@pytest.mark.django_db
def test_release_reservation_by_id():
    variant = _variant(stock=5)
    res = reserve_stock(variant.id, 2, OrderFactory().id)

    assert release_reservation(reservation_id=res.id) is not None
    assert release_reservation(reservation_id=res.id) is None
    assert release_reservation(reservation_id=999999) is None
    variant.refresh_from_db()
    assert variant.reserved_stock == 0


@pytest.mark.django_db
def test_adjust_stock_records_acting_user():
    staff = StaffFactory()
    variant = _variant(stock=10)

    variant, movement = adjust_stock(variant_id=variant.id, quantity=-2, reason="Recount", user=staff)
    assert variant.stock == 8
    assert movement.movement_type == StockMovement.TYPE_ADJUSTMENT
    assert movement.user_id == staff.id and movement.reason == "Recount"


@pytest.mark.django_db
def test_low_stock_notification_failure_does_not_fail_mutation(monkeypatch):
    StaffFactory()
    variant = _variant(stock=6, min_stock=5)

    def boom(*args, **kwargs):
        raise RuntimeError("notification store down")

    monkeypatch.setattr("inventory.alerts.notify_staff", boom)
    variant, _ = adjust_stock(variant_id=variant.id, quantity=-2)
    assert variant.stock == 4


@pytest.mark.django_db(transaction=True)
def test_concurrent_reservations_never_oversell():
    if connection.vendor == "sqlite":
        pytest.skip("row locks need a server database")

    variant = _variant(stock=5)
    orders = [OrderFactory() for _ in range(10)]
    results: list[str] = []
    lock = threading.Lock()

    def worker(order_id):
        try:
            reserve_stock(variant.id, 1, order_id)
            outcome = "ok"
        except InsufficientStock:
            outcome = "short"
        finally:
            close_old_connections()
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker, args=(o.id,)) for o in orders]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count("ok") == 5
    assert results.count("short") == 5
    fresh = ProductVariant.objects.get(id=variant.id)
    assert (fresh.stock, fresh.reserved_stock) == (5, 5)
