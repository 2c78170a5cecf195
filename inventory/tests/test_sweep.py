import datetime as dt

import pytest
from catalog.services import create_variant
from catalog.tests.factories import ProductFactory, UserFactory
from django.utils import timezone
from inventory.models import StockMovement, StockReservation
from inventory.services import reserve_stock
from inventory.sweep import release_expired_orders, release_expired_reservations
from notifications.models import Notification
from orders.models import Order
from orders.services import place_order, update_order_status


def _age(order, minutes):
    Order.objects.filter(id=order.id).update(created_at=timezone.now() - dt.timedelta(minutes=minutes))


@pytest.mark.django_db
def test_stale_pending_order_is_cancelled_and_released():
    user = UserFactory()
    product = ProductFactory()
    variant = create_variant(product_id=product.id, size="2T", color="Sage", stock=10)
    order = place_order(user=user, lines=[{"product_id": product.id, "size": "2T", "color": "Sage", "quantity": 4}])
    _age(order, 120)

    result = release_expired_orders()

    assert (result.scanned, result.cancelled, result.released, result.failures) == (1, 1, 1, 0)
    order.refresh_from_db()
    variant.refresh_from_db()
    assert order.status == Order.STATUS_CANCELLED
    assert (variant.stock, variant.reserved_stock) == (10, 0)
    assert StockReservation.objects.get(order=order).state == StockReservation.STATE_RELEASED
    assert Notification.objects.filter(user=user, title="Order cancelled").exists()


@pytest.mark.django_db
def test_young_pending_orders_are_left_alone():
    product = ProductFactory()
    variant = create_variant(product_id=product.id, stock=5)
    order = place_order(user=UserFactory(), lines=[{"product_id": product.id, "quantity": 2}])
    _age(order, 30)

    result = release_expired_orders()

    assert result.scanned == 0
    order.refresh_from_db()
    variant.refresh_from_db()
    assert order.status == Order.STATUS_PENDING
    assert variant.reserved_stock == 2


@pytest.mark.django_db
def test_max_age_override_and_rerun_is_safe():
    product = ProductFactory()
    create_variant(product_id=product.id, stock=5)
    order = place_order(user=UserFactory(), lines=[{"product_id": product.id, "quantity": 1}])
    _age(order, 30)

    first = release_expired_orders(max_age_minutes=10)
    second = release_expired_orders(max_age_minutes=10)

    assert first.cancelled == 1
    assert (second.scanned, second.cancelled) == (0, 0)


@pytest.mark.django_db
def test_expiry_restores_flat_stock_lines():
    product = ProductFactory(stock=8)
    order = place_order(user=UserFactory(), lines=[{"product_id": product.id, "size": "12M", "quantity": 3}])
    product.refresh_from_db()
    assert product.stock == 5
    _age(order, 120)

    release_expired_orders()

    product.refresh_from_db()
    assert product.stock == 8


@pytest.mark.django_db
def test_one_failing_order_does_not_stop_the_batch(monkeypatch):
    product = ProductFactory()
    create_variant(product_id=product.id, stock=10)
    bad = place_order(user=UserFactory(), lines=[{"product_id": product.id, "quantity": 1}])
    good = place_order(user=UserFactory(), lines=[{"product_id": product.id, "quantity": 1}])
    _age(bad, 120)
    _age(good, 119)

    from inventory import sweep

    real_expire = sweep.expire_order

    def flaky(order):
        if order.id == bad.id:
            raise RuntimeError("lock timeout")
        return real_expire(order)

    monkeypatch.setattr(sweep, "expire_order", flaky)
    result = release_expired_orders()

    assert (result.scanned, result.cancelled, result.failures) == (2, 1, 1)
    assert Order.objects.get(id=bad.id).status == Order.STATUS_PENDING
    assert Order.objects.get(id=good.id).status == Order.STATUS_CANCELLED


@pytest.mark.django_db
def test_leaked_reservation_of_closed_order_is_released():
    product = ProductFactory()
    variant = create_variant(product_id=product.id, stock=10)
    order = place_order(user=UserFactory(), lines=[{"product_id": product.id, "quantity": 2}])
    # Order closed by a path that never released its stock
    Order.objects.filter(id=order.id).update(status=Order.STATUS_CANCELLED)
    StockReservation.objects.filter(order=order).update(expires_at=timezone.now() - dt.timedelta(minutes=1))

    assert release_expired_reservations() == 1

    variant.refresh_from_db()
    assert variant.reserved_stock == 0
    assert release_expired_reservations() == 0


@pytest.mark.django_db
def test_expired_reservations_of_pending_orders_wait_for_order_sweep():
    product = ProductFactory()
    variant = create_variant(product_id=product.id, stock=10)
    order = place_order(user=UserFactory(), lines=[{"product_id": product.id, "quantity": 2}])
    StockReservation.objects.filter(order=order).update(expires_at=timezone.now() - dt.timedelta(minutes=1))

    assert release_expired_reservations() == 0
    variant.refresh_from_db()
    assert variant.reserved_stock == 2


@pytest.mark.django_db
def test_unexpired_reservations_stay_active():
    product = ProductFactory()
    variant = create_variant(product_id=product.id, stock=10)
    order = place_order(user=UserFactory(), lines=[{"product_id": product.id, "quantity": 1}])
    Order.objects.filter(id=order.id).update(status=Order.STATUS_CANCELLED)
    reserve_stock(variant.id, 1, order.id, timeout_minutes=30)

    assert release_expired_reservations() == 0
    assert StockReservation.objects.filter(order=order, state=StockReservation.STATE_ACTIVE).count() == 2


@pytest.mark.django_db
def test_expired_reservation_of_order_in_fulfilment_is_sold_not_released(monkeypatch):
    product = ProductFactory()
    variant = create_variant(product_id=product.id, stock=10)
    order = place_order(user=UserFactory(), lines=[{"product_id": product.id, "quantity": 3}])

    def unavailable(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr("orders.services.confirm_sale", unavailable)
    update_order_status(order=order, status=Order.STATUS_PROCESSING)
    monkeypatch.undo()

    variant.refresh_from_db()
    assert (variant.stock, variant.reserved_stock) == (10, 3)

    assert release_expired_reservations(now=timezone.now() + dt.timedelta(days=1)) == 0

    variant.refresh_from_db()
    assert (variant.stock, variant.reserved_stock) == (7, 0)
    assert StockReservation.objects.get(order=order).state == StockReservation.STATE_CONVERTED
    kinds = list(StockMovement.objects.filter(order=order).order_by("id").values_list("movement_type", flat=True))
    assert kinds == [StockMovement.TYPE_RESERVE, StockMovement.TYPE_RELEASE, StockMovement.TYPE_SALE]
