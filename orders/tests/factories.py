import factory
from catalog.tests.factories import ProductFactory, UserFactory
from factory.django import DjangoModelFactory
from orders.models import Order, OrderItem


class OrderFactory(DjangoModelFactory):
    class Meta:
        model = Order

    user = factory.SubFactory(UserFactory)
    number = factory.Sequence(lambda n: f"ORD-T{n:05d}")
    status = Order.STATUS_PENDING


class OrderItemFactory(DjangoModelFactory):
    class Meta:
        model = OrderItem

    order = factory.SubFactory(OrderFactory)
    product = factory.SubFactory(ProductFactory)
    variant = None
    quantity = 1
    unit_price = factory.LazyAttribute(lambda o: o.product.price)
