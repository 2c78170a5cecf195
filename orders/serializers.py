"""DRF serializers for Orders.

Totals are computed from line items for API responses; checkout input is
validated separately from the order representation.
"""

from decimal import Decimal

from rest_framework import serializers

from .models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    """API representation of an order line item with computed line_total."""

    product_title = serializers.CharField(source="product.title", read_only=True)
    line_total = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product",
            "product_title",
            "variant",
            "size",
            "color",
            "quantity",
            "unit_price",
            "line_total",
        ]
        read_only_fields = fields

    def get_line_total(self, obj: OrderItem) -> Decimal:
        return obj.line_total


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    total = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = Order
        fields = ["id", "number", "status", "created_at", "updated_at", "items", "total"]
        read_only_fields = fields

    def get_total(self, obj: Order) -> Decimal:
        total = Decimal("0.00")
        for item in obj.items.all():
            total += item.line_total
        return total


class CheckoutLineSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    size = serializers.CharField(max_length=32, required=False, allow_blank=True, allow_null=True)
    color = serializers.CharField(max_length=48, required=False, allow_blank=True, allow_null=True)
    quantity = serializers.IntegerField(min_value=1)


class PlaceOrderSerializer(serializers.Serializer):
    items = CheckoutLineSerializer(many=True, allow_empty=False)


class OrderStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)
