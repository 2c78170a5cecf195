"""Serializers for the inventory API.

Read serializers for variants, movements and reservations, plus input
serializers for the admin stock operations.
"""

from catalog.models import ProductVariant
from rest_framework import serializers

from .models import StockMovement, StockReservation


class VariantStockSerializer(serializers.ModelSerializer):
    """Variant with its stock counters and computed availability."""

    product_title = serializers.CharField(source="product.title", read_only=True)
    label = serializers.CharField(read_only=True)
    available = serializers.IntegerField(read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)
    effective_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = ProductVariant
        fields = [
            "id",
            "product",
            "product_title",
            "size",
            "color",
            "label",
            "stock",
            "reserved_stock",
            "available",
            "min_stock",
            "is_low_stock",
            "price",
            "effective_price",
            "is_active",
            "updated_at",
        ]
        read_only_fields = fields


class StockMovementSerializer(serializers.ModelSerializer):
    """Read-only representation of ledger entries."""

    class Meta:
        model = StockMovement
        fields = [
            "id",
            "variant",
            "movement_type",
            "quantity",
            "order",
            "reason",
            "description",
            "user",
            "created_at",
        ]
        read_only_fields = fields


class VariantDetailSerializer(VariantStockSerializer):
    recent_movements = serializers.SerializerMethodField()

    class Meta(VariantStockSerializer.Meta):
        fields = VariantStockSerializer.Meta.fields + ["recent_movements"]
        read_only_fields = fields

    def get_recent_movements(self, obj) -> list[dict]:
        movements = self.context.get("movements", [])
        return StockMovementSerializer(movements, many=True).data


class StockReservationSerializer(serializers.ModelSerializer):
    """Read-only representation of stock reservations."""

    class Meta:
        model = StockReservation
        fields = [
            "id",
            "variant",
            "order",
            "quantity",
            "state",
            "expires_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ReserveStockSerializer(serializers.Serializer):
    variant_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)
    order_id = serializers.IntegerField(min_value=1)
    timeout_minutes = serializers.IntegerField(min_value=1, required=False)


class ReleaseStockSerializer(serializers.Serializer):
    variant_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)
    order_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class ConfirmSaleSerializer(serializers.Serializer):
    variant_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)
    order_id = serializers.IntegerField(min_value=1)


class AdjustStockSerializer(serializers.Serializer):
    variant_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField()
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)

    def validate_quantity(self, value: int) -> int:
        if value == 0:
            raise serializers.ValidationError("Quantity must be non-zero.")
        return value


class StockStatsSerializer(serializers.Serializer):
    total_variants = serializers.IntegerField()
    variants_with_stock = serializers.IntegerField()
    low_stock_variants = serializers.IntegerField()
    out_of_stock_variants = serializers.IntegerField()
    total_stock = serializers.IntegerField()
    total_reserved = serializers.IntegerField()
    available_stock = serializers.IntegerField()


# EOF
