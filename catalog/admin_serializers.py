"""Admin serializers for write endpoints in the catalog app.

Stock counters are read-only here: initial stock is accepted on create and
recorded through the ledger, later changes go through the inventory API.
"""

from rest_framework import serializers

from .models import Product, ProductVariant


class ProductVariantAdminSerializer(serializers.ModelSerializer):
    stock = serializers.IntegerField(min_value=0, required=False, default=0)
    min_stock = serializers.IntegerField(min_value=0, required=False)
    available = serializers.IntegerField(read_only=True)

    class Meta:
        model = ProductVariant
        fields = [
            "id",
            "product",
            "size",
            "color",
            "stock",
            "reserved_stock",
            "available",
            "min_stock",
            "price",
            "is_active",
        ]
        read_only_fields = ["id", "reserved_stock", "available"]

    def validate(self, attrs):
        if self.instance is not None:
            if "stock" in self.initial_data:
                raise serializers.ValidationError({"stock": "Use the inventory adjust endpoint to change stock."})
            if "product" in attrs and attrs["product"].id != self.instance.product_id:
                raise serializers.ValidationError({"product": "A variant cannot move to another product."})
            attrs.pop("stock", None)
            attrs.pop("product", None)
        return attrs


class VariantSpecSerializer(serializers.Serializer):
    size = serializers.CharField(max_length=32, required=False, allow_blank=True, allow_null=True)
    color = serializers.CharField(max_length=48, required=False, allow_blank=True, allow_null=True)
    stock = serializers.IntegerField(min_value=0, required=False, default=0)
    min_stock = serializers.IntegerField(min_value=0, required=False)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)


class ProductAdminSerializer(serializers.ModelSerializer):
    stock = serializers.IntegerField(min_value=0, required=False, default=0)
    variants = VariantSpecSerializer(many=True, required=False, write_only=True)
    variant_ids = serializers.PrimaryKeyRelatedField(source="variants", many=True, read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "title",
            "slug",
            "description",
            "price",
            "stock",
            "is_active",
            "variants",
            "variant_ids",
        ]
        read_only_fields = ["id", "variant_ids"]
        extra_kwargs = {"slug": {"required": False}}

    def validate(self, attrs):
        if self.instance is not None and "stock" in self.initial_data:
            raise serializers.ValidationError({"stock": "Flat stock is only set when the product is created."})
        return attrs
