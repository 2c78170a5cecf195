"""Admin viewsets for write endpoints in the catalog app.

Endpoints are restricted to staff users and use scoped throttling. Writes
go through ``catalog.services`` so variant stock always enters the ledger.
"""

from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.response import Response

from .admin_serializers import ProductAdminSerializer, ProductVariantAdminSerializer
from .models import Product, ProductVariant
from .services import create_product, create_variant, deactivate_variant, update_variant


class AdminBaseViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [permissions.IsAdminUser]
    throttle_scope = "inventory_write"
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]


@extend_schema_view(
    list=extend_schema(tags=["Admin Endpoints"], summary="List products (admin)"),
    retrieve=extend_schema(tags=["Admin Endpoints"], summary="Get product (admin)"),
    create=extend_schema(
        tags=["Admin Endpoints"],
        summary="Create product",
        description="Creates the given variants, or one default variant holding `stock` when none are given.",
    ),
    partial_update=extend_schema(tags=["Admin Endpoints"], summary="Partial update product"),
)
class ProductAdminViewSet(AdminBaseViewSet):
    queryset = Product.objects.all().prefetch_related("variants").order_by("title")
    serializer_class = ProductAdminSerializer

    def perform_create(self, serializer):
        data = dict(serializer.validated_data)
        serializer.instance = create_product(
            title=data["title"],
            price=data.get("price", 0),
            stock=data.get("stock", 0),
            variants=data.get("variants"),
            description=data.get("description", ""),
            slug=data.get("slug"),
            is_active=data.get("is_active", True),
        )

    def perform_update(self, serializer):
        serializer.validated_data.pop("variants", None)
        serializer.validated_data.pop("stock", None)
        serializer.save()


@extend_schema_view(
    list=extend_schema(tags=["Admin Endpoints"], summary="List variants (admin)"),
    retrieve=extend_schema(tags=["Admin Endpoints"], summary="Get variant (admin)"),
    create=extend_schema(
        tags=["Admin Endpoints"],
        summary="Create variant",
        description="Initial `stock` is recorded as a purchase movement.",
    ),
    partial_update=extend_schema(
        tags=["Admin Endpoints"],
        summary="Partial update variant",
        description="Edits size, color, min_stock, price and is_active. Stock is changed through inventory.",
    ),
    destroy=extend_schema(
        tags=["Admin Endpoints"],
        summary="Deactivate variant",
        description="Soft delete: the variant keeps its ledger history and is marked inactive.",
    ),
)
class ProductVariantAdminViewSet(AdminBaseViewSet):
    queryset = ProductVariant.objects.select_related("product").order_by("product_id", "size", "color", "id")
    serializer_class = ProductVariantAdminSerializer

    def perform_create(self, serializer):
        data = dict(serializer.validated_data)
        serializer.instance = create_variant(
            product_id=data["product"].id,
            size=data.get("size"),
            color=data.get("color"),
            stock=data.get("stock", 0),
            min_stock=data.get("min_stock"),
            price=data.get("price"),
            is_active=data.get("is_active", True),
        )

    def perform_update(self, serializer):
        serializer.instance = update_variant(serializer.instance.id, **serializer.validated_data)

    def destroy(self, request, *args, **kwargs):
        deactivate_variant(self.get_object().id)
        return Response(status=status.HTTP_204_NO_CONTENT)
