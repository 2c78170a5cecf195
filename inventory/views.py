"""Inventory API: variant stock reads and admin stock operations."""

from common.api import STOCK_ERROR_RESPONSES, stock_error_response
from django_filters import rest_framework as filters
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema
from orders.models import Order
from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import OrderNotFound, StockError
from .filters import StockReservationFilterSet
from .ledger import list_movements
from .models import StockReservation
from .selectors import get_low_stock_variants, get_stock_stats, get_variant_detail, get_variants_by_product
from .serializers import (
    AdjustStockSerializer,
    ConfirmSaleSerializer,
    ReleaseStockSerializer,
    ReserveStockSerializer,
    StockMovementSerializer,
    StockReservationSerializer,
    StockStatsSerializer,
    VariantDetailSerializer,
    VariantStockSerializer,
)
from .services import adjust_stock, confirm_sale, release_stock, reserve_stock

MAX_MOVEMENTS_PAGE = 200


def _int_param(request, name: str, default=None):
    raw = request.query_params.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _require_order(order_id: int) -> None:
    if not Order.objects.filter(id=order_id).exists():
        raise OrderNotFound(order_id)


class VariantsByProductView(APIView):
    permission_classes = [AllowAny]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List variants of a product",
        description="Variants with stock, reserved and available units, ordered by size then color.",
        responses=VariantStockSerializer(many=True),
    )
    def get(self, request, product_id: int):
        variants = get_variants_by_product(product_id)
        return Response(VariantStockSerializer(variants, many=True).data)


class VariantDetailView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Variant stock detail",
        description="Variant counters with its 10 most recent stock movements.",
        responses={200: VariantDetailSerializer, 404: STOCK_ERROR_RESPONSES[404]},
    )
    def get(self, request, variant_id: int):
        try:
            variant, movements = get_variant_detail(variant_id)
        except StockError as exc:
            return stock_error_response(exc)
        return Response(VariantDetailSerializer(variant, context={"movements": movements}).data)


class ReserveStockView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Reserve stock",
        description="Hold units of a variant for an order. `stock` is unchanged; `reserved_stock` grows.",
        request=ReserveStockSerializer,
        responses={201: StockReservationSerializer, **STOCK_ERROR_RESPONSES},
        examples=[
            OpenApiExample("Reserve", value={"variant_id": 10, "quantity": 2, "order_id": 5}, request_only=True),
            OpenApiExample(
                "Insufficient stock",
                value={"detail": "Insufficient stock. Available: 1, requested: 2", "available": 1, "requested": 2},
                response_only=True,
                status_codes=["400"],
            ),
        ],
    )
    def post(self, request):
        serializer = ReserveStockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            _require_order(data["order_id"])
            reservation = reserve_stock(
                data["variant_id"], data["quantity"], data["order_id"], data.get("timeout_minutes")
            )
        except StockError as exc:
            return stock_error_response(exc)
        return Response(StockReservationSerializer(reservation).data, status=status.HTTP_201_CREATED)


class ReleaseStockView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Release reserved stock",
        description=(
            "Return reserved units to availability. Releasing what is no longer reserved is a no-op "
            "and answers `released: 0`."
        ),
        request=ReleaseStockSerializer,
        responses={200: OpenApiTypes.OBJECT, **STOCK_ERROR_RESPONSES},
        examples=[OpenApiExample("Released", value={"released": 2}, response_only=True)],
    )
    def post(self, request):
        serializer = ReleaseStockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            movement = release_stock(data["variant_id"], data["quantity"], data.get("order_id"))
        except StockError as exc:
            return stock_error_response(exc)
        body = {"released": movement.quantity if movement is not None else 0}
        if movement is not None:
            body["movement"] = StockMovementSerializer(movement).data
        return Response(body)


class ConfirmSaleView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Confirm sale",
        description="Convert an order's reservation into a sale; `stock` drops by `quantity`.",
        request=ConfirmSaleSerializer,
        responses={200: StockMovementSerializer, **STOCK_ERROR_RESPONSES},
    )
    def post(self, request):
        serializer = ConfirmSaleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            movement = confirm_sale(data["variant_id"], data["quantity"], data["order_id"])
        except StockError as exc:
            return stock_error_response(exc)
        return Response(StockMovementSerializer(movement).data)


class AdjustStockView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Adjust stock",
        description="Signed manual correction of physical stock, recorded as an `adjustment` movement.",
        request=AdjustStockSerializer,
        responses={200: VariantStockSerializer, **STOCK_ERROR_RESPONSES},
        examples=[
            OpenApiExample(
                "Recount",
                value={"variant_id": 10, "quantity": -3, "reason": "Recount"},
                request_only=True,
            )
        ],
    )
    def post(self, request):
        serializer = AdjustStockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            variant, _ = adjust_stock(
                variant_id=data["variant_id"],
                quantity=data["quantity"],
                reason=data.get("reason", ""),
                description=data.get("description", ""),
                user=request.user,
            )
        except StockError as exc:
            return stock_error_response(exc)
        return Response(VariantStockSerializer(variant).data)


class MovementListView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List stock movements",
        description="Ledger entries, most recent first.",
        parameters=[
            OpenApiParameter("variant_id", OpenApiTypes.INT, location="query", description="Only this variant"),
            OpenApiParameter("limit", OpenApiTypes.INT, location="query", description="Page size (default 50)"),
            OpenApiParameter("offset", OpenApiTypes.INT, location="query", description="Rows to skip"),
        ],
        responses=StockMovementSerializer(many=True),
    )
    def get(self, request):
        limit = min(max(_int_param(request, "limit", 50), 0), MAX_MOVEMENTS_PAGE)
        offset = max(_int_param(request, "offset", 0), 0)
        movements = list_movements(variant_id=_int_param(request, "variant_id"), limit=limit, offset=offset)
        return Response(
            {
                "limit": limit,
                "offset": offset,
                "results": StockMovementSerializer(movements, many=True).data,
            }
        )


class ReservationListView(generics.ListAPIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory"
    serializer_class = StockReservationSerializer
    filter_backends = [filters.DjangoFilterBackend]
    filterset_class = StockReservationFilterSet

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List stock reservations",
        description="Filters: variant, order, state, expires_before (ISO).",
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        return StockReservation.objects.order_by("-created_at", "-id")


class LowStockView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Low-stock variants",
        description="Active variants at or below their own `min_stock`, or below `min_stock` when given.",
        parameters=[
            OpenApiParameter("min_stock", OpenApiTypes.INT, location="query", description="Override threshold"),
        ],
        responses=VariantStockSerializer(many=True),
    )
    def get(self, request):
        variants = get_low_stock_variants(_int_param(request, "min_stock"))
        return Response(VariantStockSerializer(variants, many=True).data)


class StockStatsView(APIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Stock statistics",
        responses=StockStatsSerializer,
        examples=[
            OpenApiExample(
                "Stats",
                value={
                    "total_variants": 12,
                    "variants_with_stock": 10,
                    "low_stock_variants": 3,
                    "out_of_stock_variants": 2,
                    "total_stock": 240,
                    "total_reserved": 14,
                    "available_stock": 226,
                },
            )
        ],
    )
    def get(self, request):
        return Response(get_stock_stats())


# EOF
