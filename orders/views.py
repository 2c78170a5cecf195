"""Orders API endpoints: checkout, order history, cancellation and admin status changes."""

from common.api import STOCK_ERROR_RESPONSES, ErrorSerializer, stock_error_response
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema
from inventory.exceptions import StockError
from rest_framework import generics, status
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Order
from .serializers import OrderSerializer, OrderStatusUpdateSerializer, PlaceOrderSerializer
from .services import cancel_order, get_order, place_order, update_order_status


class DefaultPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "page_size"


class OrderListCreateView(generics.ListAPIView):
    """List the user's orders, or place a new one.

    Filters:
    - `status`: one of the OrderStatus values
    - `number`: exact match of order number
    """

    permission_classes = [IsAuthenticated]
    serializer_class = OrderSerializer
    pagination_class = DefaultPagination

    def get_throttles(self):
        self.throttle_scope = "orders_write" if self.request.method == "POST" else "orders"
        return super().get_throttles()

    def get_queryset(self):
        qs = Order.objects.filter(user_id=self.request.user.id).order_by("-id").prefetch_related("items__product")
        status_param = self.request.query_params.get("status")
        if status_param:
            qs = qs.filter(status=status_param)
        number = self.request.query_params.get("number")
        if number:
            qs = qs.filter(number=number)
        return qs

    @extend_schema(
        tags=["Orders"],
        summary="List orders",
        description="List current user's orders with optional filters and pagination.",
        parameters=[
            OpenApiParameter(name="status", description="Order status filter", required=False, type=str),
            OpenApiParameter(name="number", description="Order number exact match", required=False, type=str),
            OpenApiParameter(name="page", description="Page number", required=False, type=int),
            OpenApiParameter(name="page_size", description="Items per page", required=False, type=int),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(
        tags=["Orders"],
        summary="Place order",
        description=(
            "Creates a pending order and reserves stock for every line. Either every line is "
            "reserved or no order is created; a 400 names every under-stocked product."
        ),
        request=PlaceOrderSerializer,
        responses={201: OrderSerializer, **STOCK_ERROR_RESPONSES},
        examples=[
            OpenApiExample(
                "Checkout",
                value={"items": [{"product_id": 3, "size": "4T", "color": "Navy", "quantity": 2}]},
                request_only=True,
            ),
            OpenApiExample(
                "Insufficient stock",
                value={
                    "detail": "Insufficient stock for Rain Jacket (4T, Navy): available 1, requested 2",
                    "shortages": [
                        {"product": "Rain Jacket", "size": "4T", "color": "Navy", "available": 1, "requested": 2}
                    ],
                },
                response_only=True,
                status_codes=["400"],
            ),
        ],
    )
    def post(self, request):
        serializer = PlaceOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = place_order(user=request.user, lines=serializer.validated_data["items"])
        except StockError as exc:
            return stock_error_response(exc)
        order = get_order(order.id)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class OrderDetailView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "orders"

    @extend_schema(
        tags=["Orders"],
        summary="Get order detail",
        responses={200: OrderSerializer, 404: ErrorSerializer},
    )
    def get(self, request, order_id: int):
        try:
            order = get_order(order_id, user=request.user)
        except StockError as exc:
            return stock_error_response(exc)
        return Response(OrderSerializer(order).data)


class OrderCancelView(APIView):
    """Cancel a pending order for the authenticated owner and release its stock."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Cancel order",
        description="Cancels the order while it is still pending; its reserved stock is released.",
        responses={200: OrderSerializer, 400: ErrorSerializer, 404: ErrorSerializer},
        examples=[
            OpenApiExample("Cancelled", value={"id": 1, "status": "cancelled"}, response_only=True),
            OpenApiExample(
                "Mutation Error", value={"detail": "Only pending orders can be cancelled"}, response_only=True
            ),
        ],
    )
    def post(self, request, order_id: int):
        try:
            order = get_order(order_id, user=request.user)
            cancel_order(order, user=request.user)
        except StockError as exc:
            return stock_error_response(exc)
        except ValueError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(OrderSerializer(get_order(order.id)).data)


class AdminOrderStatusView(APIView):
    """Staff status transition; drives confirm-sale or release of the order's stock."""

    permission_classes = [IsAdminUser]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders Admin"],
        summary="Update order status",
        description=(
            "Moving a pending order to processing, shipped or delivered converts its reservations into "
            "sales; cancelling releases them. Stock synchronisation failures are logged and do not "
            "block the transition."
        ),
        request=OrderStatusUpdateSerializer,
        responses={200: OrderSerializer, 400: ErrorSerializer, 404: ErrorSerializer},
        examples=[OpenApiExample("Ship", value={"status": "processing"}, request_only=True)],
    )
    def patch(self, request, order_id: int):
        serializer = OrderStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = get_order(order_id)
            update_order_status(order=order, status=serializer.validated_data["status"], acting_user=request.user)
        except StockError as exc:
            return stock_error_response(exc)
        except ValueError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(OrderSerializer(get_order(order.id)).data)
