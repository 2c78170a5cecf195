"""HTTP mapping of stock engine errors shared by the API views."""

import logging

from inventory.exceptions import InsufficientStock, InvalidReservation, NotFound, PersistenceFailure, StockError
from rest_framework import serializers, status
from rest_framework.response import Response

logger = logging.getLogger("tinythreads.inventory")


class ErrorSerializer(serializers.Serializer):
    detail = serializers.CharField()


class ShortageSerializer(serializers.Serializer):
    product = serializers.CharField()
    size = serializers.CharField(allow_null=True)
    color = serializers.CharField(allow_null=True)
    available = serializers.IntegerField()
    requested = serializers.IntegerField()


class InsufficientStockErrorSerializer(ErrorSerializer):
    available = serializers.IntegerField(allow_null=True, required=False)
    requested = serializers.IntegerField(allow_null=True, required=False)
    shortages = ShortageSerializer(many=True, required=False)


def stock_error_response(exc: StockError) -> Response:
    """Translate a stock engine error into an API response."""
    if isinstance(exc, NotFound):
        return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, InsufficientStock):
        body = {"detail": str(exc)}
        if exc.shortages:
            body["shortages"] = exc.shortages
        else:
            body.update({"available": exc.available, "requested": exc.requested})
        return Response(body, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, InvalidReservation):
        return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
    if isinstance(exc, PersistenceFailure):
        return Response(
            {"detail": "Stock could not be updated right now. Please retry."},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    logger.error("stock.unmapped_error", extra={"event": "stock.unmapped_error", "error": repr(exc)})
    return Response({"detail": "Stock operation failed."}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


STOCK_ERROR_RESPONSES = {
    400: InsufficientStockErrorSerializer,
    404: ErrorSerializer,
    409: ErrorSerializer,
    503: ErrorSerializer,
}
