"""Stock engine error taxonomy."""


class StockError(Exception):
    """Base class for stock engine failures."""


class NotFound(StockError):
    pass


class VariantNotFound(NotFound):
    def __init__(self, variant_id):
        self.variant_id = variant_id
        super().__init__(f"Variant {variant_id} not found")


class ProductNotFound(NotFound):
    def __init__(self, product_ids):
        self.product_ids = list(product_ids)
        ids = ", ".join(str(pid) for pid in self.product_ids)
        super().__init__(f"Products not found: {ids}")


class OrderNotFound(NotFound):
    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class InsufficientStock(StockError):
    """Raised when a mutation would sell or reserve more than is available.

    ``shortages`` holds one dict per short line (product, size, color,
    available, requested) so checkout can report every offending item at once.
    """

    def __init__(self, message=None, *, available=None, requested=None, shortages=None):
        self.available = available
        self.requested = requested
        self.shortages = list(shortages or [])
        if message is None:
            message = f"Insufficient stock. Available: {available}, requested: {requested}"
        super().__init__(message)

    @classmethod
    def for_lines(cls, shortages):
        parts = []
        for s in shortages:
            size = s.get("size") or "N/A"
            color = s.get("color") or "N/A"
            parts.append(
                f"{s['product']} ({size}, {color}): available {s['available']}, requested {s['requested']}"
            )
        return cls("Insufficient stock for " + "; ".join(parts), shortages=shortages)


class InvalidReservation(StockError):
    """A release/confirm that does not match the reservation state."""


class PersistenceFailure(StockError):
    """The backing store failed to commit a stock mutation."""
