"""Low-stock signal.

Raised as a side effect of ledger mutations and as a periodic digest for
staff. Notifications are best-effort: failures are logged and never
propagate into the stock mutation that triggered them.
"""

import logging

from django.db import transaction
from notifications.models import Notification
from notifications.services import notify_staff

from .selectors import get_low_stock_variants

logger = logging.getLogger("tinythreads.inventory")


def low_stock_payload(variant) -> dict:
    product = variant.product
    return {
        "variant_id": variant.id,
        "product_id": product.id,
        "product_title": product.title,
        "size": variant.size,
        "color": variant.color,
        "current_stock": int(variant.stock),
        "min_stock": int(variant.min_stock),
    }


def notify_if_low_stock(variant) -> bool:
    """Notify staff when ``variant.stock <= variant.min_stock``.

    Returns True when a notification was attempted and delivered.
    """
    try:
        if int(variant.stock) > int(variant.min_stock):
            return False
        with transaction.atomic():
            data = low_stock_payload(variant)
            message = (
                f'Variant "{variant.label}" of "{data["product_title"]}" is running low '
                f"({data['current_stock']}/{data['min_stock']} units)."
            )
            notify_staff(Notification.TYPE_STOCK, "Low stock", message, data)
        logger.info(
            "stock.low_stock",
            extra={
                "event": "stock.low_stock",
                "variant_id": variant.id,
                "stock": data["current_stock"],
                "min_stock": data["min_stock"],
            },
        )
        return True
    except Exception:
        logger.exception(
            "stock.low_stock_notify_failed",
            extra={"event": "stock.low_stock_notify_failed", "variant_id": getattr(variant, "id", None)},
        )
        return False


def send_low_stock_digest() -> int:
    """Send one low-stock summary per product to staff.

    Returns the number of notifications created.
    """
    by_product = {}
    for variant in get_low_stock_variants():
        by_product.setdefault(variant.product_id, []).append(variant)

    sent = 0
    for product_id, variants in by_product.items():
        product = variants[0].product
        details = [
            {
                "variant_id": v.id,
                "size": v.size or "N/A",
                "color": v.color or "N/A",
                "stock": int(v.stock),
                "min_stock": int(v.min_stock),
            }
            for v in variants
        ]
        summary = ", ".join(f"{d['size']}/{d['color']}: {d['stock']} (min: {d['min_stock']})" for d in details)
        try:
            sent += notify_staff(
                Notification.TYPE_STOCK,
                f"Low stock: {product.title}",
                f"Variants running low: {summary}",
                {"product_id": product_id, "variants": details},
            )
        except Exception:
            logger.exception(
                "stock.low_stock_digest_failed",
                extra={"event": "stock.low_stock_digest_failed", "product_id": product_id},
            )
    logger.info(
        "stock.low_stock_digest_sent",
        extra={"event": "stock.low_stock_digest_sent", "products": len(by_product), "notifications": sent},
    )
    return sent
