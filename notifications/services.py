"""Notification sink used by the stock engine and order flows.

Callers treat every function here as fire-and-forget: the stock and order
services wrap calls in ``try/except`` so a notification failure never
fails the mutation that triggered it.
"""

import logging

from django.contrib.auth import get_user_model
from django.db import transaction

from .models import Notification

logger = logging.getLogger("tinythreads.notifications")


def create_notification(user_id: int, type: str, title: str, message: str, data: dict | None = None) -> Notification:
    # Own savepoint: a failed insert must not poison a surrounding stock transaction.
    with transaction.atomic():
        notification = Notification.objects.create(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            data=data,
        )
    logger.info(
        "notification.created",
        extra={"event": "notification.created", "user_id": user_id, "type": type, "notification_id": notification.id},
    )
    return notification


def staff_user_ids() -> list[int]:
    User = get_user_model()
    return list(User.objects.filter(is_staff=True, is_active=True).order_by("id").values_list("id", flat=True))


def notify_staff(type: str, title: str, message: str, data: dict | None = None) -> int:
    """Send the same notification to every active staff user.

    A failure for one recipient is logged and does not stop the others.
    Returns the number of notifications created.
    """
    sent = 0
    for user_id in staff_user_ids():
        try:
            create_notification(user_id, type, title, message, data)
            sent += 1
        except Exception:
            logger.exception(
                "notification.staff_failed",
                extra={"event": "notification.staff_failed", "user_id": user_id},
            )
    return sent


def notify_new_order(order) -> int:
    return notify_staff(
        Notification.TYPE_ORDER,
        "New order",
        f"Order {order.number or order.id} was placed and is awaiting payment.",
        {"order_id": order.id, "number": order.number},
    )


def notify_order_status_update(order, old_status: str, new_status: str) -> Notification:
    return create_notification(
        order.user_id,
        Notification.TYPE_ORDER,
        "Order updated",
        f"Your order {order.number or order.id} changed from {old_status} to {new_status}.",
        {"order_id": order.id, "status_from": old_status, "status_to": new_status},
    )


def notify_order_expired(order) -> Notification:
    return create_notification(
        order.user_id,
        Notification.TYPE_ORDER,
        "Order cancelled",
        (
            f"Your order {order.number or order.id} was cancelled automatically because payment "
            "was not completed in time. The reserved items were released."
        ),
        {"order_id": order.id},
    )


def mark_read(*, user, notification_id: int) -> Notification:
    notification = Notification.objects.get(id=notification_id, user=user)
    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=["is_read"])
    return notification
