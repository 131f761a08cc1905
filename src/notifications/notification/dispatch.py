"""Order confirmation dispatch.

Reacts to PaymentConfirmed by rendering the confirmation template and
sending it through the email channel. A notification that is already SENT
is never sent again; a FAILED one is left for ``RetryNotification``.
Delivery problems are recorded on the notification and logged. They never
reach the order or its payment status.
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from notifications.channel import get_email_adapter
from notifications.notification.notification import Notification, NotificationKind, NotificationStatus
from notifications.templates import get_template
from ordering.order.events import PaymentConfirmed
from ordering.order.order import Order
from shared.domain import storefront

logger = structlog.get_logger(__name__)


def order_context(order: Order, payment_id: str | None) -> dict:
    return {
        "order_number": order.order_number,
        "amount": f"{order.total:.2f}",
        "currency": order.currency,
        "payment_id": payment_id,
        "items": [
            {"name": item.product_name, "quantity": item.quantity, "total": f"{item.line_total:.2f}"}
            for item in order.sorted_items
        ],
    }


def deliver(notification: Notification) -> Notification:
    """Send a PENDING notification and record the outcome on it. Never raises on delivery problems."""
    try:
        result = get_email_adapter().send(notification.recipient, notification.subject or "", notification.body)
    except Exception as exc:
        logger.exception("Email adapter raised", notification_id=str(notification.id))
        notification.mark_failed(str(exc))
    else:
        if result.sent:
            notification.mark_sent(result.message_id)
        else:
            notification.mark_failed(result.error or "Unknown dispatch error")

    current_domain.repository_for(Notification).add(notification)

    if notification.is_sent:
        logger.info(
            "Notification sent",
            order_id=str(notification.order_id),
            kind=notification.kind,
            message_id=notification.message_id,
        )
    else:
        logger.warning(
            "Notification dispatch failed",
            order_id=str(notification.order_id),
            kind=notification.kind,
            attempts=notification.attempts,
            error=notification.failure_reason,
        )
    return notification


@storefront.event_handler(part_of=Order, stream_category="storefront::order")
class NotificationDispatcher:
    """Sends the order confirmation once the payment is verified."""

    @handle(PaymentConfirmed)
    def on_payment_confirmed(self, event: PaymentConfirmed) -> None:
        kind = NotificationKind.ORDER_CONFIRMATION.value
        repo = current_domain.repository_for(Notification)
        try:
            notification = repo.find_for_order(event.order_id, kind)
            if notification is not None and NotificationStatus(notification.status) != NotificationStatus.PENDING:
                logger.info(
                    "Notification already dispatched, skipping",
                    order_id=event.order_id,
                    kind=kind,
                    status=notification.status,
                )
                return

            if notification is None:
                order = current_domain.repository_for(Order).get(event.order_id)
                content = get_template(kind).render(order_context(order, event.payment_id))
                notification = Notification.create(
                    order_id=event.order_id,
                    kind=kind,
                    recipient=event.email,
                    subject=content["subject"],
                    body=content["body"],
                )
            deliver(notification)
        except Exception:
            logger.exception("Order confirmation dispatch failed", order_id=event.order_id)
