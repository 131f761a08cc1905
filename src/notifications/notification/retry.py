"""RetryNotification command + handler: resend a failed notification."""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from notifications.notification.dispatch import deliver
from notifications.notification.notification import Notification
from shared.domain import storefront

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Notification")
class RetryNotification:
    """Request to retry a failed notification."""

    notification_id = Identifier(required=True)


@storefront.command_handler(part_of=Notification)
class RetryNotificationHandler:
    @handle(RetryNotification)
    def retry_notification(self, command: RetryNotification) -> str:
        notification = current_domain.repository_for(Notification).get(command.notification_id)
        notification.retry()
        logger.info(
            "Retrying notification",
            notification_id=str(notification.id),
            retry_count=notification.retry_count,
        )
        return deliver(notification).status


def retry_failed_notifications(limit: int = 50) -> int:
    """Retry every FAILED notification that still has retries left. Returns how many were sent."""
    sent = 0
    for notification in current_domain.repository_for(Notification).failed(limit):
        if notification.retry_count >= notification.max_retries:
            continue
        try:
            status = current_domain.process(RetryNotification(notification_id=notification.id), asynchronous=False)
        except Exception:
            logger.exception("Notification retry failed", notification_id=str(notification.id))
            continue
        if status == "sent":
            sent += 1
    return sent
