"""Notification aggregate: one outbound message per (order, kind).

The (order_id, kind) pair makes the confirmation email idempotent: a
redelivered PaymentConfirmed finds the existing notification and only
resends when the earlier attempt failed.

State Machine:
    PENDING → SENT
    PENDING → FAILED → (retry) → PENDING
"""

from datetime import datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from shared.clock import utcnow
from shared.domain import storefront


class NotificationKind(Enum):
    ORDER_CONFIRMATION = "order_confirmation"


class NotificationStatus(Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


_VALID_TRANSITIONS = {
    NotificationStatus.PENDING: {NotificationStatus.SENT, NotificationStatus.FAILED},
    NotificationStatus.FAILED: {NotificationStatus.PENDING},  # Via retry
    NotificationStatus.SENT: set(),  # Terminal
}


@storefront.aggregate
class Notification:
    order_id: Identifier(required=True)
    kind: String(choices=NotificationKind, required=True)
    recipient: String(required=True, max_length=255)
    subject: String(max_length=500)
    body: Text(required=True)

    status: String(choices=NotificationStatus, default=NotificationStatus.PENDING.value)
    message_id: String(max_length=100)
    failure_reason: String(max_length=500)
    attempts: Integer(default=0)
    retry_count: Integer(default=0)
    max_retries: Integer(default=3)

    created_at: DateTime()
    sent_at: DateTime()
    updated_at: DateTime()

    @classmethod
    def create(cls, order_id, kind: str, recipient: str, subject: str, body: str, max_retries: int = 3):
        if not recipient:
            raise ValidationError({"recipient": ["Recipient is required"]})
        now = utcnow()
        return cls(
            order_id=order_id,
            kind=kind,
            recipient=recipient,
            subject=subject,
            body=body,
            status=NotificationStatus.PENDING.value,
            attempts=0,
            retry_count=0,
            max_retries=max_retries,
            created_at=now,
            updated_at=now,
        )

    def _assert_can_transition(self, target_status: NotificationStatus) -> None:
        current = NotificationStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    @property
    def is_sent(self) -> bool:
        return self.status == NotificationStatus.SENT.value

    @property
    def is_failed(self) -> bool:
        return self.status == NotificationStatus.FAILED.value

    def mark_sent(self, message_id: str | None, sent_at: datetime | None = None) -> None:
        self._assert_can_transition(NotificationStatus.SENT)
        now = sent_at or utcnow()
        self.status = NotificationStatus.SENT.value
        self.message_id = message_id
        self.failure_reason = None
        self.attempts += 1
        self.sent_at = now
        self.updated_at = now

    def mark_failed(self, reason: str) -> None:
        self._assert_can_transition(NotificationStatus.FAILED)
        self.status = NotificationStatus.FAILED.value
        self.failure_reason = (reason or "Unknown dispatch error")[:500]
        self.attempts += 1
        self.updated_at = utcnow()

    def retry(self) -> None:
        """Move a failed notification back to PENDING, up to ``max_retries`` times."""
        self._assert_can_transition(NotificationStatus.PENDING)
        if self.retry_count >= self.max_retries:
            raise ValidationError({"retry_count": [f"Maximum retries ({self.max_retries}) exceeded"]})
        self.status = NotificationStatus.PENDING.value
        self.retry_count += 1
        self.updated_at = utcnow()


@storefront.repository(part_of=Notification)
class NotificationRepository:
    def find_for_order(self, order_id: str, kind: str) -> Notification | None:
        return self._dao.query.filter(order_id=order_id, kind=kind).all().first

    def failed(self, limit: int = 50) -> list[Notification]:
        query = self._dao.query.filter(status=NotificationStatus.FAILED.value).order_by("created_at")
        return query.limit(limit).all().items
