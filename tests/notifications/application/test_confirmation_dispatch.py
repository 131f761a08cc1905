"""Application tests for order confirmation emails and their retries."""

from datetime import UTC, datetime

import pytest
from notifications.notification.dispatch import NotificationDispatcher
from notifications.notification.notification import Notification
from notifications.notification.retry import RetryNotification, retry_failed_notifications
from ordering.order.events import PaymentConfirmed
from ordering.order.order import Order
from protean import current_domain
from protean.exceptions import ValidationError


def _confirm(order, payment_id="pay_001"):
    """Deliver a PaymentConfirmed for ``order`` straight to the dispatcher."""
    NotificationDispatcher().on_payment_confirmed(
        PaymentConfirmed(
            order_id=order.id,
            order_number=order.order_number,
            email=order.email,
            payment_id=payment_id,
            amount=order.total,
            currency=order.currency,
            confirmed_at=datetime(2026, 3, 1, 10, 0, tzinfo=UTC),
        )
    )


def _notification(order_id):
    return current_domain.repository_for(Notification).find_for_order(order_id, "order_confirmation")


def _retry(notification):
    return current_domain.process(RetryNotification(notification_id=notification.id), asynchronous=False)


class TestDispatch:
    def test_sends_rendered_template(self, mailbox, make_order):
        order = make_order(quantity=2)

        _confirm(order)

        [email] = mailbox.sent_emails
        assert email["to"] == "asha@example.com"
        assert email["subject"] == f"Order {order.order_number} confirmed"
        assert "Cotton Kurta x 2: INR 2000.00" in email["body"]
        assert "INR 2000.00" in email["body"]
        assert "pay_001" in email["body"]

        notification = _notification(order.id)
        assert notification.status == "sent"
        assert notification.attempts == 1
        assert notification.message_id is not None

    def test_redelivered_event_does_not_resend(self, mailbox, make_order):
        order = make_order()

        _confirm(order)
        _confirm(order)

        assert len(mailbox.sent_emails) == 1
        assert _notification(order.id).attempts == 1

    def test_failure_recorded_without_raising(self, mailbox, make_order):
        order = make_order()
        mailbox.configure(should_succeed=False, failure_reason="SMTP down")

        _confirm(order)

        notification = _notification(order.id)
        assert notification.status == "failed"
        assert notification.failure_reason == "SMTP down"
        assert notification.attempts == 1
        assert current_domain.repository_for(Order).get(order.id).financial_status == "pending"

    def test_failed_notification_left_for_retry(self, mailbox, make_order):
        order = make_order()
        mailbox.configure(should_succeed=False)
        _confirm(order)

        mailbox.configure(should_succeed=True)
        _confirm(order)

        assert mailbox.sent_emails == []
        assert _notification(order.id).status == "failed"

    def test_unknown_order_is_logged_not_raised(self, mailbox, make_order):
        order = make_order()
        current_domain.repository_for(Order)._dao.delete_all()

        _confirm(order)

        assert mailbox.sent_emails == []
        assert _notification(order.id) is None


class TestPaymentFlow:
    def test_verified_payment_sends_confirmation(self, gateway, mailbox, make_order, open_gateway_order):
        from payments.gateway.port import compute_signature
        from payments.payment.verification import VerifyPayment

        order = open_gateway_order(make_order())
        gateway.register_payment("pay_001", amount=order.total, order_ref=order.gateway_order_ref)

        current_domain.process(
            VerifyPayment(
                order_id=order.id,
                order_ref=order.gateway_order_ref,
                payment_ref="pay_001",
                signature=compute_signature(gateway.secret, order.gateway_order_ref, "pay_001"),
            ),
            asynchronous=False,
        )

        assert len(mailbox.sent_emails) == 1
        assert _notification(order.id).status == "sent"


class TestRetryNotification:
    def test_retry_sends_failed_notification(self, mailbox, make_order):
        order = make_order()
        mailbox.configure(should_succeed=False)
        _confirm(order)
        mailbox.configure(should_succeed=True)

        status = _retry(_notification(order.id))

        assert status == "sent"
        notification = _notification(order.id)
        assert notification.retry_count == 1
        assert notification.attempts == 2
        assert notification.failure_reason is None
        assert len(mailbox.sent_emails) == 1

    def test_retry_that_fails_again_stays_failed(self, mailbox, make_order):
        order = make_order()
        mailbox.configure(should_succeed=False, failure_reason="SMTP down")
        _confirm(order)

        assert _retry(_notification(order.id)) == "failed"
        assert _notification(order.id).attempts == 2

    def test_retries_capped(self, mailbox, make_order):
        order = make_order()
        mailbox.configure(should_succeed=False)
        _confirm(order)
        for _ in range(3):
            _retry(_notification(order.id))

        with pytest.raises(ValidationError) as exc:
            _retry(_notification(order.id))

        assert "retry_count" in exc.value.messages

    def test_sent_notification_cannot_be_retried(self, mailbox, make_order):
        order = make_order()
        _confirm(order)

        with pytest.raises(ValidationError) as exc:
            _retry(_notification(order.id))

        assert "status" in exc.value.messages
        assert len(mailbox.sent_emails) == 1


class TestRetryFailedNotifications:
    def test_resends_every_failed_notification(self, mailbox, make_order):
        first = make_order()
        second = make_order()
        mailbox.configure(should_succeed=False)
        _confirm(first)
        _confirm(second, payment_id="pay_002")
        mailbox.configure(should_succeed=True)

        assert retry_failed_notifications() == 2
        assert _notification(first.id).status == "sent"
        assert _notification(second.id).status == "sent"

    def test_exhausted_notifications_skipped(self, mailbox, make_order):
        order = make_order()
        mailbox.configure(should_succeed=False)
        _confirm(order)
        for _ in range(3):
            retry_failed_notifications()
        mailbox.configure(should_succeed=True)

        assert retry_failed_notifications() == 0
        assert mailbox.sent_emails == []
        assert _notification(order.id).retry_count == 3

    def test_nothing_to_retry(self, mailbox):
        assert retry_failed_notifications() == 0
