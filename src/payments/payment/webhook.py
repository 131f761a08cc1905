"""Payment webhook processing: command and handler.

The route authenticates the webhook (HMAC over the raw body) before this
runs. Captures still go through the gateway's API and the same settlement
checks as checkout callbacks. Outcomes that can never succeed are
acknowledged as ``rejected`` so the gateway stops redelivering them; an
unreachable gateway propagates and the delivery is retried.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, String
from protean.utils.globals import current_domain

from ordering.order.order import Order
from payments.payment.verification import assert_payment_settles, fetch_captured_payment
from shared.domain import storefront

logger = structlog.get_logger(__name__)

PAYMENT_CAPTURED = "payment.captured"
PAYMENT_FAILED = "payment.failed"


@storefront.command(part_of="Order")
class ProcessPaymentWebhook:
    """A gateway webhook delivery, flattened to the fields we act on."""

    event = String(required=True, max_length=100)
    payment_id = String(max_length=100)
    order_ref = String(max_length=100)  # gateway order id
    amount = Float()
    status = String(max_length=50)
    error_description = String(max_length=500)


@storefront.command_handler(part_of=Order)
class ProcessPaymentWebhookHandler:
    @handle(ProcessPaymentWebhook)
    def process_webhook(self, command: ProcessPaymentWebhook) -> str:
        if command.event == PAYMENT_CAPTURED:
            return self._captured(command)
        if command.event == PAYMENT_FAILED:
            return self._failed(command)
        logger.info("Unhandled webhook event", webhook_event=command.event)
        return "ignored"

    @staticmethod
    def _find_order(command: ProcessPaymentWebhook) -> Order | None:
        repo = current_domain.repository_for(Order)
        order = repo.find_by_gateway_order(command.order_ref) if command.order_ref else None
        if order is None and command.payment_id:
            order = repo.find_by_payment(command.payment_id)
        return order

    def _captured(self, command: ProcessPaymentWebhook) -> str:
        order = self._find_order(command)
        if order is None:
            logger.warning(
                "Captured payment for unknown order", payment_id=command.payment_id, order_ref=command.order_ref
            )
            return "ignored"
        if order.is_paid and order.payment_id == command.payment_id:
            logger.debug("Webhook capture already recorded", order_id=order.id, payment_id=command.payment_id)
            return "already_recorded"

        try:
            payment = fetch_captured_payment(command.payment_id)
            assert_payment_settles(order, payment, order.gateway_order_ref)
            order.mark_paid(payment.payment_id, payment_method=payment.method)
        except ValidationError as exc:
            logger.error(
                "Webhook capture rejected",
                order_id=order.id,
                payment_id=command.payment_id,
                messages=exc.messages,
            )
            return "rejected"

        current_domain.repository_for(Order).add(order)
        logger.info("Payment captured via webhook", order_id=order.id, payment_id=payment.payment_id)
        return "paid"

    def _failed(self, command: ProcessPaymentWebhook) -> str:
        order = self._find_order(command)
        if order is None:
            logger.warning(
                "Failed payment for unknown order", payment_id=command.payment_id, order_ref=command.order_ref
            )
            return "ignored"
        if not order.record_payment_failure(command.payment_id, command.error_description):
            logger.info("Ignoring failure notice for paid order", order_id=order.id, payment_id=command.payment_id)
            return "ignored"
        current_domain.repository_for(Order).add(order)
        logger.warning(
            "Payment failed",
            order_id=order.id,
            payment_id=command.payment_id,
            reason=command.error_description,
        )
        return "failed"
