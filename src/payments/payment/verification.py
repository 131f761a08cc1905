"""Payment verification: command and handler.

A checkout callback is trusted only after these checks:
1. its HMAC signature over ``order_ref|payment_ref`` matches,
2. ``order_ref`` is the gateway order opened for this very order,
3. the gateway's own API reports the payment as captured, against that
   same gateway order, for exactly the order total,
4. the payment is not already recorded on another order.

Only then is the order flipped to paid. Repeating a verification with the
same payment is a no-op.
"""

import structlog
from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.order.order import Order
from payments.gateway import get_gateway
from payments.gateway.port import GatewayError, GatewayPayment
from shared.domain import storefront
from shared.exceptions import ExternalServiceDegraded, PaymentMismatch, PaymentNotCaptured, SignatureMismatch
from shared.money import to_money

logger = structlog.get_logger(__name__)


def fetch_captured_payment(payment_ref: str) -> GatewayPayment:
    """Ask the gateway for the payment. Anything but ``captured`` is rejected."""
    try:
        payment = get_gateway().fetch_payment(payment_ref)
    except GatewayError as exc:
        raise ExternalServiceDegraded({"gateway": [str(exc)]}) from exc
    if payment is None or not payment.is_captured:
        status = payment.status if payment else "not_found"
        logger.warning("Payment not captured", payment_ref=payment_ref, gateway_status=status)
        raise PaymentNotCaptured({"payment": [f"Payment is not captured (status: {status})"]})
    return payment


def assert_payment_settles(order: Order, payment: GatewayPayment, order_ref: str) -> None:
    """The captured payment must belong to ``order`` and cover its total exactly."""
    if payment.order_ref != order_ref:
        logger.warning(
            "Payment belongs to another gateway order",
            order_id=order.id,
            payment_id=payment.payment_id,
            expected=order_ref,
            actual=payment.order_ref,
        )
        raise PaymentMismatch({"payment": ["Payment was not made against this order"]})
    if to_money(payment.amount) != to_money(order.total) or (payment.currency or order.currency) != order.currency:
        logger.warning(
            "Captured amount differs from order total",
            order_id=order.id,
            payment_id=payment.payment_id,
            captured=payment.amount,
            currency=payment.currency,
            order_total=order.total,
        )
        raise PaymentMismatch(
            {"amount": [f"Captured {payment.amount:.2f} {payment.currency} does not match total {order.total:.2f}"]}
        )

    holder = current_domain.repository_for(Order).find_by_payment(payment.payment_id)
    if holder is not None and holder.id != order.id:
        logger.warning("Payment already used", payment_id=payment.payment_id, order_id=order.id, holder=holder.id)
        raise PaymentMismatch({"payment_id": ["Payment is already recorded on another order"]})


@storefront.command(part_of="Order")
class VerifyPayment:
    """A checkout callback relayed by the storefront."""

    order_ref = String(required=True, max_length=100)
    payment_ref = String(required=True, max_length=100)
    signature = String(required=True, max_length=256)
    order_id = Identifier(required=True)
    email = String(max_length=255)
    amount = Float()


@storefront.command_handler(part_of=Order)
class VerifyPaymentHandler:
    @handle(VerifyPayment)
    def verify_payment(self, command: VerifyPayment) -> dict:
        if not get_gateway().verify_signature(command.order_ref, command.payment_ref, command.signature):
            logger.warning(
                "Payment signature mismatch",
                order_id=command.order_id,
                payment_ref=command.payment_ref,
            )
            raise SignatureMismatch({"signature": ["Invalid payment signature"]})

        repo = current_domain.repository_for(Order)
        order = repo.get_by_ref(command.order_id)
        if not order.gateway_order_ref or order.gateway_order_ref != command.order_ref:
            logger.warning(
                "Callback names another gateway order",
                order_id=order.id,
                expected=order.gateway_order_ref,
                actual=command.order_ref,
            )
            raise PaymentMismatch({"order_ref": ["Order reference does not match this order"]})

        payment = fetch_captured_payment(command.payment_ref)
        assert_payment_settles(order, payment, command.order_ref)

        newly_paid = order.mark_paid(payment.payment_id, payment_method=payment.method)
        if newly_paid:
            repo.add(order)
            logger.info("Payment verified", order_id=order.id, payment_id=payment.payment_id)
        else:
            logger.info("Payment already recorded", order_id=order.id, payment_id=payment.payment_id)

        return {
            "success": True,
            "message": "Payment verified successfully",
            "payment": {
                "id": payment.payment_id,
                "order_id": str(order.id),
                "order_number": order.order_number,
                "amount": payment.amount,
                "currency": payment.currency,
                "status": payment.status,
                "method": payment.method,
                "email": payment.email or order.email,
            },
        }
