"""Configurable fake payment gateway for development and testing.

Simulates order creation and payment lookup without external calls. Tests
register payments with the status the gateway should report and can
switch the whole gateway into an "unreachable" mode.
"""

from itertools import count

from payments.gateway.port import GatewayError, GatewayOrder, GatewayPayment, PaymentGateway
from shared.money import to_money


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, secret: str = "", webhook_secret: str = "") -> None:
        super().__init__(secret, webhook_secret)
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.orders: dict[str, GatewayOrder] = {}
        self.payments: dict[str, GatewayPayment] = {}
        self.calls: list[dict] = []
        self._sequence = count(1)

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_order(self, amount: float, currency: str, receipt: str, notes: dict | None = None) -> GatewayOrder:
        self.calls.append({"method": "create_order", "amount": amount, "receipt": receipt, "notes": notes})
        if not self.should_succeed:
            raise GatewayError(self.failure_reason)
        order = GatewayOrder(
            order_ref=f"order_fake{next(self._sequence):06d}",
            amount=to_money(amount),
            currency=currency,
            receipt=receipt,
        )
        self.orders[order.order_ref] = order
        return order

    def register_payment(
        self,
        payment_id: str,
        amount,
        status: str = "captured",
        currency: str = "INR",
        method: str | None = "card",
        order_ref: str | None = None,
        email: str | None = None,
    ) -> GatewayPayment:
        payment = GatewayPayment(
            payment_id=payment_id,
            status=status,
            amount=to_money(amount),
            currency=currency,
            method=method,
            order_ref=order_ref,
            email=email,
        )
        self.payments[payment_id] = payment
        return payment

    def fetch_payment(self, payment_id: str) -> GatewayPayment | None:
        self.calls.append({"method": "fetch_payment", "payment_id": payment_id})
        if not self.should_succeed:
            raise GatewayError(self.failure_reason)
        return self.payments.get(payment_id)
