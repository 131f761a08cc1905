"""Payment gateway port (abstract interface).

Defines the contract every gateway adapter implements so payment code can
swap between FakeGateway (dev/test) and RazorpayGateway (production)
without changes.

Checkout callbacks are authenticated with
``HMAC-SHA256(secret, order_ref + "|" + payment_ref)`` in hex, webhooks with
``HMAC-SHA256(webhook_secret, raw_body)``. Either way the gateway is then
asked for the payment's authoritative status.
"""

import hashlib
import hmac
from abc import ABC, abstractmethod
from dataclasses import dataclass


class GatewayError(Exception):
    """The gateway could not be reached or answered with a server error."""


@dataclass(frozen=True)
class GatewayOrder:
    """An order opened on the gateway to collect one payment."""

    order_ref: str
    amount: float
    currency: str
    status: str = "created"
    receipt: str | None = None
    created_at: int | None = None


@dataclass(frozen=True)
class GatewayPayment:
    """A payment as reported by the gateway's own API."""

    payment_id: str
    status: str
    amount: float
    currency: str
    method: str | None = None
    order_ref: str | None = None
    email: str | None = None
    contact: str | None = None

    @property
    def is_captured(self) -> bool:
        return self.status == "captured"


def compute_signature(secret: str, order_ref: str, payment_ref: str) -> str:
    message = f"{order_ref}|{payment_ref}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def compute_webhook_signature(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    def __init__(self, secret: str, webhook_secret: str = "") -> None:
        self.secret = secret
        self.webhook_secret = webhook_secret

    def verify_signature(self, order_ref: str, payment_ref: str, signature: str) -> bool:
        """Constant-time check of a checkout callback signature."""
        if not self.secret or not signature:
            return False
        expected = compute_signature(self.secret, order_ref, payment_ref)
        return hmac.compare_digest(expected, signature)

    def verify_webhook_signature(self, body: bytes, signature: str) -> bool:
        """Constant-time check of a webhook signature over the raw request body."""
        if not self.webhook_secret or not signature:
            return False
        expected = compute_webhook_signature(self.webhook_secret, body)
        return hmac.compare_digest(expected, signature)

    @abstractmethod
    def create_order(self, amount: float, currency: str, receipt: str, notes: dict | None = None) -> GatewayOrder:
        """Open a gateway order for ``amount`` (major units).

        Raises GatewayError when the gateway is unreachable or refuses.
        """
        ...

    @abstractmethod
    def fetch_payment(self, payment_id: str) -> GatewayPayment | None:
        """Fetch a payment by id. Returns None when the gateway does not know it.

        Raises GatewayError when the gateway is unreachable.
        """
        ...
