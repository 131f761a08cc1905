"""Razorpay payment gateway adapter.

Uses the REST API directly over httpx with basic auth (key id / key
secret). Amounts travel in paise and are converted from and to rupees.
"""

import httpx
import structlog

from payments.gateway.port import GatewayError, GatewayOrder, GatewayPayment, PaymentGateway
from shared.money import from_minor_units, to_minor_units

logger = structlog.get_logger(__name__)


class RazorpayGateway(PaymentGateway):
    def __init__(
        self,
        key_id: str,
        key_secret: str,
        webhook_secret: str = "",
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(key_secret, webhook_secret)
        self.key_id = key_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            auth=(self.key_id, self.secret),
            timeout=self.timeout,
            transport=self._transport,
        )

    def create_order(self, amount: float, currency: str, receipt: str, notes: dict | None = None) -> GatewayOrder:
        payload = {"amount": to_minor_units(amount), "currency": currency, "receipt": receipt, "notes": notes or {}}
        try:
            with self._client() as client:
                response = client.post("/orders", json=payload)
        except httpx.HTTPError as exc:
            logger.warning("Razorpay unreachable", receipt=receipt, error=str(exc))
            raise GatewayError(f"Razorpay unreachable: {exc}") from exc

        if response.status_code >= 400:
            logger.error("Razorpay refused order", receipt=receipt, status_code=response.status_code)
            raise GatewayError(f"Razorpay returned HTTP {response.status_code}")

        try:
            data = response.json()
            return GatewayOrder(
                order_ref=data["id"],
                amount=from_minor_units(int(data.get("amount", payload["amount"]))),
                currency=data.get("currency", currency),
                status=data.get("status", "created"),
                receipt=data.get("receipt", receipt),
                created_at=data.get("created_at"),
            )
        except (ValueError, KeyError, AttributeError, TypeError) as exc:
            raise GatewayError(f"Razorpay returned an unreadable order: {exc}") from exc

    def fetch_payment(self, payment_id: str) -> GatewayPayment | None:
        try:
            with self._client() as client:
                response = client.get(f"/payments/{payment_id}")
        except httpx.HTTPError as exc:
            logger.warning("Razorpay unreachable", payment_id=payment_id, error=str(exc))
            raise GatewayError(f"Razorpay unreachable: {exc}") from exc

        if response.status_code in (400, 404):
            logger.info("Razorpay does not know payment", payment_id=payment_id, status_code=response.status_code)
            return None
        if response.status_code >= 400:
            raise GatewayError(f"Razorpay returned HTTP {response.status_code}")

        data = response.json()
        return GatewayPayment(
            payment_id=data["id"],
            status=data.get("status", "unknown"),
            amount=from_minor_units(int(data.get("amount", 0))),
            currency=data.get("currency", "INR"),
            method=data.get("method"),
            order_ref=data.get("order_id"),
            email=data.get("email"),
            contact=data.get("contact"),
        )
