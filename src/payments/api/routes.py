"""FastAPI routes for the Payments domain: gateway orders, verification, webhooks and invoices."""

import json

import structlog
from fastapi import APIRouter, Header, HTTPException, Request
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from payments.api.schemas import (
    CreateGatewayOrderRequest,
    GatewayOrderResponse,
    InvoiceResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
    WebhookResponse,
)
from payments.gateway import get_gateway
from payments.invoice.invoice import Invoice
from payments.payment.gateway_order import CreateGatewayOrder
from payments.payment.verification import VerifyPayment
from payments.payment.webhook import ProcessPaymentWebhook
from shared.money import from_minor_units

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/orders", status_code=201, response_model=GatewayOrderResponse)
async def create_gateway_order(body: CreateGatewayOrderRequest) -> GatewayOrderResponse:
    """Open (or reuse) the gateway order that collects this order's total."""
    result = current_domain.process(CreateGatewayOrder(order_id=body.order_id), asynchronous=False)
    return GatewayOrderResponse(**result)


@payment_router.post("/verify", response_model=VerifyPaymentResponse)
async def verify_payment(body: VerifyPaymentRequest) -> VerifyPaymentResponse:
    """Verify a checkout callback's signature and the payment's captured status."""
    command = VerifyPayment(
        order_ref=body.order_ref,
        payment_ref=body.payment_ref,
        signature=body.signature,
        order_id=body.order_meta.id,
        email=body.order_meta.email,
        amount=body.order_meta.amount,
    )
    result = current_domain.process(command, asynchronous=False)
    return VerifyPaymentResponse(**result)


def _payment_entity(payload: dict) -> dict:
    entity = ((payload.get("payload") or {}).get("payment") or {}).get("entity")
    return entity if isinstance(entity, dict) else {}


@payment_router.post("/webhook", response_model=WebhookResponse)
async def process_webhook(
    request: Request,
    x_razorpay_signature: str = Header(default=""),
) -> WebhookResponse:
    """Process a gateway webhook. The signature covers the raw request body."""
    gateway = get_gateway()
    if not gateway.webhook_secret:
        logger.error("Webhook secret is not configured")
        raise HTTPException(status_code=500, detail="Server configuration error")
    if not x_razorpay_signature:
        raise HTTPException(status_code=400, detail="Missing webhook signature")

    raw_body = await request.body()
    if not gateway.verify_webhook_signature(raw_body, x_razorpay_signature):
        logger.warning("Webhook signature rejected")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        payload = json.loads(raw_body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Webhook body is not valid JSON") from None
    if not isinstance(payload, dict) or not payload.get("event"):
        raise HTTPException(status_code=400, detail="Webhook event is missing")

    entity = _payment_entity(payload)
    amount = entity.get("amount")
    command = ProcessPaymentWebhook(
        event=payload["event"],
        payment_id=entity.get("id"),
        order_ref=entity.get("order_id"),
        amount=from_minor_units(amount) if isinstance(amount, int) else None,
        status=entity.get("status"),
        error_description=entity.get("error_description"),
    )
    result = current_domain.process(command, asynchronous=False)
    return WebhookResponse(success=True, status=result)


# ---------------------------------------------------------------------------
# Invoice Router
# ---------------------------------------------------------------------------
invoice_router = APIRouter(prefix="/invoices", tags=["invoices"])


@invoice_router.get("/{order_id}", response_model=InvoiceResponse)
async def fetch_invoice(order_id: str) -> InvoiceResponse:
    invoice = current_domain.repository_for(Invoice).find_by_order(order_id)
    if invoice is None:
        raise ObjectNotFoundError({"order_id": [f"No invoice for order {order_id}"]})
    return InvoiceResponse.from_invoice(invoice)
