"""Pydantic request/response schemas for the Payments API."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class OrderMetaSchema(BaseModel):
    id: str = ""
    email: str | None = None
    amount: float | None = None


class VerifyPaymentRequest(BaseModel):
    """Checkout callback relayed by the storefront after the gateway's popup closes."""

    payment_ref: str = ""
    order_ref: str = ""
    signature: str = ""
    order_meta: OrderMetaSchema = Field(default_factory=OrderMetaSchema)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "payment_ref": "pay_29QQoUBi66xm2f",
                    "order_ref": "order_9A33XWu170gUtm",
                    "signature": "9ef4dffbfd84f1318f6739a3ce19f9d85851857ae648f114332d8401e0949a3d",
                    "order_meta": {"id": "ORD-1718000000000-0001", "email": "asha@example.com", "amount": 2050},
                }
            ]
        }
    }


class VerifiedPaymentSchema(BaseModel):
    id: str
    order_id: str
    order_number: str
    amount: float
    currency: str
    status: str
    method: str | None = None
    email: str | None = None


class VerifyPaymentResponse(BaseModel):
    success: bool
    message: str
    payment: VerifiedPaymentSchema


class InvoiceLineItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    description: str
    quantity: int
    unit_price: float
    total: float


class InvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_id: str
    invoice_number: str
    email: str
    currency: str
    subtotal: float
    discount: float
    shipping: float
    tax: float
    total: float
    status: str
    issued_at: datetime
    paid_at: datetime | None = None
    line_items: list[InvoiceLineItemResponse]

    @classmethod
    def from_invoice(cls, invoice) -> "InvoiceResponse":
        return cls(
            id=str(invoice.id),
            order_id=str(invoice.order_id),
            invoice_number=invoice.invoice_number,
            email=invoice.email,
            currency=invoice.currency,
            subtotal=invoice.subtotal,
            discount=invoice.discount,
            shipping=invoice.shipping,
            tax=invoice.tax,
            total=invoice.total,
            status=invoice.status,
            issued_at=invoice.issued_at,
            paid_at=invoice.paid_at,
            line_items=[InvoiceLineItemResponse.model_validate(item) for item in invoice.sorted_line_items],
        )


class CreateGatewayOrderRequest(BaseModel):
    order_id: str = Field(min_length=1)


class GatewayOrderResponse(BaseModel):
    id: str
    order_id: str
    amount: float
    currency: str
    status: str
    receipt: str | None = None


class WebhookResponse(BaseModel):
    success: bool
    status: str
