"""Invoice aggregate: one invoice per order.

Invoices are generated from the order's snapshot prices when the order is
placed and marked paid once the payment is verified.

State Machine:
    ISSUED → PAID
"""

from datetime import datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from shared.clock import utcnow
from shared.domain import storefront
from shared.money import to_money


class InvoiceStatus(Enum):
    ISSUED = "issued"
    PAID = "paid"


_VALID_TRANSITIONS = {
    InvoiceStatus.ISSUED: {InvoiceStatus.PAID},
    InvoiceStatus.PAID: set(),  # Terminal
}


@storefront.entity(part_of="Invoice")
class InvoiceLineItem:
    """A line item on an invoice."""

    position = Integer(default=0)
    description = String(required=True, max_length=500)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True)
    total = Float(required=True)


@storefront.aggregate
class Invoice:
    order_id = Identifier(required=True, unique=True)
    invoice_number = String(required=True, max_length=60, unique=True)
    email = String(required=True, max_length=255)
    currency = String(max_length=3, default="INR")
    subtotal = Float(required=True)
    discount = Float(default=0.0)
    shipping = Float(default=0.0)
    tax = Float(default=0.0)
    total = Float(required=True)
    status = String(choices=InvoiceStatus, default=InvoiceStatus.ISSUED.value)
    issued_at = DateTime(default=utcnow)
    paid_at = DateTime()

    line_items = HasMany(InvoiceLineItem)

    def _assert_can_transition(self, target_status: InvoiceStatus) -> None:
        current = InvoiceStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    @classmethod
    def for_order(cls, order) -> "Invoice":
        """Create the invoice for an order from its snapshot prices."""
        now = utcnow()
        invoice = cls(
            order_id=order.id,
            invoice_number=f"INV-{order.order_number}",
            email=order.email,
            currency=order.currency,
            subtotal=to_money(order.subtotal),
            discount=to_money(order.discount or 0),
            shipping=to_money(order.shipping or 0),
            tax=to_money(order.taxes or 0),
            total=to_money(order.total),
            status=InvoiceStatus.ISSUED.value,
            issued_at=now,
        )
        for position, item in enumerate(order.sorted_items):
            variants = ", ".join(f"{name}: {value}" for name, value in (item.variants or {}).items())
            invoice.add_line_items(
                InvoiceLineItem(
                    position=position,
                    description=f"{item.product_name} ({variants})" if variants else item.product_name,
                    quantity=item.quantity,
                    unit_price=to_money(item.unit_price),
                    total=item.line_total,
                )
            )
        if order.is_paid:
            invoice.mark_paid(now)
        return invoice

    @property
    def is_paid(self) -> bool:
        return self.status == InvoiceStatus.PAID.value

    @property
    def sorted_line_items(self) -> list[InvoiceLineItem]:
        return sorted(self.line_items, key=lambda item: item.position or 0)

    def mark_paid(self, paid_at: datetime | None = None) -> None:
        self._assert_can_transition(InvoiceStatus.PAID)
        self.status = InvoiceStatus.PAID.value
        self.paid_at = paid_at or utcnow()


@storefront.repository(part_of=Invoice)
class InvoiceRepository:
    def find_by_order(self, order_id: str) -> Invoice | None:
        return self._dao.query.filter(order_id=order_id).all().first
