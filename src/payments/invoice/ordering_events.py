"""Payments reacts to Order events: OrderPlaced issues the invoice, PaymentConfirmed settles it.

Both commands are idempotent, so redelivered events are harmless. A failure
is logged and left for the next delivery or an operator, never raised back
into the order's transaction.
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from ordering.order.events import OrderPlaced, PaymentConfirmed
from ordering.order.order import Order
from payments.invoice.generation import GenerateInvoice, MarkInvoicePaid
from shared.domain import storefront

logger = structlog.get_logger(__name__)


@storefront.event_handler(part_of=Order, stream_category="storefront::order")
class InvoiceOrderingEventHandler:
    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        try:
            current_domain.process(GenerateInvoice(order_id=event.order_id), asynchronous=False)
        except Exception:
            logger.exception("Invoice generation failed", order_id=event.order_id)

    @handle(PaymentConfirmed)
    def on_payment_confirmed(self, event: PaymentConfirmed) -> None:
        try:
            current_domain.process(MarkInvoicePaid(order_id=event.order_id), asynchronous=False)
        except Exception:
            logger.exception("Marking invoice paid failed", order_id=event.order_id)
