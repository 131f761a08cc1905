"""Invoice generation: commands and handler.

Both commands are idempotent: an existing invoice is returned as is, and a
paid invoice stays paid.
"""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.order.order import Order
from payments.invoice.invoice import Invoice
from shared.domain import storefront

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Invoice")
class GenerateInvoice:
    """Generate the invoice for an order. Does nothing if one exists."""

    order_id = Identifier(required=True)


@storefront.command(part_of="Invoice")
class MarkInvoicePaid:
    order_id = Identifier(required=True)


@storefront.command_handler(part_of=Invoice)
class InvoiceCommandHandler:
    @handle(GenerateInvoice)
    def generate_invoice(self, command: GenerateInvoice):
        repo = current_domain.repository_for(Invoice)
        invoice = repo.find_by_order(command.order_id)
        if invoice is not None:
            logger.debug("Invoice already generated", order_id=command.order_id, invoice_id=invoice.id)
            return str(invoice.id)

        order = current_domain.repository_for(Order).get(command.order_id)
        invoice = Invoice.for_order(order)
        repo.add(invoice)

        logger.info("Invoice generated", order_id=command.order_id, invoice_number=invoice.invoice_number)
        return str(invoice.id)

    @handle(MarkInvoicePaid)
    def mark_paid(self, command: MarkInvoicePaid):
        """Mark the order's invoice paid, generating it first if the order event has not been handled yet."""
        repo = current_domain.repository_for(Invoice)
        invoice = repo.find_by_order(command.order_id)
        if invoice is None:
            invoice = Invoice.for_order(current_domain.repository_for(Order).get(command.order_id))
            if not invoice.is_paid:
                invoice.mark_paid()
            repo.add(invoice)
        elif not invoice.is_paid:
            invoice.mark_paid()
            repo.add(invoice)

        logger.info("Invoice marked paid", order_id=command.order_id, invoice_number=invoice.invoice_number)
        return str(invoice.id)
