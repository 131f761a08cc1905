"""Gateway order creation: command and handler.

The storefront opens a gateway order before showing the checkout widget.
The amount is always the order's own total, and the gateway's order id is
stored on the Order so verification can tell which order a callback pays.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.order.order import Order
from payments.gateway import get_gateway
from payments.gateway.port import GatewayError
from shared.domain import storefront
from shared.exceptions import ExternalServiceDegraded

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class CreateGatewayOrder:
    order_id = Identifier(required=True)


@storefront.command_handler(part_of=Order)
class CreateGatewayOrderHandler:
    @handle(CreateGatewayOrder)
    def create_gateway_order(self, command: CreateGatewayOrder) -> dict:
        repo = current_domain.repository_for(Order)
        order = repo.get_by_ref(command.order_id)
        if order.is_paid:
            raise ValidationError({"order_id": [f"Order {order.order_number} is already paid"]})
        if order.total <= 0:
            raise ValidationError({"amount": ["Order total must be greater than zero"]})

        if order.gateway_order_ref:
            logger.debug("Reusing gateway order", order_id=order.id, order_ref=order.gateway_order_ref)
            return self._view(order, order.gateway_order_ref, status="created")

        try:
            gateway_order = get_gateway().create_order(
                amount=order.total,
                currency=order.currency,
                receipt=order.order_number,
                notes={"order_id": order.id, "email": order.email},
            )
        except GatewayError as exc:
            logger.error("Gateway order creation failed", order_id=order.id, error=str(exc))
            raise ExternalServiceDegraded({"gateway": [str(exc)]}) from exc

        order.attach_gateway_order(gateway_order.order_ref, gateway_order.amount)
        repo.add(order)
        logger.info("Gateway order created", order_id=order.id, order_ref=gateway_order.order_ref)
        return self._view(order, gateway_order.order_ref, status=gateway_order.status)

    @staticmethod
    def _view(order: Order, order_ref: str, status: str) -> dict:
        return {
            "id": order_ref,
            "order_id": str(order.id),
            "amount": order.total,
            "currency": order.currency,
            "status": status,
            "receipt": order.order_number,
        }
