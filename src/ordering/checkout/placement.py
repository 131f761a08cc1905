"""Order placement: command, ledger and handler.

The ledger prices the cart, snapshots addresses, creates the order and
reserves stock and coupon usage. The handler runs inside one unit of work,
so either all of it is saved or none of it. Product and Coupon are
versioned aggregates: a checkout that validated a stale copy fails with
``ExpectedVersionError`` instead of overselling.
"""

import json
from datetime import datetime

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from catalogue.product.product import Product
from ordering.coupon.coupon import Coupon
from ordering.order.order import Order, OrderAddress, format_order_number
from ordering.pricing.engine import CartLine, PricingEngine
from ordering.pricing.rates import RateProvider
from shared.clock import utcnow
from shared.config import get_settings
from shared.domain import storefront

logger = structlog.get_logger(__name__)


def _loads(value):
    return json.loads(value) if isinstance(value, str) else value


def cart_lines(items) -> list[CartLine]:
    """Cart lines from request data. Any ``price`` sent by the client is dropped here."""
    lines = []
    for index, item in enumerate(_loads(items) or []):
        if not item.get("product_id"):
            raise ValidationError({f"items.{index}.product_id": ["Product id is required"]})
        lines.append(
            CartLine(
                product_id=str(item["product_id"]),
                quantity=int(item.get("quantity") or 0),
                variants=dict(item.get("variants") or {}),
            )
        )
    return lines


@storefront.command(part_of="Order")
class PlaceOrder:
    """Settle a cart into an order."""

    email = String(required=True, max_length=255)
    items = Text(required=True)  # JSON: list of {product_id, quantity, variants}
    shipping_address = Text(required=True)  # JSON: address dict
    billing_address = Text()  # JSON: address dict, defaults to shipping
    coupon_code = String(max_length=50)
    payment_method = String(max_length=50)
    customer_id = Identifier()
    notes = Text()


class OrderLedger:
    """Builds a new order and reserves what it consumes. The caller persists."""

    def __init__(self, rates: RateProvider | None = None):
        self.pricing = PricingEngine(rates=rates)

    def place(self, command: PlaceOrder, now: datetime | None = None):
        shipping_data = _loads(command.shipping_address)
        if not shipping_data:
            raise ValidationError({"shipping_address": ["Shipping address is required"]})
        billing_data = _loads(command.billing_address)
        now = now or utcnow()

        quote = self.pricing.quote(
            cart_lines(command.items),
            coupon_code=command.coupon_code,
            destination=shipping_data,
            now=now,
        )
        sequence = current_domain.repository_for(Order).count() + 1

        order = Order.create(
            order_number=format_order_number(now, sequence),
            email=command.email,
            quote=quote,
            shipping_address=OrderAddress.snapshot(shipping_data, "shipping_address"),
            billing_address=OrderAddress.snapshot(billing_data, "billing_address") if billing_data else None,
            customer_id=command.customer_id,
            payment_method=command.payment_method,
            notes=command.notes,
            currency=get_settings().currency,
            placed_at=now,
        )

        products = {}
        for line in quote.lines:
            line.product.decrement_inventory(line.quantity)
            products[line.product.id] = line.product
        if quote.coupon is not None:
            quote.coupon.redeem()
        return order, list(products.values()), quote.coupon


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command: PlaceOrder):
        order, products, coupon = OrderLedger().place(command)

        product_repo = current_domain.repository_for(Product)
        for product in products:
            product_repo.add(product)
        if coupon is not None:
            current_domain.repository_for(Coupon).add(coupon)
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order placed",
            order_id=order.id,
            order_number=order.order_number,
            total=order.total,
            coupon_code=order.coupon_code,
        )
        return str(order.id)
