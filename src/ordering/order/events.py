"""Domain events for the Order aggregate.

Payments, notifications and the ERP bridge react to these. Only identifiers
and display values travel in the payload; handlers reload the order for
anything else.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String

from shared.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """An order was priced, persisted and its stock and coupon reserved.

    Consumed by Payments (invoice) and the ERP bridge (sales order push).
    """

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    email = String(required=True)
    total = Float(required=True)
    currency = String(default="INR")
    coupon_code = String()
    item_count = Integer(default=0)
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class GatewayOrderCreated:
    """A gateway order was opened for collecting this order's payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    gateway_order_ref = String(required=True)
    amount = Float(required=True)
    currency = String(default="INR")


@storefront.event(part_of="Order")
class PaymentConfirmed:
    """The gateway confirmed a captured payment and the order is now paid.

    Consumed by Payments (invoice), Notifications (confirmation email) and
    the ERP bridge.
    """

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    email = String(required=True)
    payment_id = String(required=True)
    amount = Float(required=True)
    currency = String(default="INR")
    confirmed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class PaymentFailed:
    """The gateway reported a failed payment attempt. The order stays pending."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_id = String()
    reason = String()
    failed_at = DateTime(required=True)
