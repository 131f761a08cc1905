"""Order aggregate: the system of record for a settled checkout.

An order is created once at checkout from an authoritative price quote.
Afterwards only three actors mutate it:
    payment collection    → gateway_order_ref, financial_status, payment_id
    ERP order push        → external_erp_id (set once, never overwritten)
    carrier / operators   → tracking fields, fulfillment_status

Fulfillment state machine:
    UNFULFILLED → PROCESSING → SHIPPED → DELIVERED → RETURNED
    UNFULFILLED → SHIPPED,  SHIPPED → RETURNED
"""

from datetime import datetime
from enum import Enum

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Dict, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from ordering.order.events import GatewayOrderCreated, OrderPlaced, PaymentConfirmed, PaymentFailed
from shared.clock import utcnow
from shared.domain import storefront
from shared.money import to_money


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class FinancialStatus(Enum):
    PENDING = "pending"
    PAID = "paid"


class FulfillmentStatus(Enum):
    UNFULFILLED = "unfulfilled"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    RETURNED = "returned"


_VALID_TRANSITIONS = {
    FulfillmentStatus.UNFULFILLED: {FulfillmentStatus.PROCESSING, FulfillmentStatus.SHIPPED},
    FulfillmentStatus.PROCESSING: {FulfillmentStatus.SHIPPED},
    FulfillmentStatus.SHIPPED: {FulfillmentStatus.DELIVERED, FulfillmentStatus.RETURNED},
    FulfillmentStatus.DELIVERED: {FulfillmentStatus.RETURNED},
    FulfillmentStatus.RETURNED: set(),  # Terminal
}


def format_order_number(moment: datetime, sequence: int) -> str:
    return f"ORD-{int(moment.timestamp() * 1000)}-{sequence:04d}"


# ---------------------------------------------------------------------------
# Address snapshot
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class OrderAddress:
    """An address captured at checkout time.

    It is where the order was shipped or billed, regardless of later changes
    to the customer's address book, and is replaced wholesale if ever.
    """

    first_name: String(required=True, max_length=100)
    last_name: String(max_length=100, default="")
    company: String(max_length=150)
    address1: String(required=True, max_length=255)
    address2: String(max_length=255)
    city: String(required=True, max_length=100)
    state: String(required=True, max_length=100)
    zip_code: String(required=True, max_length=20)
    country: String(max_length=100, default="India")
    phone: String(max_length=30)

    @classmethod
    def snapshot(cls, data: dict, field: str = "shipping_address"):
        """Build the snapshot from request data, prefixing errors with ``field``."""
        try:
            return cls(
                first_name=data.get("first_name") or None,
                last_name=data.get("last_name") or "",
                company=data.get("company") or None,
                address1=data.get("address1") or None,
                address2=data.get("address2") or None,
                city=data.get("city") or None,
                state=data.get("state") or None,
                zip_code=data.get("zip_code") or None,
                country=data.get("country") or "India",
                phone=data.get("phone") or None,
            )
        except ValidationError as exc:
            raise ValidationError({f"{field}.{name}": messages for name, messages in exc.messages.items()}) from exc

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()


# ---------------------------------------------------------------------------
# Order items
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """A purchased line. ``unit_price`` is a snapshot and never recomputed."""

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    position = Integer(default=0)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True)
    variants = Dict()

    @property
    def line_total(self) -> float:
        return to_money(self.unit_price * self.quantity)


# ---------------------------------------------------------------------------
# Order aggregate
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    order_number = String(required=True, max_length=40, unique=True)
    email = String(required=True, max_length=255)
    customer_id = Identifier()

    items = HasMany(OrderItem)
    shipping_address = ValueObject(OrderAddress, required=True)
    billing_address = ValueObject(OrderAddress)

    subtotal = Float(required=True)
    discount = Float(default=0.0)
    shipping = Float(default=0.0)
    taxes = Float(default=0.0)
    total = Float(required=True)
    currency = String(max_length=3, default="INR")

    financial_status = String(choices=FinancialStatus, default=FinancialStatus.PENDING.value)
    fulfillment_status = String(choices=FulfillmentStatus, default=FulfillmentStatus.UNFULFILLED.value)
    payment_method = String(max_length=50)
    payment_id = String(max_length=100)
    gateway_order_ref = String(max_length=100)
    last_payment_error = String(max_length=500)
    coupon_code = String(max_length=50)
    notes = Text()
    external_erp_id = Integer()

    carrier = String(max_length=50)
    tracking_number = String(max_length=100)
    label_url = String(max_length=500)
    shipped_at = DateTime()
    estimated_delivery = DateTime()

    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(
        cls,
        order_number: str,
        email: str,
        quote,
        shipping_address: OrderAddress,
        billing_address: OrderAddress | None = None,
        customer_id: str | None = None,
        payment_method: str | None = None,
        notes: str | None = None,
        currency: str = "INR",
        placed_at: datetime | None = None,
    ):
        """Build an order from a price quote. Prices come only from the quote."""
        if not email:
            raise ValidationError({"email": ["Email is required"]})
        if not quote.lines:
            raise ValidationError({"items": ["Order must contain at least one item"]})

        placed_at = placed_at or utcnow()
        order = cls(
            order_number=order_number,
            email=email,
            customer_id=customer_id,
            subtotal=quote.subtotal,
            discount=quote.discount,
            shipping=quote.shipping,
            taxes=quote.taxes,
            total=quote.total,
            currency=currency,
            payment_method=payment_method,
            coupon_code=quote.coupon.code if quote.coupon is not None else None,
            notes=notes,
            shipping_address=shipping_address,
            billing_address=billing_address or shipping_address,
            created_at=placed_at,
            updated_at=placed_at,
        )
        for position, line in enumerate(quote.lines):
            order.add_items(
                OrderItem(
                    position=position,
                    product_id=line.product.id,
                    product_name=line.product.name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    variants=dict(line.variants),
                )
            )

        order.raise_(
            OrderPlaced(
                order_id=order.id,
                order_number=order.order_number,
                email=order.email,
                total=order.total,
                currency=order.currency,
                coupon_code=order.coupon_code,
                item_count=sum(item.quantity for item in order.items),
                placed_at=placed_at,
            )
        )
        return order

    @property
    def is_paid(self) -> bool:
        return self.financial_status == FinancialStatus.PAID.value

    @property
    def sorted_items(self) -> list[OrderItem]:
        return sorted(self.items, key=lambda item: item.position or 0)

    def attach_gateway_order(self, gateway_order_ref: str, amount: float) -> None:
        """Bind the gateway order that will collect this order's payment."""
        if self.is_paid:
            raise ValidationError({"order_id": [f"Order {self.order_number} is already paid"]})
        if not gateway_order_ref:
            raise ValidationError({"order_ref": ["Gateway order reference is required"]})
        self.gateway_order_ref = gateway_order_ref
        self.updated_at = utcnow()
        self.raise_(
            GatewayOrderCreated(
                order_id=self.id,
                gateway_order_ref=gateway_order_ref,
                amount=amount,
                currency=self.currency,
            )
        )

    def mark_paid(
        self, payment_id: str, payment_method: str | None = None, confirmed_at: datetime | None = None
    ) -> bool:
        """Record a captured payment. Returns False when this payment was already recorded."""
        if not payment_id:
            raise ValidationError({"payment_id": ["Payment id is required"]})
        if self.is_paid:
            if self.payment_id == payment_id:
                return False
            raise ValidationError({"payment_id": [f"Order {self.order_number} is already paid by another payment"]})

        confirmed_at = confirmed_at or utcnow()
        self.financial_status = FinancialStatus.PAID.value
        self.payment_id = payment_id
        self.last_payment_error = None
        if payment_method:
            self.payment_method = payment_method
        self.updated_at = confirmed_at

        self.raise_(
            PaymentConfirmed(
                order_id=self.id,
                order_number=self.order_number,
                email=self.email,
                payment_id=payment_id,
                amount=self.total,
                currency=self.currency,
                confirmed_at=confirmed_at,
            )
        )
        return True

    def record_payment_failure(self, payment_id: str | None, reason: str | None) -> bool:
        """Note a failed attempt. A paid order ignores late failure notices."""
        if self.is_paid:
            return False
        now = utcnow()
        self.last_payment_error = (reason or "Payment failed")[:500]
        self.updated_at = now
        self.raise_(PaymentFailed(order_id=self.id, payment_id=payment_id, reason=reason, failed_at=now))
        return True

    def link_external_erp_id(self, external_id: int) -> bool:
        """Store the remote sales order id. Never overwrites an existing link."""
        if self.external_erp_id is not None:
            return False
        self.external_erp_id = external_id
        return True

    def _assert_can_transition(self, target_status: FulfillmentStatus) -> None:
        """Validate that the current state allows transition to target."""
        current = FulfillmentStatus(self.fulfillment_status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError(
                {"fulfillment_status": [f"Cannot transition from {current.value} to {target_status.value}"]}
            )

    def update_tracking(
        self,
        tracking_number: str | None = None,
        carrier: str | None = None,
        shipped_at: datetime | None = None,
        estimated_delivery: datetime | None = None,
        fulfillment_status: str | None = None,
    ) -> None:
        """Partial update: only the supplied fields change."""
        if fulfillment_status is not None:
            try:
                target = FulfillmentStatus(fulfillment_status)
            except ValueError:
                raise ValidationError(
                    {"fulfillment_status": [f"Unknown fulfillment status: {fulfillment_status}"]}
                ) from None
            if target.value != self.fulfillment_status:
                self._assert_can_transition(target)
                self.fulfillment_status = target.value
                if target == FulfillmentStatus.SHIPPED and shipped_at is None and self.shipped_at is None:
                    shipped_at = utcnow()

        if tracking_number is not None:
            self.tracking_number = tracking_number
        if carrier is not None:
            self.carrier = carrier
        if shipped_at is not None:
            self.shipped_at = shipped_at
        if estimated_delivery is not None:
            self.estimated_delivery = estimated_delivery
        self.updated_at = utcnow()

    def record_label(self, carrier: str, tracking_number: str | None, label_url: str | None) -> None:
        self.carrier = carrier
        if tracking_number:
            self.tracking_number = tracking_number
        if label_url:
            self.label_url = label_url
        self.updated_at = utcnow()


@storefront.repository(part_of=Order)
class OrderRepository:
    def find_by_number(self, order_number: str) -> Order | None:
        return self._dao.query.filter(order_number=order_number).all().first

    def find_by_gateway_order(self, gateway_order_ref: str) -> Order | None:
        return self._dao.query.filter(gateway_order_ref=gateway_order_ref).all().first

    def find_by_payment(self, payment_id: str) -> Order | None:
        return self._dao.query.filter(payment_id=payment_id).all().first

    def get_by_ref(self, order_ref: str) -> Order:
        """Load an order by id or by order number."""
        order = self._dao.query.filter(id=order_ref).all().first if order_ref else None
        if order is None and order_ref:
            order = self.find_by_number(order_ref)
        if order is None:
            raise ObjectNotFoundError({"order_id": [f"Order {order_ref} not found"]})
        return order

    def count(self) -> int:
        return self._dao.query.all().total

    def unlinked(self, limit: int = 20) -> list[Order]:
        """Orders not yet mirrored as ERP sales orders, oldest first."""
        return self._dao.query.filter(external_erp_id=None).order_by("created_at").limit(limit).all().items
