"""Authoritative cart pricing.

Unit prices are always recomputed from stored Product aggregates and their
Variants. Any price a client sends alongside a cart line is ignored.

    unit_price = base_price + Σ adjustment of each selected (name, value) variant
    subtotal   = Σ unit_price × quantity
    total      = max(0, subtotal + taxes + shipping − discount)
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from catalogue.product.product import Product
from ordering.coupon.coupon import Coupon, normalize_code
from ordering.pricing.rates import RateProvider, get_rate_provider
from shared.clock import utcnow
from shared.exceptions import CouponExhausted, InvalidCoupon, OutOfStock
from shared.money import ZERO, non_negative, to_money

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int
    variants: dict = field(default_factory=dict)


@dataclass
class PricedLine:
    product: Product
    quantity: int
    unit_price: float
    variants: dict

    @property
    def line_total(self) -> float:
        return to_money(self.unit_price * self.quantity)


@dataclass
class PriceQuote:
    lines: list[PricedLine]
    subtotal: float
    discount: float
    taxes: float
    shipping: float
    total: float
    coupon: Coupon | None = None


def compute_total(subtotal, taxes, shipping, discount) -> float:
    return max(ZERO, to_money(to_money(subtotal) + to_money(taxes) + to_money(shipping) - to_money(discount)))


class PricingEngine:
    def __init__(self, rates: RateProvider | None = None):
        self.rates = rates or get_rate_provider()

    def quote(
        self,
        items: list[CartLine],
        coupon_code: str | None = None,
        destination: dict | None = None,
        now: datetime | None = None,
    ) -> PriceQuote:
        """Price a cart.

        The returned quote holds the loaded Product and Coupon aggregates so
        the caller can reserve stock and coupon usage on exactly the versions
        it validated.
        """
        if not items:
            raise ValidationError({"items": ["Cart must contain at least one item"]})
        now = now or utcnow()

        products = current_domain.repository_for(Product).find_many(item.product_id for item in items)
        requested: dict[str, int] = defaultdict(int)
        lines = []
        for index, item in enumerate(items):
            if item.quantity < 1:
                raise ValidationError({f"items.{index}.quantity": ["Quantity must be at least 1"]})
            product = products.get(item.product_id)
            if product is None:
                raise ObjectNotFoundError({"product_id": [f"Product {item.product_id} not found"]})
            requested[product.id] += item.quantity
            if not product.is_available(requested[product.id]):
                raise OutOfStock({"items": [f"Insufficient inventory for {product.name}"]})

            lines.append(
                PricedLine(
                    product=product,
                    quantity=item.quantity,
                    unit_price=self.unit_price(product, item.variants),
                    variants={str(k): str(v) for k, v in (item.variants or {}).items()},
                )
            )

        subtotal = to_money(sum(line.line_total for line in lines))

        coupon = None
        discount = ZERO
        if coupon_code:
            coupon = self.find_coupon(coupon_code, now)
            coupon.assert_applicable(subtotal)
            discount = coupon.discount_for(subtotal)

        rates = self.rates.quote(subtotal, sum(line.quantity for line in lines), destination)
        taxes = non_negative(rates.taxes)
        shipping = non_negative(rates.shipping)
        total = compute_total(subtotal, taxes, shipping, discount)

        logger.debug(
            "Cart priced",
            subtotal=subtotal,
            discount=discount,
            taxes=taxes,
            shipping=shipping,
            total=total,
            coupon_code=coupon.code if coupon else None,
        )
        return PriceQuote(
            lines=lines,
            subtotal=subtotal,
            discount=discount,
            taxes=taxes,
            shipping=shipping,
            total=total,
            coupon=coupon,
        )

    @staticmethod
    def unit_price(product: Product, selected: dict | None) -> float:
        price = to_money(product.base_price)
        for name, value in (selected or {}).items():
            variant = product.find_variant(name, value)
            if variant is not None:
                price += to_money(variant.price_adjustment)
        return to_money(price)

    def find_coupon(self, code: str, now: datetime) -> Coupon:
        coupon = current_domain.repository_for(Coupon).find_active(code)
        if coupon is None or not coupon.is_valid_at(now):
            raise InvalidCoupon({"coupon_code": ["Invalid or expired coupon code"]})
        return coupon

    def check_coupon(self, code: str, subtotal=None, now: datetime | None = None) -> tuple[Coupon, float]:
        """Eligibility check used before checkout. Returns the coupon and its discount."""
        if not normalize_code(code):
            raise ValidationError({"code": ["Coupon code is required"]})
        coupon = self.find_coupon(code, now or utcnow())
        if subtotal is None:
            if coupon.is_exhausted:
                raise CouponExhausted({"coupon_code": [f"Coupon {coupon.code} has reached its usage limit"]})
            return coupon, ZERO
        subtotal = to_money(subtotal)
        coupon.assert_applicable(subtotal)
        return coupon, coupon.discount_for(subtotal)
