"""Coupon aggregate: discount rules keyed by a unique code.

Redemption bumps ``usage_count`` on a versioned aggregate, so two checkouts
racing for the last use cannot both save.
"""

from datetime import datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String

from shared.clock import as_utc, utcnow
from shared.domain import storefront
from shared.exceptions import CouponExhausted, CouponMinimumNotMet
from shared.money import ZERO, to_money


class CouponType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


@storefront.aggregate
class Coupon:
    code = String(required=True, max_length=50, unique=True)
    type = String(required=True, choices=CouponType)
    value = Float(required=True)
    min_amount = Float()
    max_discount = Float()
    usage_limit = Integer()
    usage_count = Integer(default=0)
    valid_from = DateTime()
    valid_to = DateTime()
    is_active = Boolean(default=True)
    created_at = DateTime(default=utcnow)

    @classmethod
    def create(
        cls,
        code: str,
        type: str,
        value,
        min_amount=None,
        max_discount=None,
        usage_limit: int | None = None,
        valid_from: datetime | None = None,
        valid_to: datetime | None = None,
        is_active: bool = True,
    ):
        code = normalize_code(code)
        if not code:
            raise ValidationError({"code": ["Coupon code is required"]})
        if type not in {t.value for t in CouponType}:
            raise ValidationError({"type": [f"Unknown coupon type: {type}"]})
        value = to_money(value)
        if value <= 0:
            raise ValidationError({"value": ["Coupon value must be positive"]})
        if type == CouponType.PERCENTAGE.value and value > 100:
            raise ValidationError({"value": ["Percentage coupons cannot exceed 100"]})
        if usage_limit is not None and usage_limit < 0:
            raise ValidationError({"usage_limit": ["Usage limit cannot be negative"]})
        if valid_from and valid_to and as_utc(valid_from) > as_utc(valid_to):
            raise ValidationError({"valid_to": ["Validity window ends before it starts"]})

        return cls(
            code=code,
            type=type,
            value=value,
            min_amount=to_money(min_amount) if min_amount is not None else None,
            max_discount=to_money(max_discount) if max_discount is not None else None,
            usage_limit=usage_limit,
            usage_count=0,
            valid_from=valid_from,
            valid_to=valid_to,
            is_active=is_active,
        )

    def is_valid_at(self, moment: datetime) -> bool:
        """Active and inside the validity window. Open bounds never exclude."""
        if not self.is_active:
            return False
        moment = as_utc(moment)
        if self.valid_from is not None and as_utc(self.valid_from) > moment:
            return False
        if self.valid_to is not None and as_utc(self.valid_to) < moment:
            return False
        return True

    @property
    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit

    def assert_applicable(self, subtotal: float) -> None:
        if self.min_amount is not None and subtotal < self.min_amount:
            raise CouponMinimumNotMet(
                {"coupon_code": [f"Minimum order amount of {self.min_amount:.2f} required for coupon {self.code}"]}
            )
        if self.is_exhausted:
            raise CouponExhausted({"coupon_code": [f"Coupon {self.code} has reached its usage limit"]})

    def discount_for(self, subtotal: float) -> float:
        """Percentage of the subtotal, or a fixed amount, capped at ``max_discount``."""
        if self.type == CouponType.PERCENTAGE.value:
            discount = to_money(subtotal * self.value / 100)
        else:
            discount = to_money(self.value)
        if self.max_discount is not None:
            discount = min(discount, self.max_discount)
        return max(ZERO, to_money(discount))

    def redeem(self) -> None:
        if self.is_exhausted:
            raise CouponExhausted({"coupon_code": [f"Coupon {self.code} has reached its usage limit"]})
        self.usage_count += 1


@storefront.repository(part_of=Coupon)
class CouponRepository:
    def find_active(self, code: str) -> Coupon | None:
        return self._dao.query.filter(code=normalize_code(code), is_active=True).all().first
