"""Business errors raised by the storefront domain.

Rule violations extend protean's ``ValidationError`` so they carry the same
``messages`` mapping (field name to a list of messages) as field validation.
Each adds a machine-readable ``code`` that ``shared.http`` puts on the
response. Anything unexpected from a downstream system surfaces as
``ExternalServiceDegraded``.
"""

from protean.exceptions import ValidationError


def _as_messages(messages) -> dict:
    if messages is None:
        return {}
    if isinstance(messages, str):
        return {"_entity": [messages]}
    return messages


class BusinessRuleViolation(ValidationError):
    code = "business_rule_violation"

    def __init__(self, messages=None, **kwargs):
        super().__init__(_as_messages(messages), **kwargs)


class OutOfStock(BusinessRuleViolation):
    code = "out_of_stock"


class InvalidCoupon(BusinessRuleViolation):
    code = "invalid_coupon"


class CouponMinimumNotMet(BusinessRuleViolation):
    code = "coupon_minimum_not_met"


class CouponExhausted(BusinessRuleViolation):
    code = "coupon_exhausted"


class PaymentNotCaptured(BusinessRuleViolation):
    code = "payment_not_captured"


class PaymentMismatch(BusinessRuleViolation):
    """The payment belongs to another order, or does not cover this order's total."""

    code = "payment_mismatch"


class SignatureMismatch(BusinessRuleViolation):
    code = "signature_mismatch"


class ExternalServiceDegraded(Exception):
    """ERP, gateway, carrier or mail server unreachable or misbehaving. Safe to retry."""

    code = "external_service_degraded"

    def __init__(self, messages=None):
        self.messages = _as_messages(messages) or {"_service": [self.__class__.__name__]}
        super().__init__(self.messages)
