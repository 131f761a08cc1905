"""Shipping and tax rate port.

Rates come from a collaborator outside the checkout core. The engine
clamps whatever it returns to zero or more.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from shared.config import get_settings
from shared.money import to_money


@dataclass(frozen=True)
class RateQuote:
    taxes: float
    shipping: float


class RateProvider(ABC):
    @abstractmethod
    def quote(self, subtotal: float, item_count: int, destination: dict | None = None) -> RateQuote:
        """Return taxes and shipping for a priced cart."""
        ...


class FlatRateProvider(RateProvider):
    """Fixed shipping fee plus a proportional tax rate."""

    def __init__(self, shipping=0.0, tax_rate=0.0):
        self.shipping = to_money(shipping)
        self.tax_rate = float(tax_rate)

    def quote(self, subtotal: float, item_count: int, destination: dict | None = None) -> RateQuote:
        return RateQuote(taxes=to_money(subtotal * self.tax_rate), shipping=self.shipping)


_rate_provider: RateProvider | None = None


def get_rate_provider() -> RateProvider:
    global _rate_provider
    if _rate_provider is None:
        settings = get_settings()
        _rate_provider = FlatRateProvider(shipping=settings.shipping_flat_rate, tax_rate=settings.tax_rate)
    return _rate_provider


def set_rate_provider(provider: RateProvider) -> None:
    global _rate_provider
    _rate_provider = provider


def reset_rate_provider() -> None:
    global _rate_provider
    _rate_provider = None
