"""Money helpers. Amounts are floats rounded half-up to two places."""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = 0.0


def to_money(value) -> float:
    if value is None:
        return ZERO
    return float(Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP))


def non_negative(value) -> float:
    return max(ZERO, to_money(value))


def to_minor_units(value) -> int:
    """Paise/cents, as gateways expect."""
    return int((Decimal(str(to_money(value))) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(value: int) -> float:
    return to_money(Decimal(value) / 100)
