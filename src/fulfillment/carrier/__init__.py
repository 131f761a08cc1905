"""Carrier registry: shipping carriers looked up by identifier.

The built-in carriers are registered from settings on first use. Adding a
carrier means registering another ``CarrierPort`` instance; nothing that
calls ``get_carrier`` has to change.
"""

from protean.exceptions import ValidationError

from fulfillment.carrier.port import CarrierPort
from shared.config import get_settings

_carriers: dict[str, CarrierPort] = {}
_defaults_loaded = False


def _load_defaults() -> None:
    global _defaults_loaded
    if _defaults_loaded:
        return
    _defaults_loaded = True

    from fulfillment.carrier.bluedart import BluedartCarrier
    from fulfillment.carrier.delhivery import DelhiveryCarrier
    from fulfillment.carrier.shiprocket import ShiprocketCarrier

    settings = get_settings()
    for carrier_cls in (ShiprocketCarrier, DelhiveryCarrier, BluedartCarrier):
        _carriers.setdefault(carrier_cls.name, carrier_cls.from_settings(settings))


def register_carrier(carrier: CarrierPort) -> None:
    """Register (or replace) the carrier answering to ``carrier.name``."""
    _load_defaults()
    _carriers[carrier.name.lower()] = carrier


def get_carrier(name: str | None) -> CarrierPort:
    _load_defaults()
    carrier = _carriers.get((name or "").strip().lower())
    if carrier is None:
        supported = ", ".join(available_carriers())
        raise ValidationError({"provider": [f"Unsupported carrier: {name}. Use one of: {supported}"]})
    return carrier


def available_carriers() -> list[str]:
    _load_defaults()
    return sorted(_carriers)


def reset_carriers() -> None:
    global _defaults_loaded
    _carriers.clear()
    _defaults_loaded = False
