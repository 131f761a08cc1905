"""Domain initialization and configuration.

Every bounded context registers its aggregates, commands and handlers with
the one ``storefront`` domain: checkout reserves stock and coupon usage and
records the order inside a single unit of work, which a domain-per-context
split would not allow.

Elements live outside this package, so ``init_domain`` imports the modules
listed in ``ELEMENT_MODULES`` instead of relying on directory traversal.
"""

import importlib

from protean.domain import Domain

from shared.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
storefront = Domain(name="storefront")

ELEMENT_MODULES = (
    "catalogue.product.product",
    "catalogue.product.erp_upsert",
    "ordering.coupon.coupon",
    "ordering.order.events",
    "ordering.order.order",
    "ordering.order.tracking",
    "ordering.checkout.placement",
    "payments.payment.verification",
    "payments.payment.gateway_order",
    "payments.payment.webhook",
    "payments.invoice.invoice",
    "payments.invoice.generation",
    "payments.invoice.ordering_events",
    "notifications.notification.notification",
    "notifications.notification.retry",
    "notifications.notification.dispatch",
    "erp.sync.order_push",
    "erp.sync.ordering_events",
    "fulfillment.shipping.labels",
)

_initialized = False


def init_domain() -> Domain:
    """Register every element and initialize the domain once per process."""
    global _initialized
    if not _initialized:
        for module in ELEMENT_MODULES:
            importlib.import_module(module)
        storefront.init(traverse=False)
        _initialized = True
        logger.debug("Domain initialized", domain=storefront.name)
    return storefront
