"""Payments domain API package."""

from payments.api.routes import invoice_router, payment_router

__all__ = ["payment_router", "invoice_router"]
