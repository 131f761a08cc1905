"""ERP bridge API package."""

from erp.api.routes import erp_router

__all__ = ["erp_router"]
