"""ERP client factory.

ERP_ADAPTER selects the implementation:
- ``fake`` (default): in-memory FakeErpClient
- ``odoo``: OdooXmlRpcClient configured from ERP_URL / ERP_DB / ERP_USERNAME / ERP_PASSWORD
"""

from erp.client.port import ErpClient
from shared.config import get_settings

_erp_client: ErpClient | None = None


def get_erp_client() -> ErpClient:
    global _erp_client
    if _erp_client is None:
        settings = get_settings()
        if settings.erp_adapter == "fake":
            from erp.client.fake_adapter import FakeErpClient

            _erp_client = FakeErpClient()
        elif settings.erp_adapter == "odoo":
            from erp.client.odoo_adapter import OdooXmlRpcClient

            _erp_client = OdooXmlRpcClient(
                url=settings.erp_url,
                db=settings.erp_db,
                username=settings.erp_username,
                password=settings.erp_password,
                timeout=settings.http_timeout_seconds,
            )
        else:
            raise ValueError(f"Unknown ERP adapter: {settings.erp_adapter}")
    return _erp_client


def set_erp_client(client: ErpClient) -> None:
    global _erp_client
    _erp_client = client


def reset_erp_client() -> None:
    global _erp_client
    _erp_client = None
