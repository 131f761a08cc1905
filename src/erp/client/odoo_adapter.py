"""Odoo adapter over XML-RPC.

Authenticates against ``/xmlrpc/2/common`` and calls model methods through
``/xmlrpc/2/object`` ``execute_kw``. Every call carries a socket timeout so
a hung ERP cannot block a worker indefinitely.
"""

import xmlrpc.client

import structlog

from erp.client.port import ErpClient, ErpError

logger = structlog.get_logger(__name__)


class _TimeoutTransport(xmlrpc.client.Transport):
    def __init__(self, timeout: float):
        super().__init__()
        self.timeout = timeout

    def make_connection(self, host):
        connection = super().make_connection(host)
        connection.timeout = self.timeout
        return connection


class _SafeTimeoutTransport(xmlrpc.client.SafeTransport):
    def __init__(self, timeout: float):
        super().__init__()
        self.timeout = timeout

    def make_connection(self, host):
        connection = super().make_connection(host)
        connection.timeout = self.timeout
        return connection


class OdooXmlRpcClient(ErpClient):
    def __init__(self, url: str, db: str, username: str, password: str, timeout: float = 10.0):
        if not all([url, db, username, password]):
            raise ErpError("ERP configuration incomplete: ERP_URL, ERP_DB, ERP_USERNAME and ERP_PASSWORD are required")
        self.url = url.rstrip("/")
        self.db = db
        self.username = username
        self.password = password
        self.timeout = timeout
        self._uid: int | None = None

    def _proxy(self, endpoint: str) -> xmlrpc.client.ServerProxy:
        transport_cls = _SafeTimeoutTransport if self.url.startswith("https") else _TimeoutTransport
        return xmlrpc.client.ServerProxy(
            f"{self.url}/xmlrpc/2/{endpoint}",
            transport=transport_cls(self.timeout),
            allow_none=True,
        )

    def authenticate(self) -> int:
        if self._uid is not None:
            return self._uid
        try:
            uid = self._proxy("common").authenticate(self.db, self.username, self.password, {})
        except (xmlrpc.client.Error, OSError) as exc:
            raise ErpError(f"ERP authentication call failed: {exc}") from exc
        if not uid:
            raise ErpError("ERP authentication failed")
        self._uid = uid
        logger.debug("Authenticated with ERP", url=self.url, db=self.db, uid=uid)
        return uid

    def _execute(self, model: str, method: str, args: list, kwargs: dict | None = None):
        uid = self.authenticate()
        try:
            return self._proxy("object").execute_kw(self.db, uid, self.password, model, method, args, kwargs or {})
        except (xmlrpc.client.Error, OSError) as exc:
            raise ErpError(f"ERP call {model}.{method} failed: {exc}") from exc

    def search_read(
        self,
        model: str,
        domain: list,
        fields: list[str] | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        kwargs = {}
        if fields:
            kwargs["fields"] = fields
        if limit:
            kwargs["limit"] = limit
        return self._execute(model, "search_read", [domain], kwargs)

    def create(self, model: str, values: dict) -> int:
        return self._execute(model, "create", [values])

    def write(self, model: str, ids: list[int], values: dict) -> bool:
        return self._execute(model, "write", [ids, values])
