"""ERP client port: the subset of Odoo's external API the bridge relies on.

Domains use Odoo's list-of-triples syntax, e.g. ``[["email", "=", "a@b.c"]]``.
"""

from abc import ABC, abstractmethod


class ErpError(Exception):
    """Authentication, transport or remote fault while talking to the ERP."""


class ErpClient(ABC):
    @abstractmethod
    def authenticate(self) -> int:
        """Return the ERP user id, raising ErpError when credentials are rejected."""
        ...

    @abstractmethod
    def search_read(
        self,
        model: str,
        domain: list,
        fields: list[str] | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        ...

    @abstractmethod
    def create(self, model: str, values: dict) -> int:
        ...

    @abstractmethod
    def write(self, model: str, ids: list[int], values: dict) -> bool:
        ...
