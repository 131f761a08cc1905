"""In-memory ERP for development and tests.

Stores records per model and understands the domain operators the bridge
uses (``=``, ``!=``, ``in``). Records every call so tests can assert how
many remote writes happened.
"""

from copy import deepcopy

from erp.client.port import ErpClient, ErpError


def _matches(record: dict, domain: list) -> bool:
    for field, operator, value in domain:
        current = record.get(field)
        if isinstance(current, list | tuple) and current and field.endswith("_id"):
            current = current[0]
        if operator == "=" and current != value:
            return False
        if operator == "!=" and current == value:
            return False
        if operator == "in" and current not in value:
            return False
    return True


class FakeErpClient(ErpClient):
    def __init__(self):
        self.models: dict[str, dict[int, dict]] = {}
        self.calls: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "ERP unavailable"
        self.failing_models: set[str] = set()
        self._next_id = 1

    def configure(self, should_succeed: bool = True, failure_reason: str = "ERP unavailable"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def _check(self, model: str | None = None) -> None:
        if not self.should_succeed or (model and model in self.failing_models):
            raise ErpError(self.failure_reason)

    def seed(self, model: str, values: dict) -> int:
        """Insert a record directly, without recording a call."""
        record_id = values.get("id") or self._next_id
        self._next_id = max(self._next_id, record_id) + 1
        self.models.setdefault(model, {})[record_id] = {**values, "id": record_id}
        return record_id

    def records(self, model: str) -> list[dict]:
        return [deepcopy(r) for r in self.models.get(model, {}).values()]

    def authenticate(self) -> int:
        self.calls.append({"method": "authenticate"})
        self._check()
        return 1

    def search_read(
        self,
        model: str,
        domain: list,
        fields: list[str] | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        self.calls.append({"method": "search_read", "model": model, "domain": domain})
        self._check(model)
        found = [r for r in self.models.get(model, {}).values() if _matches(r, domain)]
        if limit:
            found = found[:limit]
        if fields:
            return [{"id": r["id"], **{f: deepcopy(r.get(f, False)) for f in fields}} for r in found]
        return [deepcopy(r) for r in found]

    def create(self, model: str, values: dict) -> int:
        self.calls.append({"method": "create", "model": model, "values": deepcopy(values)})
        self._check(model)
        return self.seed(model, deepcopy(values))

    def write(self, model: str, ids: list[int], values: dict) -> bool:
        self.calls.append({"method": "write", "model": model, "ids": ids, "values": deepcopy(values)})
        self._check(model)
        for record_id in ids:
            self.models.setdefault(model, {}).setdefault(record_id, {"id": record_id}).update(values)
        return True

    def calls_to(self, method: str, model: str | None = None) -> list[dict]:
        return [c for c in self.calls if c["method"] == method and (model is None or c.get("model") == model)]
