"""
Record collaborators: the persistence boundary.

The services only talk to something shaped like RecordCollaborator. Two
implementations live here:

- InMemoryRecordStore: a single table kept in memory, optionally mirrored
  to a JSON file (used by the CLI and the tests)
- HttpRecordClient: a hosted records REST API reached through an httpx
  client that the caller creates and passes in

Filters and ordering use the hosted API's shapes:

    filters  = [{"fieldName": "status", "operator": "ExactMatch", "values": ["paid"]}]
    order_by = [{"field": "issueDate", "direction": "DESC"}]
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

import httpx

from .exceptions import RecordNotFoundError, RecordStoreError

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
Filters = Optional[Sequence[Dict[str, Any]]]
OrderBy = Optional[Sequence[Dict[str, str]]]

ID_FIELD = "Id"


class RecordCollaborator(Protocol):
    """What the services need from a table of records."""

    def list(self, filters: Filters = None, order_by: OrderBy = None) -> List[Record]: ...

    def get_by_id(self, record_id: str) -> Optional[Record]: ...

    def create(self, fields: Record) -> Record: ...

    def create_many(self, records: Sequence[Record]) -> List[Record]: ...

    def update(self, record_id: str, fields: Record) -> Record: ...

    def delete(self, record_ids: Union[str, Sequence[str]]) -> bool: ...


def _as_id_list(record_ids: Union[str, Sequence[str]]) -> List[str]:
    if isinstance(record_ids, (str, int)):
        return [str(record_ids)]
    return [str(rid) for rid in record_ids]


# ----------------------------------------------------------------------
# In-memory / JSON file store
# ----------------------------------------------------------------------
class InMemoryRecordStore:
    """
    One table of records kept in a dict.

    When `path` is given the table is loaded from and written back to a
    JSON file holding every table ({"invoice": {...}, "invoice_item": {...}}).
    Only this store's own table is rewritten on save.
    """

    def __init__(self, table: str, path: Optional[Union[str, Path]] = None):
        self.table = table
        self.path = Path(path) if path else None
        self._records: Dict[str, Record] = {}
        self._next_id = 1

        if self.path and self.path.exists():
            self._load()

    # -- persistence ----------------------------------------------------
    def _read_file(self) -> Dict[str, Any]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise RecordStoreError(f"Cannot read data file {self.path}: {exc}") from exc

    def _load(self) -> None:
        table = self._read_file().get(self.table, {})
        for record in table.get("records", []):
            self._records[str(record[ID_FIELD])] = record
        self._next_id = table.get("next_id", len(self._records) + 1)

    def _save(self) -> None:
        if not self.path:
            return
        data = self._read_file() if self.path.exists() else {}
        data[self.table] = {
            "next_id": self._next_id,
            "records": list(self._records.values()),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)

    # -- queries ----------------------------------------------------------
    @staticmethod
    def _matches(record: Record, condition: Dict[str, Any]) -> bool:
        value = record.get(condition["fieldName"])
        wanted = condition.get("values", [])
        operator = condition.get("operator", "ExactMatch")

        if operator == "ExactMatch":
            return any(value == w or str(value) == str(w) for w in wanted)
        if operator == "Contains":
            text = "" if value is None else str(value).lower()
            return any(str(w).lower() in text for w in wanted)
        raise RecordStoreError(f"Unsupported filter operator: {operator}")

    def list(self, filters: Filters = None, order_by: OrderBy = None) -> List[Record]:
        rows = [
            dict(r)
            for r in self._records.values()
            if all(self._matches(r, c) for c in (filters or []))
        ]
        # stable sort, least significant key first
        for order in reversed(list(order_by or [])):
            field = order["field"]
            rows.sort(
                key=lambda r: (r.get(field) is not None, "" if r.get(field) is None else r.get(field)),
                reverse=order.get("direction", "ASC").upper() == "DESC",
            )
        return rows

    def get_by_id(self, record_id: str) -> Optional[Record]:
        record = self._records.get(str(record_id))
        return dict(record) if record is not None else None

    # -- writes -----------------------------------------------------------
    def _insert(self, fields: Record) -> Record:
        record = {k: v for k, v in fields.items() if k != ID_FIELD}
        record[ID_FIELD] = str(self._next_id)
        self._next_id += 1
        self._records[record[ID_FIELD]] = record
        return dict(record)

    def create(self, fields: Record) -> Record:
        record = self._insert(fields)
        self._save()
        return record

    def create_many(self, records: Sequence[Record]) -> List[Record]:
        created = [self._insert(fields) for fields in records]
        if created:
            self._save()
        return created

    def update(self, record_id: str, fields: Record) -> Record:
        record_id = str(record_id)
        if record_id not in self._records:
            raise RecordNotFoundError(f"{self.table} record {record_id} does not exist")

        changes = {k: v for k, v in fields.items() if k != ID_FIELD}
        self._records[record_id].update(changes)
        self._save()
        return dict(self._records[record_id])

    def delete(self, record_ids: Union[str, Sequence[str]]) -> bool:
        ids = _as_id_list(record_ids)
        missing = [rid for rid in ids if rid not in self._records]
        if missing:
            raise RecordNotFoundError(
                f"{self.table} record(s) {', '.join(missing)} do not exist"
            )

        for rid in ids:
            del self._records[rid]
        self._save()
        return True


# ----------------------------------------------------------------------
# Hosted records API
# ----------------------------------------------------------------------
class HttpRecordClient:
    """
    Collaborator backed by the hosted records REST API.

    The httpx.Client is passed in (base_url, auth headers and timeout are
    configured by whoever builds it, see build_http_client).
    """

    def __init__(self, http: httpx.Client, table: str):
        self.http = http
        self.table = table

    @property
    def _path(self) -> str:
        return f"/tables/{self.table}/records"

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self.http.request(method, url, **kwargs)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                raise RecordNotFoundError(f"{self.table}: {url} not found") from exc
            raise RecordStoreError(
                f"{method} {url} returned {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise RecordStoreError(f"{method} {url} failed: {exc}") from exc

        if not isinstance(payload, dict) or not payload.get("success", False):
            message = payload.get("message") if isinstance(payload, dict) else None
            raise RecordStoreError(message or f"{method} {url} was not successful")
        return payload

    @staticmethod
    def _results(payload: Dict[str, Any]) -> List[Record]:
        """Unpack a bulk response, keeping only the rows that succeeded."""
        results = payload.get("results") or []
        failed = [r for r in results if not r.get("success")]
        for r in failed:
            logger.warning("Record write rejected: %s", r.get("message", "no message"))
        if results and len(failed) == len(results):
            raise RecordStoreError("All records in the request were rejected")
        return [r["data"] for r in results if r.get("success")]

    def list(self, filters: Filters = None, order_by: OrderBy = None) -> List[Record]:
        params: Dict[str, str] = {}
        if filters:
            params["where"] = json.dumps(list(filters))
        if order_by:
            params["orderBy"] = json.dumps(list(order_by))
        payload = self._request("GET", self._path, params=params)
        return payload.get("data") or []

    def get_by_id(self, record_id: str) -> Optional[Record]:
        try:
            payload = self._request("GET", f"{self._path}/{record_id}")
        except RecordNotFoundError:
            return None
        return payload.get("data")

    def create(self, fields: Record) -> Record:
        created = self.create_many([fields])
        if not created:
            raise RecordStoreError(f"Failed to create {self.table} record")
        return created[0]

    def create_many(self, records: Sequence[Record]) -> List[Record]:
        if not records:
            return []
        payload = self._request("POST", self._path, json={"records": list(records)})
        return self._results(payload)

    def update(self, record_id: str, fields: Record) -> Record:
        body = {"records": [{**fields, ID_FIELD: record_id}]}
        updated = self._results(self._request("PATCH", self._path, json=body))
        if not updated:
            raise RecordStoreError(f"Failed to update {self.table} record {record_id}")
        return updated[0]

    def delete(self, record_ids: Union[str, Sequence[str]]) -> bool:
        body = {"RecordIds": _as_id_list(record_ids)}
        self._request("DELETE", self._path, json=body)
        return True


def build_http_client(
    base_url: str,
    api_key: Optional[str] = None,
    project_id: Optional[str] = None,
    timeout: float = 10.0,
) -> httpx.Client:
    """Create the shared httpx client for the hosted records API."""
    headers = {"Accept": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    if project_id:
        headers["X-Project-Id"] = project_id
    return httpx.Client(base_url=base_url, headers=headers, timeout=timeout)
