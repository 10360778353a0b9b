"""Tests for the in-memory store and the hosted records API client."""

import json

import httpx
import pytest

from invoice_desk.exceptions import RecordNotFoundError, RecordStoreError
from invoice_desk.records import HttpRecordClient, InMemoryRecordStore, build_http_client


# ---------------------------------------------------------------------------
# InMemoryRecordStore
# ---------------------------------------------------------------------------

def test_create_assigns_ids_and_echoes_record():
    store = InMemoryRecordStore("invoice")
    first = store.create({"clientName": "Acme"})
    second = store.create({"clientName": "Globex", "Id": "ignored"})

    assert first == {"clientName": "Acme", "Id": "1"}
    assert second["Id"] == "2"
    assert store.get_by_id("2")["clientName"] == "Globex"


def test_get_by_id_missing_returns_none():
    assert InMemoryRecordStore("invoice").get_by_id("42") is None


def test_filters_and_ordering():
    store = InMemoryRecordStore("invoice")
    store.create_many(
        [
            {"clientName": "Acme Studio", "status": "paid", "issueDate": "2026-09-01"},
            {"clientName": "Globex", "status": "draft", "issueDate": "2026-10-10"},
            {"clientName": "acme labs", "status": "draft", "issueDate": "2026-10-01"},
        ]
    )

    drafts = store.list(filters=[{"fieldName": "status", "operator": "ExactMatch", "values": ["draft"]}])
    assert {r["clientName"] for r in drafts} == {"Globex", "acme labs"}

    acme = store.list(filters=[{"fieldName": "clientName", "operator": "Contains", "values": ["ACME"]}])
    assert len(acme) == 2

    newest_first = store.list(order_by=[{"field": "issueDate", "direction": "DESC"}])
    assert [r["issueDate"] for r in newest_first] == ["2026-10-10", "2026-10-01", "2026-09-01"]


def test_update_merges_fields():
    store = InMemoryRecordStore("invoice")
    record = store.create({"status": "draft", "total": 10})
    updated = store.update(record["Id"], {"status": "sent"})
    assert updated == {"status": "sent", "total": 10, "Id": record["Id"]}


def test_update_unknown_id():
    with pytest.raises(RecordNotFoundError):
        InMemoryRecordStore("invoice").update("9", {"status": "sent"})


def test_delete_unknown_id_leaves_records_alone():
    store = InMemoryRecordStore("invoice")
    store.create({"n": 1})
    store.create({"n": 2})

    with pytest.raises(RecordNotFoundError):
        store.delete(["1", "99"])
    assert len(store.list()) == 2

    assert store.delete("1") is True
    with pytest.raises(RecordNotFoundError):
        store.delete("1")
    assert [r["n"] for r in store.list()] == [2]


def test_json_file_persistence(tmp_path):
    path = tmp_path / "data.json"
    invoices = InMemoryRecordStore("invoice", path)
    items = InMemoryRecordStore("invoice_item", path)
    invoices.create({"clientName": "Acme"})
    items.create_many([{"description": "Design", "invoice": "1"}])

    reloaded = InMemoryRecordStore("invoice", path)
    assert reloaded.get_by_id("1")["clientName"] == "Acme"
    assert reloaded.create({"clientName": "Next"})["Id"] == "2"

    data = json.loads(path.read_text(encoding="utf-8"))
    assert set(data) == {"invoice", "invoice_item"}


def test_corrupt_data_file(tmp_path):
    path = tmp_path / "data.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(RecordStoreError):
        InMemoryRecordStore("invoice", path)


# ---------------------------------------------------------------------------
# HttpRecordClient
# ---------------------------------------------------------------------------

def _client(handler) -> HttpRecordClient:
    http = httpx.Client(transport=httpx.MockTransport(handler), base_url="https://records.test")
    return HttpRecordClient(http, "invoice")


def test_http_list_sends_filters():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["where"] = json.loads(request.url.params["where"])
        return httpx.Response(200, json={"success": True, "data": [{"Id": 1, "status": "paid"}]})

    filters = [{"fieldName": "status", "operator": "ExactMatch", "values": ["paid"]}]
    rows = _client(handler).list(filters=filters)

    assert rows == [{"Id": 1, "status": "paid"}]
    assert seen == {"method": "GET", "path": "/tables/invoice/records", "where": filters}


def test_http_create_returns_persisted_record():
    def handler(request):
        body = json.loads(request.content)
        record = {**body["records"][0], "Id": 11}
        return httpx.Response(200, json={"success": True, "results": [{"success": True, "data": record}]})

    created = _client(handler).create({"clientName": "Acme"})
    assert created == {"clientName": "Acme", "Id": 11}


def test_http_bulk_create_skips_rejected_rows():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "success": True,
                "results": [
                    {"success": True, "data": {"Id": 1}},
                    {"success": False, "message": "description too long"},
                ],
            },
        )

    assert _client(handler).create_many([{"a": 1}, {"a": 2}]) == [{"Id": 1}]


def test_http_update_and_delete_bodies():
    bodies = []

    def handler(request):
        bodies.append((request.method, json.loads(request.content)))
        if request.method == "PATCH":
            return httpx.Response(200, json={"success": True, "results": [{"success": True, "data": {"Id": "5", "status": "sent"}}]})
        return httpx.Response(200, json={"success": True})

    client = _client(handler)
    assert client.update("5", {"status": "sent"}) == {"Id": "5", "status": "sent"}
    assert client.delete(["5", "6"]) is True

    assert bodies == [
        ("PATCH", {"records": [{"status": "sent", "Id": "5"}]}),
        ("DELETE", {"RecordIds": ["5", "6"]}),
    ]


def test_http_get_missing_record_returns_none():
    client = _client(lambda request: httpx.Response(404, json={"success": False}))
    assert client.get_by_id("3") is None


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(200, json={"success": False, "message": "quota exceeded"}),
        httpx.Response(200, text="<html>"),
    ],
)
def test_http_failures_raise_store_error(response):
    client = _client(lambda request: response)
    with pytest.raises(RecordStoreError):
        client.list()


def test_http_transport_error_raises_store_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RecordStoreError):
        _client(handler).delete("1")


def test_build_http_client_sets_auth_headers():
    http = build_http_client("https://records.test", api_key="k3y", project_id="p1", timeout=3)
    assert http.headers["Authorization"] == "Bearer k3y"
    assert http.headers["X-Project-Id"] == "p1"
    assert http.base_url.host == "records.test"
    http.close()
