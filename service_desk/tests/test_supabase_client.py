"""Tests for the read-only PostgREST client (no network: httpx.MockTransport)."""

from __future__ import annotations

import httpx
import pytest

from service_desk import supabase_client as client_module
from service_desk.config import SupabaseConfig
from service_desk.supabase_client import READ_ONLY_OPERATIONS, ReadOnlySupabaseClient

CFG = SupabaseConfig(url="https://example.supabase.co", api_key="anon-key")


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(client_module, "sleep", lambda _s: None)


def make_client(handler, retries=3):
    return ReadOnlySupabaseClient(retries=retries, transport=httpx.MockTransport(handler))


class TestRequest:
    def test_unknown_operation_rejected_before_request(self):
        calls = []
        client = make_client(lambda request: calls.append(request) or httpx.Response(200, json=[]))
        with pytest.raises(ValueError, match="not allowed"):
            client._request(operation="payments", cfg=CFG)
        assert calls == []

    def test_only_reads_whitelisted(self):
        assert {op.method for op in READ_ONLY_OPERATIONS.values()} == {"GET"}

    def test_headers_and_path(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["apikey"] = request.headers["apikey"]
            seen["auth"] = request.headers["authorization"]
            return httpx.Response(200, json=[])

        make_client(handler).fetch_work_schedules(CFG)
        assert seen == {
            "path": "/rest/v1/work_schedules",
            "apikey": "anon-key",
            "auth": "Bearer anon-key",
        }

    def test_retries_server_errors(self):
        responses = iter([httpx.Response(503), httpx.Response(502), httpx.Response(200, json=[{"user_id": "T-1"}])])
        client = make_client(lambda request: next(responses))
        assert client.fetch_technicians(CFG) == [{"user_id": "T-1"}]

    def test_client_error_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, json={"message": "bad key"})

        with pytest.raises(httpx.HTTPStatusError):
            make_client(handler).fetch_technicians(CFG)
        assert len(calls) == 1

    def test_connect_error_raised_after_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(httpx.ConnectError):
            make_client(handler, retries=2).fetch_technicians(CFG)
        assert len(calls) == 2


class TestFetch:
    def test_open_orders_filter(self):
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(200, json=[
                {"id": "O-1", "status": "en_proceso"},
                {"id": "O-2", "status": "finalizada"},
            ])

        rows = make_client(handler).fetch_open_orders(CFG)
        assert [r["id"] for r in rows] == ["O-1"]
        assert seen["status"].startswith("in.(pendiente_aprobacion,")
        assert seen["deleted_at"] == "is.null"

    def test_items_skip_request_without_ids(self):
        calls = []
        client = make_client(lambda request: calls.append(request) or httpx.Response(200, json=[]))
        assert client.fetch_order_items(CFG, []) == []
        assert calls == []

    def test_items_filtered_by_order(self):
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(200, json=[])

        make_client(handler).fetch_order_items(CFG, ["O-1", "O-2"])
        assert seen["order_id"] == "in.(O-1,O-2)"

    def test_snapshot_payload_survives_missing_support_table(self):
        def handler(request):
            table = request.url.path.rsplit("/", 1)[-1]
            if table == "order_support_technicians":
                return httpx.Response(404, json={"message": "relation does not exist"})
            if table == "orders":
                return httpx.Response(200, json=[{"id": "O-1", "status": "pendiente"}])
            return httpx.Response(200, json=[])

        payload = make_client(handler).fetch_snapshot_payload(CFG)
        assert payload["support_technicians"] == []
        assert [o["id"] for o in payload["orders"]] == ["O-1"]
        assert set(payload) == {"orders", "order_items", "work_schedules", "technicians", "support_technicians"}
