from __future__ import annotations

import json

import httpx
import pytest

from rowstore.config import Settings, StoreConfig
from rowstore.errors import ConfigurationError, RemoteQueryError, TransportError
from rowstore.infrastructure.gateway import (
    QueryExecutor,
    StoreGateway,
    normalize_endpoint,
    parse_response,
)
from rowstore.infrastructure.schema import ensure_schema

EXPECTED_USERS = 3


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("libsql://db-org.turso.io", "https://db-org.turso.io"),
        ("wss://db-org.turso.io/", "https://db-org.turso.io"),
        ("ws://localhost:8080", "http://localhost:8080"),
        ("https://db-org.turso.io", "https://db-org.turso.io"),
        ("http://127.0.0.1:8080/", "http://127.0.0.1:8080"),
    ],
)
def test_normalize_endpoint(raw: str, expected: str) -> None:
    assert normalize_endpoint(raw) == expected


def test_parse_response_maps_rows_by_column_name() -> None:
    payload = [
        {
            "results": {
                "columns": ["email", "id", "name"],
                "rows": [["a@x.com", "usr_1", "Alice"], ["b@x.com", "usr_2", "Bob"]],
            }
        }
    ]

    result = parse_response(payload)

    assert result.columns == ["email", "id", "name"]
    assert result.rows[0] == {"id": "usr_1", "name": "Alice", "email": "a@x.com"}
    assert result.rows[1]["name"] == "Bob"


def test_parse_response_raises_remote_error_with_engine_message() -> None:
    with pytest.raises(RemoteQueryError, match="no such table: users"):
        parse_response([{"error": {"message": "no such table: users"}}])


def test_parse_response_without_results_is_empty() -> None:
    result = parse_response([{"results": None}])
    assert result.rows == []
    assert result.columns == []


@pytest.mark.parametrize("payload", [{}, [], "oops", [42]])
def test_parse_response_rejects_unexpected_shapes(payload) -> None:
    with pytest.raises(TransportError):
        parse_response(payload)


def test_store_gateway_satisfies_query_executor() -> None:
    gw = StoreGateway(StoreConfig(url="libsql://x", auth_token="t"))
    assert isinstance(gw, QueryExecutor)


def test_from_settings_without_configuration_fails() -> None:
    settings = Settings(TURSO_DATABASE_URL=None, TURSO_AUTH_TOKEN=None)
    with pytest.raises(ConfigurationError):
        StoreGateway.from_settings(settings)


def test_from_settings_normalizes_endpoint(test_settings: Settings) -> None:
    gw = StoreGateway.from_settings(test_settings)
    assert gw.endpoint == "https://rowstore-test.example.io"


@pytest.mark.asyncio
async def test_execute_posts_statement_envelope_with_bearer_token(gateway, fake_store) -> None:
    await gateway.execute("SELECT id FROM users WHERE id > ?", ["usr_0"])

    request = fake_store.requests[-1]
    assert request.method == "POST"
    assert request.url.scheme == "https"
    assert request.url.host == "rowstore-test.example.io"
    assert request.headers["Authorization"] == "Bearer test-token"
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(request.content) == {
        "statements": [{"q": "SELECT id FROM users WHERE id > ?", "params": ["usr_0"]}]
    }


@pytest.mark.asyncio
async def test_execute_returns_rows_as_mappings(gateway, fake_store, record_factory) -> None:
    fake_store.insert([record_factory(i) for i in range(1, EXPECTED_USERS + 1)])

    result = await gateway.execute("SELECT name, id FROM users ORDER BY id")

    assert len(result.rows) == EXPECTED_USERS
    assert result.rows[0] == {"name": "User 1", "id": "usr_0000001"}


@pytest.mark.asyncio
async def test_execute_surfaces_engine_errors(gateway) -> None:
    with pytest.raises(RemoteQueryError, match="no such table"):
        await gateway.execute("SELECT * FROM missing_table")


@pytest.mark.asyncio
async def test_execute_maps_http_errors_to_transport_error(gateway, fake_store) -> None:
    fake_store.fail_hook = lambda sql, params: httpx.Response(503, text="overloaded")

    with pytest.raises(TransportError, match="503") as excinfo:
        await gateway.execute("SELECT 1")

    assert excinfo.value.status_code == 503


@pytest.mark.asyncio
async def test_execute_maps_network_errors_to_transport_error() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    gw = StoreGateway(
        StoreConfig(url="libsql://down.example", auth_token="t"),
        transport=httpx.MockTransport(refuse),
    )
    try:
        with pytest.raises(TransportError, match="ConnectError"):
            await gw.execute("SELECT 1")
    finally:
        await gw.aclose()


@pytest.mark.asyncio
async def test_execute_rejects_non_json_body(gateway, fake_store) -> None:
    fake_store.fail_hook = lambda sql, params: httpx.Response(200, text="<html>")

    with pytest.raises(TransportError, match="non-JSON"):
        await gateway.execute("SELECT 1")


@pytest.mark.asyncio
async def test_client_is_memoized_across_calls(gateway) -> None:
    await gateway.execute("SELECT 1")
    first = gateway._client
    await gateway.execute("SELECT 2")

    assert first is not None
    assert gateway._client is first

    await gateway.aclose()
    assert gateway._client is None


@pytest.mark.asyncio
async def test_ensure_schema_is_idempotent(gateway, fake_store) -> None:
    await ensure_schema(gateway)
    await ensure_schema(gateway)

    indexes = {
        row[0]
        for row in fake_store.conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'index' AND tbl_name = 'users'"
        )
    }
    assert {"idx_users_name", "idx_users_email"} <= indexes
