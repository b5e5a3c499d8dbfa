"""
Row store gateway for rowstore.

Wraps the remote SQL engine's HTTP pipeline endpoint behind a single
`execute(sql, params)` capability. Each call is one stateless POST carrying a
statement envelope; the response's column/row-tuple arrays are reshaped into
one column-keyed mapping per row.

The gateway memoizes its `httpx.AsyncClient` so repeated calls within a
process reuse the same connection pool and configuration. It never retries:
callers decide (the ingestion pipeline does, the search service does not).
"""

from __future__ import annotations

import time
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

import httpx

from rowstore.config import (
    ConfigProvider,
    Settings,
    StoreConfig,
    default_providers,
    get_settings,
    resolve_store_config,
)
from rowstore.domain.models import QueryResult
from rowstore.errors import RemoteQueryError, TransportError
from rowstore.utils.logging import get_logger

log = get_logger(__name__)

_SCHEME_MAP = {
    "libsql://": "https://",
    "wss://": "https://",
    "ws://": "http://",
}


@runtime_checkable
class QueryExecutor(Protocol):
    """
    Capability shared by the gateway and its test doubles.

    Implementations run one parameterized statement and return its rows.
    """

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        ...


def normalize_endpoint(url: str) -> str:
    """
    Rewrite native wire schemes to their HTTP equivalents.

    Only text-based HTTP requests are available to the caller, so
    `libsql://host` becomes `https://host`. HTTP(S) URLs pass through.
    """
    url = url.strip()
    for native, http in _SCHEME_MAP.items():
        if url.startswith(native):
            url = http + url[len(native) :]
            break
    return url.rstrip("/")


def _statement_verb(sql: str) -> str:
    head = sql.lstrip().split(None, 1)
    return head[0].upper() if head else ""


def parse_response(payload: Any) -> QueryResult:
    """
    Turn a pipeline response body into a QueryResult.

    The body is a JSON array; element 0 holds either `error` or `results`
    with parallel `columns` and `rows`. Values are looked up by column name,
    so the caller never depends on positional column order.
    """
    if not isinstance(payload, list) or not payload:
        raise TransportError(f"Unexpected store response shape: {type(payload).__name__}")

    result = payload[0]
    if not isinstance(result, dict):
        raise TransportError("Unexpected store response: first element is not an object")

    error = result.get("error")
    if error:
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise RemoteQueryError(message or "Unknown store error")

    results = result.get("results") or {}
    columns = list(results.get("columns") or [])
    rows = [dict(zip(columns, values)) for values in results.get("rows") or []]
    return QueryResult(columns=columns, rows=rows)


class StoreGateway:
    """
    HTTP gateway to the remote SQL engine.

    Parameters
    ----------
    config : StoreConfig
        Endpoint URL (any supported scheme) and bearer credential.
    timeout_seconds : float
        Per-request timeout handed to httpx.
    transport : httpx.AsyncBaseTransport, optional
        Custom transport, e.g. `httpx.MockTransport` in tests.
    """

    def __init__(
        self,
        config: StoreConfig,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.endpoint = normalize_endpoint(config.url)
        self._token = config.auth_token
        self._timeout = timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        providers: Optional[Sequence[ConfigProvider]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "StoreGateway":
        """
        Build a gateway from the provider chain.

        Raises ConfigurationError when no provider supplies both settings.
        """
        settings = settings or get_settings()
        if providers is None:
            providers = default_providers(settings)
        config = resolve_store_config(providers)
        return cls(config, timeout_seconds=settings.request_timeout_seconds, transport=transport)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        """
        Run one statement and return its rows.

        Raises
        ------
        TransportError
            Network failure, timeout, non-2xx status or malformed body.
        RemoteQueryError
            The engine rejected the statement.
        """
        body = {"statements": [{"q": sql, "params": list(params)}]}
        start = time.perf_counter()
        try:
            response = await self._get_client().post(self.endpoint, json=body)
        except httpx.HTTPError as exc:
            raise TransportError(f"Store request failed: {exc.__class__.__name__}: {exc}") from exc

        if response.is_error:
            raise TransportError(
                f"Store HTTP error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError(
                "Store returned a non-JSON body", status_code=response.status_code
            ) from exc

        result = parse_response(payload)
        log.debug(
            "Store statement executed",
            extra={
                "verb": _statement_verb(sql),
                "params": len(body["statements"][0]["params"]),
                "rows": len(result.rows),
                "elapsed_ms": round((time.perf_counter() - start) * 1000, 1),
            },
        )
        return result

    async def aclose(self) -> None:
        """Close the memoized HTTP client, if one was opened."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "StoreGateway":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


__all__ = [
    "QueryExecutor",
    "StoreGateway",
    "normalize_endpoint",
    "parse_response",
]
