"""
Pytest configuration for rowstore.

Provides fixtures for:
- An in-process stand-in for the remote SQL engine: an `httpx.MockTransport`
  that speaks the store's HTTP pipeline protocol and executes statements on an
  in-memory SQLite database
- A real StoreGateway wired to that transport
- Settings overrides for tests
"""

from __future__ import annotations

import json
import sqlite3
from typing import Any, AsyncIterator, Callable, Iterator, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio

from rowstore.config import Settings, StoreConfig
from rowstore.domain.models import RECORD_COLUMNS, Record
from rowstore.infrastructure.gateway import StoreGateway
from rowstore.infrastructure.schema import SCHEMA_STATEMENTS

TEST_URL = "libsql://rowstore-test.example.io"
TEST_TOKEN = "test-token"

FailHook = Callable[[str, List[Any]], Optional[httpx.Response]]


class FakeStore:
    """
    Minimal remote engine double.

    Every POST is decoded as `{statements: [{q, params}]}`, run against SQLite,
    and answered with `[{results: {columns, rows}}]` or `[{error: {message}}]`.
    `fail_hook` may return a canned response to inject failures.
    """

    def __init__(self) -> None:
        self.conn = sqlite3.connect(":memory:", check_same_thread=False)
        for statement in SCHEMA_STATEMENTS:
            self.conn.execute(statement)
        self.statements: List[Tuple[str, List[Any]]] = []
        self.requests: List[httpx.Request] = []
        self.fail_hook: Optional[FailHook] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = json.loads(request.content)
        statement = body["statements"][0]
        sql, params = statement["q"], statement.get("params", [])
        self.statements.append((sql, params))

        if self.fail_hook is not None:
            injected = self.fail_hook(sql, params)
            if injected is not None:
                return injected

        try:
            cursor = self.conn.execute(sql, params)
            rows = cursor.fetchall()
            self.conn.commit()
        except sqlite3.Error as exc:
            return httpx.Response(200, json=[{"error": {"message": str(exc)}}])

        columns = [d[0] for d in cursor.description] if cursor.description else []
        return httpx.Response(
            200,
            json=[{"results": {"columns": columns, "rows": [list(row) for row in rows]}}],
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def insert(self, records: List[Record]) -> None:
        placeholders = ", ".join("?" for _ in RECORD_COLUMNS)
        self.conn.executemany(
            f"INSERT OR REPLACE INTO users ({', '.join(RECORD_COLUMNS)}) VALUES ({placeholders})",
            [record.as_params() for record in records],
        )
        self.conn.commit()

    def count(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]

    def ids(self) -> List[str]:
        return [row[0] for row in self.conn.execute("SELECT id FROM users ORDER BY id")]

    def row(self, record_id: str) -> Optional[dict]:
        cursor = self.conn.execute(
            f"SELECT {', '.join(RECORD_COLUMNS)} FROM users WHERE id = ?", [record_id]
        )
        found = cursor.fetchone()
        return dict(zip(RECORD_COLUMNS, found)) if found else None

    def upsert_count(self) -> int:
        return sum(1 for sql, _ in self.statements if sql.startswith("INSERT OR REPLACE"))


def make_record(index: int, **overrides: Any) -> Record:
    values = {
        "id": f"usr_{index:07d}",
        "name": f"User {index}",
        "email": f"user{index}@example.com",
        "role": "Engineer",
        "department": "Engineering",
        "status": "active",
        "location": "Remote",
        "salary": 50_000 + index,
        "bio": f"Bio for user {index}.",
    }
    values.update(overrides)
    return Record(**values)


@pytest.fixture
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Store credentials point at the fake engine; backoff is zero so retry
    tests do not sleep.
    """
    return Settings(
        TURSO_DATABASE_URL=TEST_URL,
        TURSO_AUTH_TOKEN=TEST_TOKEN,
        INGEST_BACKOFF_SECONDS=0.0,
        DEFAULT_PAGE_SIZE=50,
        MAX_PAGE_SIZE=500,
        SEARCH_CASE_SENSITIVE=False,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def fake_store() -> Iterator[FakeStore]:
    store = FakeStore()
    yield store
    store.conn.close()


@pytest.fixture
def records() -> List[Record]:
    return [make_record(i) for i in range(1, 11)]


@pytest.fixture
def store_config() -> StoreConfig:
    return StoreConfig(url=TEST_URL, auth_token=TEST_TOKEN)


@pytest_asyncio.fixture
async def gateway(fake_store: FakeStore, store_config: StoreConfig) -> AsyncIterator[StoreGateway]:
    """A real StoreGateway talking to the fake engine."""
    gw = StoreGateway(
        store_config,
        timeout_seconds=5.0,
        transport=fake_store.transport(),
    )
    yield gw
    await gw.aclose()


@pytest.fixture
def record_factory() -> Callable[..., Record]:
    """Build a Record with sensible defaults: `record_factory(3, name="Alice")`."""
    return make_record
