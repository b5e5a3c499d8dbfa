"""
Bootstrap DDL for the `users` table.

The statements are idempotent (`IF NOT EXISTS`), so the seeder can run them
before every load. The name/email indexes help prefix-style matching only;
substring search may still scan.
"""

from __future__ import annotations

from typing import Tuple

from rowstore.infrastructure.gateway import QueryExecutor
from rowstore.utils.logging import get_logger

log = get_logger(__name__)

TABLE_NAME = "users"

SCHEMA_STATEMENTS: Tuple[str, ...] = (
    f"""CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
    id TEXT PRIMARY KEY,
    name TEXT,
    email TEXT,
    role TEXT,
    department TEXT,
    status TEXT,
    location TEXT,
    salary INTEGER,
    bio TEXT
)""",
    f"CREATE INDEX IF NOT EXISTS idx_users_name ON {TABLE_NAME}(name)",
    f"CREATE INDEX IF NOT EXISTS idx_users_email ON {TABLE_NAME}(email)",
)


async def ensure_schema(gateway: QueryExecutor) -> None:
    """Create the table and its search indexes if they are missing."""
    for statement in SCHEMA_STATEMENTS:
        await gateway.execute(statement)
    log.info("Schema ready", extra={"table": TABLE_NAME})


__all__ = ["TABLE_NAME", "SCHEMA_STATEMENTS", "ensure_schema"]
