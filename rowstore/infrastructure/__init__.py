"""
Infrastructure package for rowstore.

Centralizes remote-store connectivity: the HTTP gateway and the bootstrap
schema. Keep this layer focused on I/O, decoupled from search and ingestion
logic.
"""

from rowstore.infrastructure.gateway import (
    QueryExecutor,
    StoreGateway,
    normalize_endpoint,
    parse_response,
)
from rowstore.infrastructure.schema import TABLE_NAME, ensure_schema

__all__ = [
    "QueryExecutor",
    "StoreGateway",
    "normalize_endpoint",
    "parse_response",
    "TABLE_NAME",
    "ensure_schema",
]
