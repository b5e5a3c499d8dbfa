"""
rowstore - cursor-paginated search and bulk loading over a remote SQL store.

This package exposes a large `users` table held in a remote SQL engine that is
reachable only through stateless HTTP requests:

- A row store gateway (`execute(sql, params)` over HTTP POST)
- A keyset-paginated search service with on-demand detail reads
- A bounded-concurrency batch ingestion pipeline with retry and backoff
- A FastAPI surface (`GET /data`, `GET /data/{id}`) and a typer CLI
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from rowstore.config import Settings, StoreConfig, get_settings, resolve_store_config
from rowstore.domain.models import Detail, IngestReport, Page, Record, RecordSummary
from rowstore.errors import (
    ConfigurationError,
    NotFoundError,
    RemoteQueryError,
    RowstoreError,
    StoreError,
    TransportError,
)
from rowstore.infrastructure.gateway import QueryExecutor, StoreGateway
from rowstore.pipeline import IngestOptions, ingest
from rowstore.search import SearchService
from rowstore.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "StoreConfig",
    "get_settings",
    "resolve_store_config",
    # Domain
    "Record",
    "RecordSummary",
    "Page",
    "Detail",
    "IngestReport",
    # Errors
    "RowstoreError",
    "ConfigurationError",
    "StoreError",
    "RemoteQueryError",
    "TransportError",
    "NotFoundError",
    # Store access
    "QueryExecutor",
    "StoreGateway",
    # Services
    "SearchService",
    "IngestOptions",
    "ingest",
    # Logging
    "configure_logging",
    "get_logger",
]
