"""
HTTP surface for rowstore.

    GET /data?search=<term>&cursor=<id>&limit=<n>
        -> {data: RecordSummary[], latency, count, nextCursor, hasMore}
    GET /data/{id}
        -> {data: Record, latency} | 404 {error}
    GET /healthz
        -> {status: "ok"}

Every failure is caught at the request boundary and rendered as
`{"error": message}`; the serving process never dies on a bad request or an
unreachable store.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from rowstore.config import Settings, get_settings
from rowstore.errors import ConfigurationError, NotFoundError, StoreError
from rowstore.infrastructure.gateway import QueryExecutor, StoreGateway
from rowstore.search import SearchService
from rowstore.utils.logging import get_logger

log = get_logger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    gateway: Optional[QueryExecutor] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the API.

    Parameters
    ----------
    gateway : QueryExecutor, optional
        Store capability to serve from. When omitted, a StoreGateway is built
        lazily from settings on first use and closed on shutdown; a missing
        configuration then surfaces per request, as a 500.
    settings : Settings, optional
        Defaults to the cached process settings.
    """
    settings = settings or get_settings()
    owned: Dict[str, StoreGateway] = {}

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if "gateway" in owned:
            await owned.pop("gateway").aclose()

    app = FastAPI(title="rowstore", lifespan=lifespan)

    def get_service() -> SearchService:
        store = gateway
        if store is None:
            if "gateway" not in owned:
                owned["gateway"] = StoreGateway.from_settings(settings)
            store = owned["gateway"]
        return SearchService(store, settings)

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        log.info("Record not found", extra={"path": request.url.path, "record_id": exc.record_id})
        return _error(404, "Record not found")

    @app.exception_handler(ConfigurationError)
    async def _misconfigured(request: Request, exc: ConfigurationError) -> JSONResponse:
        log.error(f"Configuration error: {exc}", extra={"path": request.url.path})
        return _error(500, str(exc))

    @app.exception_handler(StoreError)
    async def _store_failed(request: Request, exc: StoreError) -> JSONResponse:
        log.error(f"Store request failed: {exc}", extra={"path": request.url.path})
        return _error(500, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _invalid(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        )
        return _error(400, f"Invalid request: {details}")

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        log.exception(f"Unhandled error: {exc}", extra={"path": request.url.path})
        return _error(500, "Internal server error")

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/data")
    async def list_data(
        search: Optional[str] = Query(None, description="Substring matched against name or email."),
        cursor: Optional[str] = Query(None, description="Id of the last row of the previous page."),
        limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
        service: SearchService = Depends(get_service),
    ) -> Dict[str, Any]:
        page = await service.search(term=search or None, cursor=cursor or None, page_size=limit)
        return {
            "data": [row.model_dump() for row in page.rows],
            "latency": page.latency_ms,
            "count": page.count,
            "nextCursor": page.next_cursor,
            "hasMore": page.has_more,
        }

    @app.get("/data/{record_id}")
    async def get_data(
        record_id: str,
        service: SearchService = Depends(get_service),
    ) -> Dict[str, Any]:
        detail = await service.get_detail(record_id)
        return {"data": detail.record.model_dump(), "latency": detail.latency_ms}

    return app


__all__ = ["create_app"]
