from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import NoReturn, Optional

import typer

from rowstore.config import get_settings
from rowstore.errors import ConfigurationError, NotFoundError, StoreError
from rowstore.infrastructure.gateway import StoreGateway, normalize_endpoint
from rowstore.infrastructure.schema import ensure_schema
from rowstore.pipeline import IngestOptions, ingest, load_records
from rowstore.reporter import print_detail, print_ingest_report, print_page
from rowstore.search import SearchService
from rowstore.utils.logging import configure_logging

app = typer.Typer(help="rowstore CLI: browse and load the remote users table.")


def _mask(token: Optional[str]) -> str:
    if not token:
        return "<unset>"
    return f"{token[:4]}…({len(token)} chars)"


def _setup_logging() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.json_logs)


def _fail(message: str, code: int = 1) -> NoReturn:
    typer.echo(message, err=True)
    raise typer.Exit(code=code)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    url = normalize_endpoint(settings.database_url) if settings.database_url else "<unset>"
    typer.echo(
        f"store={url} token={_mask(settings.auth_token)} | "
        f"batch={settings.ingest_batch_size} concurrency={settings.ingest_concurrency} "
        f"attempts={settings.ingest_max_attempts} backoff={settings.ingest_backoff_seconds}s | "
        f"page={settings.default_page_size} max_page={settings.max_page_size} "
        f"case_sensitive={settings.search_case_sensitive}"
    )


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind."),
    port: int = typer.Option(8000, "--port", "-p", help="Port to listen on."),
) -> None:
    """
    Serve the /data API with uvicorn.
    """
    import uvicorn

    from rowstore.api import create_app

    _setup_logging()
    uvicorn.run(create_app(), host=host, port=port, log_level=get_settings().log_level.lower())


@app.command()
def search(
    term: Optional[str] = typer.Argument(None, help="Substring to match in name or email."),
    cursor: Optional[str] = typer.Option(None, "--cursor", "-c", help="Continue after this id."),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Page size."),
) -> None:
    """
    Fetch one page of records and print it.
    """
    _setup_logging()

    async def _run():
        async with StoreGateway.from_settings() as gateway:
            return await SearchService(gateway).search(term=term, cursor=cursor, page_size=limit)

    try:
        page = asyncio.run(_run())
    except (ConfigurationError, StoreError, ValueError) as exc:
        _fail(f"Search failed: {exc}")
    print_page(page)


@app.command()
def show(record_id: str = typer.Argument(..., help="Record id.")) -> None:
    """
    Fetch one record with all of its fields.
    """
    _setup_logging()

    async def _run():
        async with StoreGateway.from_settings() as gateway:
            return await SearchService(gateway).get_detail(record_id)

    try:
        detail = asyncio.run(_run())
    except NotFoundError as exc:
        _fail(str(exc))
    except (ConfigurationError, StoreError) as exc:
        _fail(f"Lookup failed: {exc}")
    print_detail(detail)


@app.command("ingest")
def ingest_file(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON array of records."),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", "-b", help="Rows per upsert."),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-w", help="Concurrent batch uploads per wave."
    ),
    max_attempts: Optional[int] = typer.Option(
        None, "--max-attempts", help="Attempts per batch before it is abandoned."
    ),
    backoff: Optional[float] = typer.Option(
        None, "--backoff", help="Backoff unit in seconds (retry n waits n * unit)."
    ),
) -> None:
    """
    Load a JSON file of records into the store.
    """
    _setup_logging()
    options = IngestOptions.from_settings(
        batch_size=batch_size,
        concurrency=concurrency,
        max_attempts=max_attempts,
        backoff_seconds=backoff,
    )
    records = load_records(path)
    typer.echo(f"Loaded {len(records):,} records from {path}")

    async def _run():
        async with StoreGateway.from_settings() as gateway:
            await ensure_schema(gateway)
            return await ingest(records, gateway, options)

    try:
        report = asyncio.run(_run())
    except (ConfigurationError, StoreError) as exc:
        _fail(f"Ingestion aborted: {exc}")
    print_ingest_report(report)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
