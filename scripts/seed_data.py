"""
Data generation and seeding script for rowstore.

Implements deterministic pseudo-random user generation, optional JSON
emission, and loading into the remote store through the batch ingestion
pipeline (schema bootstrap, waves of concurrent multi-row upserts, retry with
backoff, progress logging).
"""

from __future__ import annotations

import asyncio
import json
import random
import sys
import time
from pathlib import Path
from typing import List, Optional

import typer

from rowstore.config import get_settings
from rowstore.domain.models import Record
from rowstore.errors import ConfigurationError, StoreError
from rowstore.infrastructure.gateway import StoreGateway
from rowstore.infrastructure.schema import ensure_schema
from rowstore.pipeline import IngestOptions, ingest, load_records
from rowstore.reporter import print_ingest_report
from rowstore.utils.logging import configure_logging

app = typer.Typer(help="Generate synthetic users and seed the remote store.")

FIRST_NAMES = [
    "Alice", "Bob", "Carmen", "Dmitri", "Elena", "Farid", "Grace", "Hiro",
    "Ines", "Jamal", "Kira", "Liam", "Maya", "Noah", "Olga", "Priya",
    "Quinn", "Rafael", "Sofia", "Tariq", "Uma", "Victor", "Wen", "Yusuf",
]
LAST_NAMES = [
    "Anderson", "Becker", "Chen", "Diaz", "Eriksen", "Fischer", "Garcia",
    "Haddad", "Ivanova", "Johnson", "Kowalski", "Lopez", "Moreau", "Nakamura",
    "Okafor", "Patel", "Rossi", "Schmidt", "Tanaka", "Williams",
]
ROLES = ["Engineer", "Designer", "Manager", "Analyst", "Director", "Support", "Recruiter"]
DEPARTMENTS = ["Engineering", "Design", "Sales", "Marketing", "Finance", "People", "Operations"]
STATUSES = ["active", "active", "active", "on_leave", "inactive"]
LOCATIONS = ["Berlin", "Lisbon", "London", "New York", "Remote", "San Francisco", "Singapore", "Tokyo"]
DOMAINS = ["example.com", "mail.test", "corp.example"]


def make_id(index: int) -> str:
    """Zero-padded so lexicographic order equals numeric order."""
    return f"usr_{index:07d}"


def generate_records(rows: int, seed: int) -> List[Record]:
    rng = random.Random(seed)
    records: List[Record] = []
    for i in range(1, rows + 1):
        first = rng.choice(FIRST_NAMES)
        last = rng.choice(LAST_NAMES)
        role = rng.choice(ROLES)
        department = rng.choice(DEPARTMENTS)
        location = rng.choice(LOCATIONS)
        records.append(
            Record(
                id=make_id(i),
                name=f"{first} {last}",
                email=f"{first.lower()}.{last.lower()}{i}@{rng.choice(DOMAINS)}",
                role=role,
                department=department,
                status=rng.choice(STATUSES),
                location=location,
                salary=rng.randrange(40_000, 250_000, 500),
                bio=(
                    f"{first} works as a {role.lower()} in {department} from {location}. "
                    f"Joined in {rng.randint(2005, 2025)} and leads {rng.randint(0, 12)} projects."
                ),
            )
        )
    return records


def _write_json(path: Path, records: List[Record]) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump([record.model_dump() for record in records], f)


async def _seed(records: List[Record], options: IngestOptions):
    async with StoreGateway.from_settings() as gateway:
        await ensure_schema(gateway)
        return await ingest(records, gateway, options)


@app.command()
def main(
    rows: int = typer.Option(
        1_000_000,
        "--rows",
        "-r",
        help="Number of users to generate.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    input_path: Optional[Path] = typer.Option(
        None,
        "--input",
        "-i",
        exists=True,
        dir_okay=False,
        help="Load this JSON array instead of generating rows.",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Optional JSON output path for the generated rows.",
    ),
    batch_size: Optional[int] = typer.Option(
        None,
        "--batch-size",
        "-b",
        help="Rows per upsert statement.",
    ),
    concurrency: Optional[int] = typer.Option(
        None,
        "--concurrency",
        "-w",
        help="Concurrent batch uploads per wave.",
    ),
    max_attempts: Optional[int] = typer.Option(
        None,
        "--max-attempts",
        help="Attempts per batch before it is abandoned.",
    ),
    no_load: bool = typer.Option(
        False,
        "--no-load",
        help="Only generate (and optionally write) rows; skip loading into the store.",
    ),
) -> None:
    """
    Generate synthetic users and optionally load them into the remote store.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.json_logs)

    start = time.perf_counter()
    if input_path:
        typer.echo(f"Reading records from {input_path}")
        records = load_records(input_path)
    else:
        typer.echo(f"Generating {rows:,} users (seed={seed})")
        records = generate_records(rows, seed)
    gen_duration = time.perf_counter() - start
    typer.echo(f"{len(records):,} records ready in {gen_duration:.2f}s")

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        _write_json(output, records)
        typer.echo(f"Wrote {output}")

    if no_load:
        typer.echo("Skipping load (no-load flag set).")
        return

    options = IngestOptions.from_settings(
        settings,
        batch_size=batch_size,
        concurrency=concurrency,
        max_attempts=max_attempts,
    )
    typer.echo(
        f"Loading via {options.concurrency} parallel lanes "
        f"(batch={options.batch_size}, attempts={options.max_attempts})..."
    )
    try:
        report = asyncio.run(_seed(records, options))
    except (ConfigurationError, StoreError) as exc:
        typer.echo(f"Seeding aborted: {exc}", err=True)
        raise typer.Exit(code=1)

    print_ingest_report(report)
    if report.failed_batches:
        raise typer.Exit(code=2)


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
