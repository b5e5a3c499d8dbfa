from __future__ import annotations

from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table

from rowstore.domain.models import Detail, IngestReport, Page


def _mb(value: Optional[int]) -> str:
    if not value:
        return "N/A"
    return f"{value / (1024 * 1024):.2f}"


def print_ingest_report(report: IngestReport, console: Optional[Console] = None) -> None:
    """
    Render an ingestion report as rich tables.

    The summary table is always shown; abandoned batches get a second table
    listing their offsets and the last store error.
    """
    console = console or Console()

    summary = Table(title="Ingestion Report", box=box.ROUNDED, show_header=False)
    summary.add_column("Metric", style="cyan", no_wrap=True)
    summary.add_column("Value", justify="right", style="magenta")

    summary.add_row("Rows (input)", f"{report.total_rows:,}")
    summary.add_row("Rows committed", f"[green]{report.committed_rows:,}[/green]")
    failed_style = "red" if report.failed_rows else "green"
    summary.add_row("Rows failed", f"[{failed_style}]{report.failed_rows:,}[/{failed_style}]")
    summary.add_row("Batches", f"{report.batches:,}")
    summary.add_row("Batches retried", f"{len(report.retried_batches):,}")
    summary.add_row("Batches abandoned", f"{len(report.failed_batches):,}")
    summary.add_row("Duration (s)", f"{report.duration_seconds:.1f}")
    summary.add_row("Throughput (rows/s)", f"{report.throughput_rows_per_sec:,.2f}")
    summary.add_row("Peak Memory (MB)", _mb(report.peak_rss_bytes))
    cpu = f"{report.cpu_percent:.1f}" if report.cpu_percent is not None else "N/A"
    summary.add_row("CPU %", cpu)
    console.print(summary)

    if not report.failed_batches:
        return

    failures = Table(title="Abandoned Batches", box=box.ROUNDED)
    failures.add_column("Offset", justify="right", style="cyan")
    failures.add_column("Rows", justify="right", style="magenta")
    failures.add_column("Attempts", justify="right", style="yellow")
    failures.add_column("Error", style="red")
    for outcome in sorted(report.failed_batches, key=lambda o: o.offset):
        failures.add_row(
            f"{outcome.offset:,}", f"{outcome.size:,}", str(outcome.attempts), outcome.error or ""
        )
    console.print(failures)


def print_page(page: Page, console: Optional[Console] = None) -> None:
    """Render one search page as a table, with its continuation cursor."""
    console = console or Console()

    if not page.rows:
        console.print("[yellow]No matching records.[/yellow]")
        return

    table = Table(
        box=box.ROUNDED,
        caption=f"{page.count} row(s) in {page.latency_ms} ms"
        + (f" | next cursor: {page.next_cursor}" if page.next_cursor else " | last page"),
    )
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Email", style="magenta")
    table.add_column("Role", style="green")
    for row in page.rows:
        table.add_row(row.id, row.name or "", row.email or "", row.role or "")
    console.print(table)


def print_detail(detail: Detail, console: Optional[Console] = None) -> None:
    console = console or Console()

    table = Table(
        title=detail.record.id,
        box=box.ROUNDED,
        show_header=False,
        caption=f"{detail.latency_ms} ms",
    )
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value")
    for field, value in detail.record.model_dump().items():
        if field == "salary" and value is not None:
            value = f"{value:,}"
        table.add_row(field, "" if value is None else str(value))
    console.print(table)
