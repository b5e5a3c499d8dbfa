"""
Batch ingestion pipeline for rowstore.

Loads a fully materialised sequence of records into the remote store:

1. Partition the records into consecutive batches of `batch_size`.
2. Group consecutive batches into waves of `concurrency` and upload each wave
   concurrently; the next wave starts only after every upload in the current
   one has settled, so at most `concurrency` uploads are ever in flight.
3. Each batch is one multi-row `INSERT OR REPLACE`. Failed uploads are retried
   with tenacity up to `max_attempts` total attempts, sleeping
   `attempt * backoff_seconds` between them. A batch that still fails is
   logged with its offset and skipped; the run carries on.
4. After each wave, cumulative progress is logged and handed to the optional
   `on_progress` callback.

Usage:
    from rowstore.pipeline import IngestOptions, ingest

    report = await ingest(records, gateway, IngestOptions(batch_size=150, concurrency=15))
    print(report.committed_rows, len(report.failed_batches))

Upserts by primary key are idempotent and commutative, so batches may land in
any order.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

from pydantic import TypeAdapter
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from rowstore.config import Settings, get_settings
from rowstore.domain.models import RECORD_COLUMNS, BatchOutcome, IngestReport, Record, WaveProgress
from rowstore.errors import StoreError
from rowstore.infrastructure.gateway import QueryExecutor
from rowstore.infrastructure.schema import TABLE_NAME
from rowstore.utils.logging import get_logger
from rowstore.utils.profiler import profile_block

log = get_logger(__name__)

Batch = Tuple[int, Sequence[Record]]
ProgressCallback = Callable[[WaveProgress], None]
SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class IngestOptions:
    """
    Tuning knobs for one ingestion run.

    Attributes
    ----------
    batch_size : int
        Rows per upsert statement (B).
    concurrency : int
        Batches uploaded concurrently per wave (W).
    max_attempts : int
        Total attempts per batch, first try included (R).
    backoff_seconds : float
        Backoff unit; the n-th retry waits n * backoff_seconds.
    """

    batch_size: int = 150
    concurrency: int = 15
    max_attempts: int = 3
    backoff_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.backoff_seconds < 0:
            raise ValueError(f"backoff_seconds must be >= 0, got {self.backoff_seconds}")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides: Any) -> "IngestOptions":
        """Defaults from settings; `None` overrides are ignored."""
        settings = settings or get_settings()
        values = {
            "batch_size": settings.ingest_batch_size,
            "concurrency": settings.ingest_concurrency,
            "max_attempts": settings.ingest_max_attempts,
            "backoff_seconds": settings.ingest_backoff_seconds,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


_RECORD_LIST = TypeAdapter(List[Record])


def load_records(path: Path) -> List[Record]:
    """
    Read a JSON array of records into memory.

    The pipeline needs the whole dataset addressable up front, so the file is
    parsed in one go and validated against the Record schema.
    """
    return _RECORD_LIST.validate_json(Path(path).read_bytes())


def partition(records: Sequence[Record], size: int) -> List[Batch]:
    """Split records into consecutive (offset, batch) slices of at most `size`."""
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")
    return [(offset, records[offset : offset + size]) for offset in range(0, len(records), size)]


def waves(batches: Sequence[Batch], width: int) -> List[List[Batch]]:
    """Group consecutive batches into waves of at most `width`."""
    if width < 1:
        raise ValueError(f"width must be >= 1, got {width}")
    return [list(batches[i : i + width]) for i in range(0, len(batches), width)]


def build_upsert(batch: Sequence[Record]) -> Tuple[str, List[Any]]:
    """
    Build one multi-row INSERT OR REPLACE for a batch.

    Parameters are positional, in `RECORD_COLUMNS` order, row after row.
    """
    if not batch:
        raise ValueError("Cannot build an upsert for an empty batch")
    row_placeholder = "(" + ", ".join("?" for _ in RECORD_COLUMNS) + ")"
    placeholders = ", ".join(row_placeholder for _ in batch)
    sql = (
        f"INSERT OR REPLACE INTO {TABLE_NAME} ({', '.join(RECORD_COLUMNS)}) "
        f"VALUES {placeholders}"
    )
    params: List[Any] = [value for record in batch for value in record.as_params()]
    return sql, params


def _log_retry(offset: int) -> Callable[[RetryCallState], None]:
    def _before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        log.warning(
            f"[BATCH RETRY] offset={offset} attempt {retry_state.attempt_number} failed; "
            f"retrying in {delay:.1f}s",
            extra={
                "offset": offset,
                "attempt": retry_state.attempt_number,
                "delay_seconds": delay,
                "error": str(exc),
            },
        )

    return _before_sleep


async def upload_batch(
    gateway: QueryExecutor,
    batch: Sequence[Record],
    offset: int,
    options: IngestOptions,
    sleep: SleepFn = asyncio.sleep,
) -> BatchOutcome:
    """
    Upsert one batch, retrying store failures.

    Never raises for `StoreError`: an exhausted batch comes back as a failed
    outcome. Anything else (configuration, programming errors) propagates.
    """
    sql, params = build_upsert(batch)
    attempts = 0
    retrying = AsyncRetrying(
        stop=stop_after_attempt(options.max_attempts),
        wait=wait_incrementing(start=options.backoff_seconds, increment=options.backoff_seconds),
        retry=retry_if_exception_type(StoreError),
        before_sleep=_log_retry(offset),
        reraise=True,
        sleep=sleep,
    )
    try:
        async for attempt in retrying:
            with attempt:
                attempts = attempt.retry_state.attempt_number
                await gateway.execute(sql, params)
    except StoreError as exc:
        log.error(
            f"[BATCH FAILED] offset={offset} abandoned after {attempts} attempts: {exc}",
            extra={"offset": offset, "size": len(batch), "attempts": attempts, "error": str(exc)},
        )
        return BatchOutcome(
            offset=offset, size=len(batch), attempts=attempts, succeeded=False, error=str(exc)
        )

    return BatchOutcome(offset=offset, size=len(batch), attempts=attempts, succeeded=True)


async def ingest(
    records: Sequence[Record],
    gateway: QueryExecutor,
    options: Optional[IngestOptions] = None,
    on_progress: Optional[ProgressCallback] = None,
    sleep: SleepFn = asyncio.sleep,
) -> IngestReport:
    """
    Load `records` into the store, wave by wave.

    Parameters
    ----------
    records : Sequence[Record]
        The whole dataset, already in memory.
    gateway : QueryExecutor
        Store capability used for the upserts.
    options : IngestOptions, optional
        Batch size, concurrency and retry policy. Defaults from settings.
    on_progress : callable, optional
        Receives a WaveProgress after each wave settles.
    sleep : callable
        Awaitable sleep used between retries.

    Returns
    -------
    IngestReport
        Totals, per-batch outcomes and profiler stats. The run is best effort:
        abandoned batches are reported, not raised.
    """
    options = options or IngestOptions.from_settings()
    total_rows = len(records)
    grouped = waves(partition(records, options.batch_size), options.concurrency)

    log.info(
        f"[INGEST START] {total_rows:,} rows in {len(grouped)} waves",
        extra={
            "total_rows": total_rows,
            "batch_size": options.batch_size,
            "concurrency": options.concurrency,
            "max_attempts": options.max_attempts,
        },
    )

    outcomes: List[BatchOutcome] = []
    processed = 0
    with profile_block("ingest") as stats:
        for index, wave in enumerate(grouped, start=1):
            results = await asyncio.gather(
                *(upload_batch(gateway, batch, offset, options, sleep=sleep) for offset, batch in wave)
            )
            outcomes.extend(results)
            processed += sum(outcome.size for outcome in results)

            elapsed = time.perf_counter() - stats.start_ts
            progress = WaveProgress(
                wave=index,
                total_waves=len(grouped),
                processed_rows=processed,
                total_rows=total_rows,
                elapsed_seconds=round(elapsed, 2),
                rows_per_sec=round(processed / elapsed, 2) if elapsed > 0 else 0.0,
            )
            log.info(
                f"[WAVE {index}/{len(grouped)}] {progress.percent:.2f}% | "
                f"rows={processed:,} | {progress.rows_per_sec:,.0f} rows/s | "
                f"{progress.elapsed_seconds:.1f}s",
                extra=progress.model_dump(),
            )
            if on_progress is not None:
                on_progress(progress)

    committed = sum(outcome.size for outcome in outcomes if outcome.succeeded)
    duration = stats.duration_seconds
    report = IngestReport(
        total_rows=total_rows,
        committed_rows=committed,
        failed_rows=total_rows - committed,
        duration_seconds=round(duration, 2),
        throughput_rows_per_sec=round(committed / duration, 2) if duration > 0 else 0.0,
        peak_rss_bytes=stats.peak_rss_bytes,
        cpu_percent=round(stats.cpu_percent, 1) if stats.cpu_percent is not None else None,
        outcomes=outcomes,
    )

    summary = {
        "committed_rows": report.committed_rows,
        "failed_rows": report.failed_rows,
        "failed_batches": len(report.failed_batches),
        "retried_batches": len(report.retried_batches),
        "duration_seconds": report.duration_seconds,
    }
    if report.failed_batches:
        log.warning(
            f"[INGEST COMPLETE] {len(report.failed_batches)} batch(es) abandoned", extra=summary
        )
    else:
        log.info("[INGEST COMPLETE] All batches committed", extra=summary)
    return report


__all__ = [
    "IngestOptions",
    "load_records",
    "partition",
    "waves",
    "build_upsert",
    "upload_batch",
    "ingest",
]
